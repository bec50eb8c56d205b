"""Deployment wiring — registry, token and payroll core, linked together.

Mirrors the deploy script order:
1. Trust registry (owner = deployer).
2. Confidential token (owner = deployer, optional initial supply).
3. Payroll core pointing at both.
4. Link the core into the token so it may mint.
5. Authorize the oracle on the registry.
6. Optionally fund the core's token balance so instant payments and
   releases have something to move.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from paygram.chain.addresses import to_address
from paygram.chain.runtime import Runtime
from paygram.ledger.token import ConfidentialToken
from paygram.payroll.core import PayrollCore
from paygram.trust.registry import TrustRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deployment:
    """Handles to the three linked contracts."""
    runtime: Runtime
    registry: TrustRegistry
    token: ConfidentialToken
    core: PayrollCore


def deploy_paygram(
    runtime: Runtime,
    deployer: str,
    employer: str,
    oracle: Optional[str] = None,
    initial_supply: int = 0,
    core_funding: int = 0,
) -> Deployment:
    """Deploy and wire a complete payroll system.

    Args:
        runtime: Execution runtime to deploy into.
        deployer: Owner of all three contracts.
        employer: Account allowed to manage employees and run payroll.
        oracle: Account authorized to write trust scores (default: deployer).
        initial_supply: cPAY minted to the deployer at token construction.
        core_funding: cPAY minted directly to the payroll core.
    """
    deployer = to_address(deployer)
    oracle = to_address(oracle) if oracle is not None else deployer

    registry = runtime.deploy(TrustRegistry, deployer, deployer=deployer)
    token = runtime.deploy(ConfidentialToken, deployer, initial_supply, deployer=deployer)
    core = runtime.deploy(
        PayrollCore,
        deployer,
        employer,
        registry.address,
        token.address,
        deployer=deployer,
    )
    token.set_payroll_core(core.address, caller=deployer)
    registry.set_oracle(oracle, True, caller=deployer)
    if core_funding > 0:
        token.mint(core.address, core_funding, caller=deployer)

    logger.info(
        "PayGram deployed: registry=%s token=%s core=%s",
        registry.address, token.address, core.address,
    )
    return Deployment(runtime=runtime, registry=registry, token=token, core=core)
