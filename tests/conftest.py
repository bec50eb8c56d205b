"""Shared fixtures: a fresh runtime with registry, token and payroll core wired."""

import pytest

from accounts import EMPLOYER, ORACLE, OWNER, START
from paygram.chain.runtime import BlockClock, Runtime
from paygram.deployment import Deployment, deploy_paygram
from paygram.fhe import CiphertextEngine


@pytest.fixture
def runtime() -> Runtime:
    return Runtime(
        engine=CiphertextEngine(secret=b"paygram-tests"),
        clock=BlockClock(start=START),
    )


@pytest.fixture
def deployment(runtime: Runtime) -> Deployment:
    return deploy_paygram(
        runtime, OWNER, EMPLOYER, oracle=ORACLE, core_funding=1_000_000
    )
