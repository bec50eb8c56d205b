"""PayGram — confidential payroll with trust-gated oblivious payment routing.

Employers pay encrypted salaries; an oracle supplies encrypted trust
scores; each payroll run routes every salary to an instant, delayed or
escrowed path chosen under encryption, so neither the score, the tier
nor the amount is ever revealed.
"""

from paygram.chain.runtime import BlockClock, Runtime
from paygram.deployment import Deployment, deploy_paygram
from paygram.ledger.token import ConfidentialToken
from paygram.payroll.core import PayrollCore
from paygram.trust.registry import TrustRegistry

__version__ = "0.1.0"

__all__ = [
    "BlockClock",
    "ConfidentialToken",
    "Deployment",
    "PayrollCore",
    "Runtime",
    "TrustRegistry",
    "deploy_paygram",
]
