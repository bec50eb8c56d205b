"""Execution platform — addresses, runtime, transactions, access roles."""

from paygram.chain.access import Ownable2Step, non_reentrant
from paygram.chain.addresses import ZERO_ADDRESS, is_zero, to_address
from paygram.chain.runtime import BlockClock, Contract, Runtime, external

__all__ = [
    "BlockClock",
    "Contract",
    "Ownable2Step",
    "Runtime",
    "ZERO_ADDRESS",
    "external",
    "is_zero",
    "non_reentrant",
    "to_address",
]
