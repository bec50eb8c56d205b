"""Oblivious payment router — split one encrypted salary across three paths.

No branch depends on the secret tier. All three amounts are always
computed and every disbursement path always runs:

    instant = select(is_high, salary, 0)
    rest    = salary - instant
    delayed = select(is_medium, rest, 0)
    escrow  = rest - delayed

Because is_high implies is_medium, at most one amount is nonzero and
instant + delayed + escrow == salary exactly.
"""

from __future__ import annotations

from dataclasses import dataclass

from paygram.fhe.engine import FHEContext
from paygram.fhe.types import Ciphertext


@dataclass(frozen=True)
class RoutedAmounts:
    """Encrypted per-path amounts for one employee."""
    instant: Ciphertext
    delayed: Ciphertext
    escrow: Ciphertext


def route_salary(
    fhe: FHEContext,
    salary: Ciphertext,
    is_high: Ciphertext,
    is_medium: Ciphertext,
) -> RoutedAmounts:
    zero = fhe.encrypt(0)
    instant = fhe.select(is_high, salary, zero)
    remaining = fhe.sub(salary, instant)
    delayed = fhe.select(is_medium, remaining, zero)
    escrow = fhe.sub(remaining, delayed)
    return RoutedAmounts(instant=instant, delayed=delayed, escrow=escrow)
