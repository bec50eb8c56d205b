"""Confidential ledger — the encrypted-balance settlement token."""

from paygram.ledger.token import ConfidentialToken

__all__ = ["ConfidentialToken"]
