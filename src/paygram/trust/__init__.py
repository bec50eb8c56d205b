"""Trust subsystem — encrypted reputation scores and tier evaluation."""

from paygram.trust.registry import TrustRegistry

__all__ = ["TrustRegistry"]
