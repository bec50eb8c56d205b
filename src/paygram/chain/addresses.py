"""Account addresses — EIP-55 checksummed strings.

The zero address is the null principal and is rejected wherever a real
account is required.
"""

from __future__ import annotations

from web3 import Web3

from paygram.errors import InvalidAddress

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


def to_address(value: str) -> str:
    """Validate and checksum an address string."""
    if not isinstance(value, str) or not Web3.is_address(value):
        raise InvalidAddress(f"Not a valid address: {value!r}")
    return Web3.to_checksum_address(value)


def is_zero(address: str) -> bool:
    return int(address, 16) == 0


def derive_contract_address(deployer: str, nonce: int) -> str:
    """Deterministic contract address for a deployer and deployment nonce."""
    digest = Web3.keccak(text=f"{deployer.lower()}:{nonce}")
    return Web3.to_checksum_address("0x" + bytes(digest[-20:]).hex())
