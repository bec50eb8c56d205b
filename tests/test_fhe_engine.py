"""Tests for the ciphertext engine — proves values stay opaque and every
use of a ciphertext is grant-checked."""

import pytest

from paygram.errors import (
    CiphertextAccessDenied,
    CoprocessorUnavailable,
    InvalidInputProof,
)
from paygram.fhe import CipherKind, CiphertextEngine, UINT64_MASK

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
OTHER_CONTRACT = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
USER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
VIEWER = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


@pytest.fixture
def engine() -> CiphertextEngine:
    return CiphertextEngine(secret=b"test-secret")


def _reveal(engine: CiphertextEngine, ct, principal: str = CONTRACT):
    engine.grant_permanent(ct, VIEWER, principal=principal)
    return engine.user_decrypt(ct, VIEWER)


class TestOpaqueHandles:
    def test_handle_refuses_truthiness(self, engine: CiphertextEngine) -> None:
        flag = engine.bind(CONTRACT).ge(engine.bind(CONTRACT).encrypt(80), 75)
        with pytest.raises(TypeError, match="select"):
            bool(flag)

    def test_repr_hides_value(self, engine: CiphertextEngine) -> None:
        ct = engine.bind(CONTRACT).encrypt(5000)
        assert "5000" not in repr(ct)

    def test_handles_are_unique(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        assert fhe.encrypt(1).handle != fhe.encrypt(1).handle


class TestPrimitives:
    def test_comparisons(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        score = fhe.encrypt(75)
        assert _reveal(engine, fhe.ge(score, 75)) is True
        assert _reveal(engine, fhe.ge(score, 76)) is False
        assert _reveal(engine, fhe.lt(score, 76)) is True
        assert _reveal(engine, fhe.le(score, 75)) is True
        assert _reveal(engine, fhe.le(score, 74)) is False

    def test_comparison_result_kind(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        assert fhe.ge(fhe.encrypt(1), 0).kind == CipherKind.EBOOL

    def test_select_picks_by_encrypted_condition(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        a, b = fhe.encrypt(10), fhe.encrypt(20)
        assert _reveal(engine, fhe.select(fhe.ge(a, 5), a, b)) == 10
        assert _reveal(engine, fhe.select(fhe.ge(a, 50), a, b)) == 20

    def test_select_rejects_integer_condition(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        a = fhe.encrypt(1)
        with pytest.raises(TypeError, match="ebool"):
            fhe.select(a, a, a)

    def test_select_rejects_mixed_branch_kinds(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        flag = fhe.ge(fhe.encrypt(1), 0)
        with pytest.raises(TypeError, match="differ"):
            fhe.select(flag, fhe.encrypt(1), flag)

    def test_subtraction_wraps_like_uint64(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        assert _reveal(engine, fhe.sub(fhe.encrypt(0), 1)) == UINT64_MASK

    def test_addition(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        assert _reveal(engine, fhe.add(fhe.encrypt(2000), fhe.encrypt(3000))) == 5000

    def test_encrypt_rejects_out_of_range(self, engine: CiphertextEngine) -> None:
        with pytest.raises(ValueError, match="euint64"):
            engine.bind(CONTRACT).encrypt(-1)


class TestGrants:
    def test_operand_requires_grant(self, engine: CiphertextEngine) -> None:
        mine = engine.bind(CONTRACT).encrypt(42)
        with pytest.raises(CiphertextAccessDenied):
            engine.bind(OTHER_CONTRACT).add(mine, 1)

    def test_transient_grant_allows_use_until_cleared(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        ct = fhe.encrypt(42)
        fhe.allow_transient(ct, OTHER_CONTRACT)
        engine.bind(OTHER_CONTRACT).add(ct, 1)
        engine.end_transaction()
        with pytest.raises(CiphertextAccessDenied):
            engine.bind(OTHER_CONTRACT).add(ct, 1)

    def test_persistent_grant_survives_transaction_end(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        ct = fhe.encrypt(42)
        fhe.allow_this(ct)
        engine.end_transaction()
        fhe.add(ct, 1)

    def test_decrypt_requires_permanent_grant(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        ct = fhe.encrypt(42)
        fhe.allow_transient(ct, VIEWER)
        with pytest.raises(CiphertextAccessDenied):
            engine.user_decrypt(ct, VIEWER)
        fhe.allow(ct, VIEWER)
        assert engine.user_decrypt(ct, VIEWER) == 42

    def test_granter_needs_access(self, engine: CiphertextEngine) -> None:
        ct = engine.bind(CONTRACT).encrypt(42)
        with pytest.raises(CiphertextAccessDenied):
            engine.bind(OTHER_CONTRACT).allow(ct, VIEWER)


class TestInputProofs:
    def test_valid_input_imports(self, engine: CiphertextEngine) -> None:
        enc = engine.encrypt_input(5000, CONTRACT, USER)
        ct = engine.bind(CONTRACT).from_external(enc.handle, enc.proof, user=USER)
        assert _reveal(engine, ct) == 5000

    def test_proof_bound_to_contract(self, engine: CiphertextEngine) -> None:
        enc = engine.encrypt_input(5000, CONTRACT, USER)
        with pytest.raises(InvalidInputProof):
            engine.bind(OTHER_CONTRACT).from_external(enc.handle, enc.proof, user=USER)

    def test_proof_bound_to_user(self, engine: CiphertextEngine) -> None:
        enc = engine.encrypt_input(5000, CONTRACT, USER)
        with pytest.raises(InvalidInputProof):
            engine.bind(CONTRACT).from_external(enc.handle, enc.proof, user=VIEWER)

    def test_forged_proof_rejected(self, engine: CiphertextEngine) -> None:
        enc = engine.encrypt_input(5000, CONTRACT, USER)
        with pytest.raises(InvalidInputProof):
            engine.bind(CONTRACT).from_external(enc.handle, b"\x00" * 32, user=USER)


class TestAvailability:
    def test_unavailable_engine_fails_every_primitive(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        ct = fhe.encrypt(1)
        engine.available = False
        with pytest.raises(CoprocessorUnavailable):
            fhe.encrypt(1)
        with pytest.raises(CoprocessorUnavailable):
            fhe.ge(ct, 0)

    def test_client_encryption_works_offline(self, engine: CiphertextEngine) -> None:
        engine.available = False
        enc = engine.encrypt_input(7, CONTRACT, USER)
        engine.available = True
        engine.bind(CONTRACT).from_external(enc.handle, enc.proof, user=USER)

    def test_snapshot_restore(self, engine: CiphertextEngine) -> None:
        fhe = engine.bind(CONTRACT)
        fhe.encrypt(1)
        state = engine.snapshot()
        count = engine.ciphertext_count
        fhe.encrypt(2)
        engine.restore(state)
        assert engine.ciphertext_count == count
