import pytest

from carnival.core.errors_core import (
    AuthorizationError,
    CarnivalError,
    ProofError,
    StateError,
    TransferError,
    ValidationError,
    normalize_exception,
)
from carnival.core.security_core import (
    require_admin,
    require_authority,
    require_coordinator,
    require_player,
    same_identity,
)
from carnival.core.system_locks import LockViolation, OperationGuard

from tests.conftest import ADMIN, ALICE, AUTHORITY, BOB


@pytest.mark.parametrize(
    "exc_type, code",
    [
        (ValidationError, "validation_error"),
        (StateError, "state_error"),
        (AuthorizationError, "authorization_error"),
        (ProofError, "proof_error"),
        (TransferError, "transfer_error"),
    ],
)
def test_error_codes(exc_type, code):
    exc = exc_type("boom", details={"k": 1})
    assert isinstance(exc, CarnivalError)
    assert exc.code == code
    assert str(exc) == f"{code}: boom"
    assert exc.to_payload() == {"error": code, "message": "boom", "details": {"k": 1}}
    assert normalize_exception(exc) == (code, exc.to_payload())


def test_payload_without_details():
    assert ProofError().to_payload() == {"error": "proof_error", "message": "Invalid Merkle proof."}


def test_errors_are_hashable_exceptions():
    errors = {StateError("a"), StateError("a")}
    assert len(errors) == 2
    with pytest.raises(StateError):
        raise StateError("a")


def test_normalize_lock_violation_and_unknown():
    code, payload = normalize_exception(LockViolation("busy"))
    assert code == "lock_violation"
    assert payload["message"] == "busy"

    code, payload = normalize_exception(KeyError("secret"))
    assert code == "internal_error"
    assert "secret" not in str(payload)


def test_operation_guard_rejects_reentry_and_releases():
    guard = OperationGuard()
    with guard.enter("outer"):
        assert guard.active == "outer"
        with pytest.raises(LockViolation):
            with guard.enter("inner"):
                pass
        assert guard.in_progress
    assert not guard.in_progress

    with pytest.raises(RuntimeError):
        with guard.enter("failing"):
            raise RuntimeError("x")
    assert guard.active is None


def test_capability_checks(config):
    assert same_identity(ALICE, ALICE.lower())
    assert not same_identity(ALICE, None)

    require_admin(config, ADMIN.lower())
    require_authority(config, AUTHORITY)
    require_player(ALICE, ALICE)
    require_coordinator(BOB, BOB)
    with pytest.raises(AuthorizationError):
        require_admin(config, AUTHORITY)
    with pytest.raises(AuthorizationError):
        require_authority(config, ADMIN)
    with pytest.raises(AuthorizationError):
        require_player(ALICE, BOB)
    with pytest.raises(AuthorizationError):
        require_coordinator(BOB, ALICE)
