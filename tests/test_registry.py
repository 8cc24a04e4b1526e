import pytest

from carechain import models, registry
from carechain.errors import LedgerError, ErrorCode

ADMIN = "admin"


def test_register_patient_creates_unverified_record(db):
    assert registry.register_patient(db, "p1", 5, "Alice") == "p1"

    patient = registry.get_patient(db, "p1")
    assert patient.name == "Alice"
    assert patient.registered_at == 5
    assert patient.verified is False
    assert patient.total_consents == 0
    assert patient.active_consents == 0
    assert models.ledger_state(db).total_patients == 1


def test_register_patient_twice_fails_and_leaves_totals(db):
    registry.register_patient(db, "p1", 5, "Alice")
    with pytest.raises(LedgerError) as exc:
        registry.register_patient(db, "p1", 6, "Alice again")
    assert exc.value.code == ErrorCode.ALREADY_EXISTS
    assert models.ledger_state(db).total_patients == 1
    assert registry.get_patient(db, "p1").name == "Alice"


def test_register_provider(db):
    registry.register_provider(db, "q1", 7, "GenHospital", "oncology", "LIC-9")
    with pytest.raises(LedgerError) as exc:
        registry.register_provider(db, "q1", 8, "Other", "x", "y")
    assert exc.value.code == ErrorCode.ALREADY_EXISTS

    provider = registry.get_provider(db, "q1")
    assert provider.organization == "GenHospital"
    assert provider.license_number == "LIC-9"
    assert provider.verified is False
    assert models.ledger_state(db).total_providers == 1


def test_same_identity_may_be_patient_and_provider(db):
    registry.register_patient(db, "dr-self", 1, "Dr Self")
    registry.register_provider(db, "dr-self", 1, "Clinic", "gp", "LIC-2")
    state = models.ledger_state(db)
    assert (state.total_patients, state.total_providers) == (1, 1)


def test_verify_requires_administrator(db):
    registry.register_patient(db, "p1", 1, "Alice")
    registry.register_provider(db, "q1", 1, "Org", "gp", "L")
    with pytest.raises(LedgerError) as exc:
        registry.verify_patient(db, "p1", 2, "p1")
    assert exc.value.code == ErrorCode.NOT_AUTHORIZED
    with pytest.raises(LedgerError) as exc:
        registry.verify_provider(db, "q1", 2, "q1")
    assert exc.value.code == ErrorCode.NOT_AUTHORIZED
    assert not registry.is_patient_verified(db, "p1")
    assert not registry.is_provider_verified(db, "q1")


def test_verify_unknown_target(db):
    with pytest.raises(LedgerError) as exc:
        registry.verify_patient(db, ADMIN, 2, "ghost")
    assert exc.value.code == ErrorCode.PATIENT_NOT_FOUND
    with pytest.raises(LedgerError) as exc:
        registry.verify_provider(db, ADMIN, 2, "ghost")
    assert exc.value.code == ErrorCode.PROVIDER_NOT_FOUND


def test_verification_is_permanent_and_idempotent(db):
    registry.register_patient(db, "p1", 1, "Alice")
    assert registry.verify_patient(db, ADMIN, 2, "p1")
    assert registry.verify_patient(db, ADMIN, 3, "p1")
    assert registry.is_patient_verified(db, "p1")


def test_is_verified_unknown_is_false(db):
    assert registry.is_patient_verified(db, "nobody") is False
    assert registry.is_provider_verified(db, "nobody") is False


def test_update_rejects_immutable_fields(db):
    registry.register_patient(db, "p1", 1, "Alice")
    with pytest.raises(ValueError):
        registry.update_patient(registry.get_patient(db, "p1"), name="Mallory")


def test_update_clamps_active_consents_at_zero(db):
    registry.register_patient(db, "p1", 1, "Alice")
    patient = registry.update_patient(registry.get_patient(db, "p1"), active_consents=-1)
    assert patient.active_consents == 0


def test_name_length_bound(db):
    assert registry.register_patient(db, "p1", 1, "x" * models.NAME_MAX) == "p1"
    with pytest.raises(LedgerError) as exc:
        registry.register_patient(db, "p2", 1, "x" * (models.NAME_MAX + 1))
    assert exc.value.code == ErrorCode.INVALID_TEXT
    assert registry.get_patient(db, "p2") is None
    assert models.ledger_state(db).total_patients == 1


@pytest.mark.parametrize("field, limit", [
    ("organization", models.ORG_MAX),
    ("specialization", models.SPECIALIZATION_MAX),
    ("license_number", models.LICENSE_MAX),
])
def test_provider_text_bounds(db, field, limit):
    fields = {"organization": "Org", "specialization": "gp", "license_number": "L"}
    registry.register_provider(db, "q1", 1, **dict(fields, **{field: "x" * limit}))
    with pytest.raises(LedgerError) as exc:
        registry.register_provider(db, "q2", 1, **dict(fields, **{field: "x" * (limit + 1)}))
    assert exc.value.code == ErrorCode.INVALID_TEXT
    assert registry.get_provider(db, "q2") is None
    assert models.ledger_state(db).total_providers == 1


def test_is_admin(db):
    assert registry.is_admin(db, ADMIN)
    assert not registry.is_admin(db, "alice")
