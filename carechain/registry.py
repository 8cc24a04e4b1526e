# carechain/registry.py
from typing import Optional
from sqlalchemy.orm import Session
from carechain import models, events, policy
from carechain.db import transaction
from carechain.errors import LedgerError, ErrorCode

PATIENT_FIELDS = {"verified", "total_consents", "active_consents"}
PROVIDER_FIELDS = {"verified", "total_data_requests"}


def update_patient(patient: models.Patient, **changes) -> models.Patient:
    """Apply a field-level update to a patient; identity and registration data are immutable."""
    unknown = set(changes) - PATIENT_FIELDS
    if unknown:
        raise ValueError(f"immutable or unknown patient fields: {sorted(unknown)}")
    if "active_consents" in changes and changes["active_consents"] < 0:
        events.logger.warning("active_consents_clamped", patient_id=patient.patient_id,
                              requested=changes["active_consents"])
        changes["active_consents"] = 0
    for field, value in changes.items():
        setattr(patient, field, value)
    return patient


def update_provider(provider: models.Provider, **changes) -> models.Provider:
    unknown = set(changes) - PROVIDER_FIELDS
    if unknown:
        raise ValueError(f"immutable or unknown provider fields: {sorted(unknown)}")
    for field, value in changes.items():
        setattr(provider, field, value)
    return provider


def get_patient(db: Session, patient_id: str) -> Optional[models.Patient]:
    return db.get(models.Patient, patient_id)


def get_provider(db: Session, provider_id: str) -> Optional[models.Provider]:
    return db.get(models.Provider, provider_id)


def is_patient_verified(db: Session, patient_id: str) -> bool:
    patient = get_patient(db, patient_id)
    return bool(patient and patient.verified)


def is_provider_verified(db: Session, provider_id: str) -> bool:
    provider = get_provider(db, provider_id)
    return bool(provider and provider.verified)


def require_text(value: str, limit: int, field: str):
    if not policy.text_within(value, limit):
        raise LedgerError(ErrorCode.INVALID_TEXT, f"{field} longer than {limit} characters")


def is_admin(db: Session, caller: str) -> bool:
    admin_id = (db.query(models.LedgerState.admin_id)
                .filter(models.LedgerState.id == models.LEDGER_STATE_ID).scalar())
    return caller == admin_id


def register_patient(db: Session, caller: str, height: int, name: str) -> str:
    require_text(name, models.NAME_MAX, "name")
    with transaction(db):
        if get_patient(db, caller) is not None:
            raise LedgerError(ErrorCode.ALREADY_EXISTS, "patient already registered")
        state = models.ledger_state(db)
        db.add(models.Patient(patient_id=caller, name=name, registered_at=height, verified=False,
                              total_consents=0, active_consents=0))
        state.total_patients += 1
    events.emit("patient-registered", patient_id=caller, height=height)
    return caller


def register_provider(db: Session, caller: str, height: int, organization: str,
                      specialization: str, license_number: str) -> str:
    require_text(organization, models.ORG_MAX, "organization")
    require_text(specialization, models.SPECIALIZATION_MAX, "specialization")
    require_text(license_number, models.LICENSE_MAX, "license_number")
    with transaction(db):
        if get_provider(db, caller) is not None:
            raise LedgerError(ErrorCode.ALREADY_EXISTS, "provider already registered")
        state = models.ledger_state(db)
        db.add(models.Provider(provider_id=caller, organization=organization, specialization=specialization,
                               license_number=license_number, verified=False, registered_at=height,
                               total_data_requests=0))
        state.total_providers += 1
    events.emit("provider-registered", provider_id=caller, height=height)
    return caller


def _require_admin(db: Session, caller: str):
    if caller != models.ledger_state(db).admin_id:
        raise LedgerError(ErrorCode.NOT_AUTHORIZED, "administrator only")


def verify_patient(db: Session, caller: str, height: int, patient_id: str) -> bool:
    with transaction(db):
        _require_admin(db, caller)
        patient = get_patient(db, patient_id)
        if patient is None:
            raise LedgerError(ErrorCode.PATIENT_NOT_FOUND)
        update_patient(patient, verified=True)
    events.emit("patient-verified", patient_id=patient_id, height=height)
    return True


def verify_provider(db: Session, caller: str, height: int, provider_id: str) -> bool:
    with transaction(db):
        _require_admin(db, caller)
        provider = get_provider(db, provider_id)
        if provider is None:
            raise LedgerError(ErrorCode.PROVIDER_NOT_FOUND)
        update_provider(provider, verified=True)
    events.emit("provider-verified", provider_id=provider_id, height=height)
    return True
