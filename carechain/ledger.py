# carechain/ledger.py
"""
Consent ledger: the grant lifecycle.

A grant is created `Active`, may be moved to `Revoked` once by its patient,
and is reclassified as `Expired` lazily once the clock passes its expiry.
Only the revocation is stored; expiry is always derived from the clock value
supplied with the query.
"""
from typing import List, Optional
from sqlalchemy import or_
from sqlalchemy.orm import Session
from carechain import models, policy, audit, events, registry
from carechain.db import transaction
from carechain.errors import LedgerError, ErrorCode


def get_consent(db: Session, consent_id: int) -> Optional[models.Consent]:
    return db.get(models.Consent, consent_id)


def grant_consent(db: Session, caller: str, height: int, provider_id: str, data_categories: str,
                  purpose: str, duration: int, can_share_further: bool) -> int:
    with transaction(db):
        patient = registry.get_patient(db, caller)
        # an unverified patient is reported the same as an unknown one
        if patient is None or not patient.verified:
            raise LedgerError(ErrorCode.PATIENT_NOT_FOUND)
        if not registry.is_provider_verified(db, provider_id):
            raise LedgerError(ErrorCode.PROVIDER_NOT_VERIFIED)
        if not policy.is_valid_duration(duration):
            raise LedgerError(ErrorCode.INVALID_DURATION,
                              f"duration must be within [{policy.MIN_DURATION}, {policy.MAX_DURATION}]")
        if not purpose or not policy.text_within(purpose, models.PURPOSE_MAX):
            raise LedgerError(ErrorCode.INVALID_PURPOSE)
        registry.require_text(data_categories, models.CATEGORIES_MAX, "data_categories")

        state = models.ledger_state(db)
        consent_id = state.next_consent_id
        db.add(models.Consent(consent_id=consent_id, patient_id=caller, provider_id=provider_id,
                              data_categories=data_categories, purpose=purpose, granted=True,
                              granted_at=height, expires_at=height + duration,
                              can_share_further=can_share_further, revoked=False, revoked_at=None))
        state.next_consent_id = consent_id + 1
        registry.update_patient(patient, total_consents=patient.total_consents + 1,
                                active_consents=patient.active_consents + 1)
        db.flush()
        audit.append(db, caller, height, audit.ACCESS_CONSENT_GRANTED, consent_id, data_categories)
    events.emit("consent-granted", consent_id=consent_id, patient_id=caller, provider_id=provider_id,
                expires_at=height + duration, height=height)
    return consent_id


def revoke_consent(db: Session, caller: str, height: int, consent_id: int) -> bool:
    with transaction(db):
        consent = get_consent(db, consent_id)
        if consent is None:
            raise LedgerError(ErrorCode.CONSENT_NOT_FOUND)
        if consent.patient_id != caller:
            raise LedgerError(ErrorCode.NOT_AUTHORIZED, "only the granting patient may revoke")
        if consent.revoked:
            raise LedgerError(ErrorCode.CONSENT_NOT_FOUND, "consent already revoked")

        consent.revoked = True
        consent.revoked_at = height
        patient = registry.get_patient(db, consent.patient_id)
        registry.update_patient(patient, active_consents=patient.active_consents - 1)
        audit.append(db, caller, height, audit.ACCESS_CONSENT_REVOKED, consent_id, consent.data_categories)
    events.emit("consent-revoked", consent_id=consent_id, patient_id=caller, height=height)
    return True


def record_access(db: Session, caller: str, height: int, consent_id: int, access_type: str) -> int:
    """Log one access by the grantee under a grant. Returns the audit log id."""
    if not access_type:
        raise LedgerError(ErrorCode.INVALID_TEXT, "access_type is empty")
    registry.require_text(access_type, models.ACCESS_TYPE_MAX, "access_type")
    with transaction(db):
        consent = get_consent(db, consent_id)
        if consent is None or consent.revoked:
            raise LedgerError(ErrorCode.CONSENT_NOT_FOUND)
        if consent.provider_id != caller:
            raise LedgerError(ErrorCode.NOT_AUTHORIZED, "caller is not the grantee")
        if not policy.evaluate_consent(consent, height):
            raise LedgerError(ErrorCode.CONSENT_EXPIRED)

        provider = registry.get_provider(db, caller)
        registry.update_provider(provider, total_data_requests=provider.total_data_requests + 1)
        entry = audit.append(db, caller, height, access_type, consent_id, consent.data_categories)
        log_id = entry.log_id
    events.emit("data-accessed", consent_id=consent_id, provider_id=caller, log_id=log_id,
                access_type=access_type, height=height)
    return log_id


def is_consent_valid(db: Session, consent_id: int, height: int) -> bool:
    return policy.evaluate_consent(get_consent(db, consent_id), height)


def consent_status(db: Session, consent_id: int, height: int) -> Optional[policy.ConsentState]:
    consent = get_consent(db, consent_id)
    if consent is None:
        return None
    return policy.consent_state(consent, height)


def read_consent(db: Session, caller: str, consent_id: int) -> models.Consent:
    """A grant is visible to its patient, its provider and the administrator."""
    consent = get_consent(db, consent_id)
    if consent is None:
        raise LedgerError(ErrorCode.CONSENT_NOT_FOUND)
    if caller not in (consent.patient_id, consent.provider_id) and not registry.is_admin(db, caller):
        raise LedgerError(ErrorCode.NOT_AUTHORIZED, "not a party to this consent")
    return consent


def list_consents(db: Session, patient_id: Optional[str] = None, provider_id: Optional[str] = None,
                  party: Optional[str] = None) -> List[models.Consent]:
    """Grants ordered by id; `party` keeps only those it granted or received."""
    q = db.query(models.Consent)
    if party is not None:
        q = q.filter(or_(models.Consent.patient_id == party, models.Consent.provider_id == party))
    if patient_id is not None:
        q = q.filter(models.Consent.patient_id == patient_id)
    if provider_id is not None:
        q = q.filter(models.Consent.provider_id == provider_id)
    return q.order_by(models.Consent.consent_id).all()
