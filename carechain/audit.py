# carechain/audit.py
"""
Append-only audit trail.

Entries are keyed by `next_log_id` from the ledger counters. Nothing in this
module updates or deletes a row; `append` is the only writer and must run
inside the caller's `db.transaction` so the id and the row commit together.

Every query takes an optional `party`: when set, only entries the party wrote
or entries tied to a grant the party is patient or provider of are returned.
"""
from typing import List, Optional
from sqlalchemy import or_, select
from sqlalchemy.orm import Session
from carechain import models

ACCESS_CONSENT_GRANTED = "consent-granted"
ACCESS_CONSENT_REVOKED = "consent-revoked"
ACCESS_ANALYTICS = "analytics-report"


def append(db: Session, accessor: str, height: int, access_type: str,
           consent_id: int = models.NO_CONSENT, data_categories: str = "") -> models.AuditEntry:
    db.flush()
    state = models.ledger_state(db)
    entry = models.AuditEntry(log_id=state.next_log_id, consent_id=consent_id, accessor=accessor,
                              ts=height, access_type=access_type, data_categories=data_categories)
    db.add(entry)
    state.next_log_id += 1
    db.flush()
    return entry


def _query(db: Session, party: Optional[str]):
    q = db.query(models.AuditEntry)
    if party is not None:
        own_grants = select(models.Consent.consent_id).where(
            or_(models.Consent.patient_id == party, models.Consent.provider_id == party))
        q = q.filter(or_(models.AuditEntry.accessor == party, models.AuditEntry.consent_id.in_(own_grants)))
    return q


def scan(db: Session, after_id: int = 0, limit: Optional[int] = None,
         party: Optional[str] = None) -> List[models.AuditEntry]:
    q = _query(db, party).filter(models.AuditEntry.log_id > after_id).order_by(models.AuditEntry.log_id)
    if limit is not None:
        q = q.limit(limit)
    return q.all()


def by_consent(db: Session, consent_id: int, party: Optional[str] = None) -> List[models.AuditEntry]:
    return (_query(db, party)
            .filter(models.AuditEntry.consent_id == consent_id)
            .order_by(models.AuditEntry.log_id).all())


def by_accessor(db: Session, accessor: str, party: Optional[str] = None) -> List[models.AuditEntry]:
    return (_query(db, party)
            .filter(models.AuditEntry.accessor == accessor)
            .order_by(models.AuditEntry.log_id).all())


def in_range(db: Session, start: int, end: Optional[int] = None,
             party: Optional[str] = None) -> List[models.AuditEntry]:
    """Entries with start <= ts <= end; an open end reads to the latest entry."""
    q = _query(db, party).filter(models.AuditEntry.ts >= start)
    if end is not None:
        q = q.filter(models.AuditEntry.ts <= end)
    return q.order_by(models.AuditEntry.log_id).all()
