# carechain/models.py
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from carechain.db import Base

NAME_MAX = 100
ORG_MAX = 100
SPECIALIZATION_MAX = 50
LICENSE_MAX = 50
CATEGORIES_MAX = 200
PURPOSE_MAX = 200
ACCESS_TYPE_MAX = 50

LEDGER_STATE_ID = 1
# consent_id recorded on audit entries that belong to no single grant
NO_CONSENT = 0


class LedgerState(Base):
    __tablename__ = "ledger_state"
    id = Column(Integer, primary_key=True)
    admin_id = Column(String, nullable=False)
    next_consent_id = Column(Integer, nullable=False, default=1)
    next_log_id = Column(Integer, nullable=False, default=1)
    total_patients = Column(Integer, nullable=False, default=0)
    total_providers = Column(Integer, nullable=False, default=0)


class Patient(Base):
    __tablename__ = "patients"
    patient_id = Column(String, primary_key=True)
    name = Column(String(NAME_MAX), nullable=False)
    registered_at = Column(Integer, nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    total_consents = Column(Integer, nullable=False, default=0)
    active_consents = Column(Integer, nullable=False, default=0)

    consents = relationship("Consent", back_populates="patient", foreign_keys="Consent.patient_id")


class Provider(Base):
    __tablename__ = "providers"
    provider_id = Column(String, primary_key=True)
    organization = Column(String(ORG_MAX), nullable=False)
    specialization = Column(String(SPECIALIZATION_MAX), nullable=False)
    license_number = Column(String(LICENSE_MAX), nullable=False)
    verified = Column(Boolean, nullable=False, default=False)
    registered_at = Column(Integer, nullable=False)
    total_data_requests = Column(Integer, nullable=False, default=0)

    consents = relationship("Consent", back_populates="provider", foreign_keys="Consent.provider_id")


class Consent(Base):
    __tablename__ = "consents"
    consent_id = Column(Integer, primary_key=True, autoincrement=False)
    patient_id = Column(String, ForeignKey("patients.patient_id"), nullable=False, index=True)
    provider_id = Column(String, ForeignKey("providers.provider_id"), nullable=False, index=True)
    data_categories = Column(String(CATEGORIES_MAX), nullable=False)
    purpose = Column(String(PURPOSE_MAX), nullable=False)
    granted = Column(Boolean, nullable=False, default=True)
    granted_at = Column(Integer, nullable=False)
    expires_at = Column(Integer, nullable=False)
    can_share_further = Column(Boolean, nullable=False, default=False)
    revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(Integer, nullable=True)

    patient = relationship("Patient", back_populates="consents", foreign_keys=[patient_id])
    provider = relationship("Provider", back_populates="consents", foreign_keys=[provider_id])


class AuditEntry(Base):
    __tablename__ = "audit_log"
    log_id = Column(Integer, primary_key=True, autoincrement=False)
    consent_id = Column(Integer, nullable=False, default=NO_CONSENT, index=True)
    accessor = Column(String, nullable=False, index=True)
    ts = Column(Integer, nullable=False)
    access_type = Column(String(ACCESS_TYPE_MAX), nullable=False)
    data_categories = Column(String(CATEGORIES_MAX), nullable=False, default="")


def ledger_state(db) -> LedgerState:
    """Load the counters row, locked for the rest of the transaction where the backend supports it."""
    return (
        db.query(LedgerState)
        .filter(LedgerState.id == LEDGER_STATE_ID)
        .with_for_update()
        .populate_existing()
        .one()
    )
