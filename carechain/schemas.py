# carechain/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from carechain import models


class PatientIn(BaseModel):
    name: str = Field(..., max_length=models.NAME_MAX)


class ProviderIn(BaseModel):
    organization: str = Field(..., max_length=models.ORG_MAX)
    specialization: str = Field(..., max_length=models.SPECIALIZATION_MAX)
    license_number: str = Field(..., max_length=models.LICENSE_MAX)


class PatientOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    patient_id: str
    name: str
    registered_at: int
    verified: bool
    total_consents: int
    active_consents: int


class ProviderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    provider_id: str
    organization: str
    specialization: str
    license_number: str
    verified: bool
    registered_at: int
    total_data_requests: int


class ConsentIn(BaseModel):
    provider_id: str
    data_categories: str = Field(..., max_length=models.CATEGORIES_MAX)
    # emptiness is a ledger error, not a validation error
    purpose: str = Field(..., max_length=models.PURPOSE_MAX)
    duration: int
    can_share_further: bool = False


class ConsentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    consent_id: int
    patient_id: str
    provider_id: str
    data_categories: str
    purpose: str
    granted: bool
    granted_at: int
    expires_at: int
    can_share_further: bool
    revoked: bool
    revoked_at: Optional[int] = None
    status: Optional[str] = None
    valid: Optional[bool] = None


class AccessIn(BaseModel):
    access_type: str = Field(..., min_length=1, max_length=models.ACCESS_TYPE_MAX)


class AuditOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    log_id: int
    consent_id: int
    accessor: str
    ts: int
    access_type: str
    data_categories: str


class AuditPage(BaseModel):
    entries: List[AuditOut]


class ReportIn(BaseModel):
    analysis_period: int = Field(..., ge=0)
    include_expired: bool = False


class ProviderReport(BaseModel):
    provider_id: str
    organization: str
    specialization: str
    license_number: str
    verified: bool
    registered_at: int
    total_data_requests: int
    total_patients: int
    total_providers: int
    total_consents: int
    analysis_start: int
    analysis_end: int
    include_expired: bool
    generated_by: str
    report_log_id: int
