# carechain/policy.py
from enum import Enum

# ~24 hours and ~1 year of blocks at ten minutes per block
MIN_DURATION = 144
MAX_DURATION = 52560


class ConsentState(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"
    REVOKED = "revoked"


def is_valid_duration(blocks: int) -> bool:
    return MIN_DURATION <= blocks <= MAX_DURATION


def evaluate_consent(consent_record, height: int) -> bool:
    """
    Validity predicate for a grant: granted, never revoked and not past expiry.
    Revocation is terminal, so an unexpired revoked grant is still invalid.
    """
    if consent_record is None:
        return False
    if not consent_record.granted or consent_record.revoked:
        return False
    return height <= consent_record.expires_at


def consent_state(consent_record, height: int) -> ConsentState:
    if consent_record.revoked:
        return ConsentState.REVOKED
    if height > consent_record.expires_at:
        return ConsentState.EXPIRED
    return ConsentState.ACTIVE


def text_within(value: str, limit: int) -> bool:
    return value is not None and len(value) <= limit
