# carechain/errors.py
from enum import IntEnum


class ErrorCode(IntEnum):
    NOT_AUTHORIZED = 100
    PATIENT_NOT_FOUND = 101
    PROVIDER_NOT_FOUND = 102
    CONSENT_NOT_FOUND = 103
    INVALID_DURATION = 104
    CONSENT_EXPIRED = 105
    ALREADY_EXISTS = 106
    INVALID_PURPOSE = 107
    PROVIDER_NOT_VERIFIED = 108
    INVALID_TEXT = 109


class LedgerError(Exception):
    """A failed precondition. Nothing was committed by the failing call."""

    def __init__(self, code: ErrorCode, detail: str = ""):
        self.code = code
        self.detail = detail
        super().__init__(f"{code.name}: {detail}" if detail else code.name)
