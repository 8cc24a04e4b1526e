# carechain/main.py
from fastapi import FastAPI, Depends, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from typing import Optional, Tuple
from sqlalchemy.orm import Session
import os
import structlog
from carechain.db import SessionLocal, init_db
from carechain import audit, events, ledger, policy, registry, reporting, schemas, utils
from carechain.errors import LedgerError, ErrorCode

ADMIN_ID = os.environ.get("CARECHAIN_ADMIN_ID", "admin")

events.configure_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(title="CareChain Consent Ledger")

# Initialize DB
init_db(ADMIN_ID)

STATUS_BY_CODE = {
    ErrorCode.NOT_AUTHORIZED: 403,
    ErrorCode.PATIENT_NOT_FOUND: 404,
    ErrorCode.PROVIDER_NOT_FOUND: 404,
    ErrorCode.CONSENT_NOT_FOUND: 404,
    ErrorCode.ALREADY_EXISTS: 409,
    ErrorCode.CONSENT_EXPIRED: 410,
}


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_call(authorization: str = Header(...)) -> Tuple[str, int]:
    """Caller identity and block height, as vouched for by the dispatcher."""
    scheme, _, token = authorization.partition(" ")
    claims = utils.verify_dispatch(token) if scheme.lower() == "bearer" else {}
    if not claims.get("sub") or not isinstance(claims.get("height"), int):
        raise HTTPException(401, "invalid dispatch token")
    return claims["sub"], claims["height"]


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info("call_rejected", path=request.url.path, error=exc.code.name)
    return JSONResponse(status_code=STATUS_BY_CODE.get(exc.code, 400),
                        content={"error": exc.code.name, "code": int(exc.code), "detail": exc.detail})


def _consent_out(consent, height: int) -> schemas.ConsentOut:
    out = schemas.ConsentOut.model_validate(consent)
    out.status = policy.consent_state(consent, height).value
    out.valid = policy.evaluate_consent(consent, height)
    return out


# --- Identity registry
@app.post("/patients", response_model=schemas.PatientOut)
def register_patient(payload: schemas.PatientIn, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    patient_id = registry.register_patient(db, caller, height, payload.name)
    return registry.get_patient(db, patient_id)


@app.post("/providers", response_model=schemas.ProviderOut)
def register_provider(payload: schemas.ProviderIn, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    provider_id = registry.register_provider(db, caller, height, payload.organization,
                                             payload.specialization, payload.license_number)
    return registry.get_provider(db, provider_id)


@app.post("/patients/{patient_id}/verify")
def verify_patient(patient_id: str, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    return {"ok": registry.verify_patient(db, caller, height, patient_id)}


@app.post("/providers/{provider_id}/verify")
def verify_provider(provider_id: str, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    return {"ok": registry.verify_provider(db, caller, height, provider_id)}


@app.get("/patients/{patient_id}", response_model=schemas.PatientOut)
def get_patient(patient_id: str, db: Session = Depends(get_db)):
    patient = registry.get_patient(db, patient_id)
    if not patient:
        raise LedgerError(ErrorCode.PATIENT_NOT_FOUND)
    return patient


@app.get("/providers/{provider_id}", response_model=schemas.ProviderOut)
def get_provider(provider_id: str, db: Session = Depends(get_db)):
    provider = registry.get_provider(db, provider_id)
    if not provider:
        raise LedgerError(ErrorCode.PROVIDER_NOT_FOUND)
    return provider


@app.get("/patients/{patient_id}/verified")
def patient_verified(patient_id: str, db: Session = Depends(get_db)):
    return {"verified": registry.is_patient_verified(db, patient_id)}


@app.get("/providers/{provider_id}/verified")
def provider_verified(provider_id: str, db: Session = Depends(get_db)):
    return {"verified": registry.is_provider_verified(db, provider_id)}


# --- Consent ledger
@app.post("/consents")
def grant_consent(payload: schemas.ConsentIn, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    consent_id = ledger.grant_consent(db, caller, height, payload.provider_id, payload.data_categories,
                                      payload.purpose, payload.duration, payload.can_share_further)
    return {"consent_id": consent_id}


@app.post("/consents/{consent_id}/revoke")
def revoke_consent(consent_id: int, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    return {"ok": ledger.revoke_consent(db, caller, height, consent_id)}


@app.post("/consents/{consent_id}/access")
def record_access(consent_id: int, payload: schemas.AccessIn, call=Depends(get_call),
                  db: Session = Depends(get_db)):
    caller, height = call
    return {"log_id": ledger.record_access(db, caller, height, consent_id, payload.access_type)}


@app.get("/consents/{consent_id}", response_model=schemas.ConsentOut)
def get_consent(consent_id: int, call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    consent = ledger.read_consent(db, caller, consent_id)
    return _consent_out(consent, height)


@app.get("/consents/{consent_id}/valid")
def consent_valid(consent_id: int, call=Depends(get_call), db: Session = Depends(get_db)):
    _, height = call
    return {"valid": ledger.is_consent_valid(db, consent_id, height)}


@app.get("/consents")
def list_consents(patient_id: Optional[str] = Query(None), provider_id: Optional[str] = Query(None),
                  call=Depends(get_call), db: Session = Depends(get_db)):
    caller, height = call
    party = None if registry.is_admin(db, caller) else caller
    consents = ledger.list_consents(db, patient_id=patient_id, provider_id=provider_id, party=party)
    return {"consents": [_consent_out(c, height) for c in consents]}


# --- Audit log
@app.get("/audit", response_model=schemas.AuditPage)
def scan_audit(after_id: int = Query(0, ge=0), limit: Optional[int] = Query(None, ge=1),
               consent_id: Optional[int] = None, accessor: Optional[str] = None,
               start: Optional[int] = None, end: Optional[int] = None,
               call=Depends(get_call), db: Session = Depends(get_db)):
    caller, _ = call
    # the administrator reads the whole trail, everyone else only what concerns them
    party = None if registry.is_admin(db, caller) else caller
    if consent_id is not None:
        if party is not None:
            ledger.read_consent(db, caller, consent_id)
        entries = audit.by_consent(db, consent_id, party=party)
    elif accessor is not None:
        entries = audit.by_accessor(db, accessor, party=party)
    elif start is not None or end is not None:
        entries = audit.in_range(db, start or 0, end, party=party)
    else:
        entries = audit.scan(db, after_id=after_id, limit=limit, party=party)
    return {"entries": [schemas.AuditOut.model_validate(e) for e in entries]}


# --- Reporting
@app.post("/providers/{provider_id}/report", response_model=schemas.ProviderReport)
def provider_report(provider_id: str, payload: schemas.ReportIn, call=Depends(get_call),
                    db: Session = Depends(get_db)):
    caller, height = call
    return reporting.generate_provider_report(db, caller, height, provider_id,
                                              payload.analysis_period, payload.include_expired)
