# carechain/reporting.py
from sqlalchemy.orm import Session
from carechain import models, audit, events, registry
from carechain.db import transaction
from carechain.errors import LedgerError, ErrorCode
from carechain.schemas import ProviderReport


def generate_provider_report(db: Session, caller: str, height: int, provider_id: str,
                             analysis_period: int, include_expired: bool = False) -> ProviderReport:
    """
    Point-in-time snapshot for one provider plus platform totals.

    `include_expired` is echoed back but selects nothing: the snapshot holds
    counters only, never per-grant rows. Generating a report writes one
    analytics entry to the audit log.
    """
    with transaction(db):
        provider = registry.get_provider(db, provider_id)
        if provider is None:
            raise LedgerError(ErrorCode.PROVIDER_NOT_FOUND)
        state = models.ledger_state(db)
        if caller != provider_id and caller != state.admin_id:
            raise LedgerError(ErrorCode.NOT_AUTHORIZED, "report restricted to the provider and administrator")
        if not provider.verified:
            raise LedgerError(ErrorCode.PROVIDER_NOT_VERIFIED)
        if analysis_period < 0:
            raise LedgerError(ErrorCode.INVALID_DURATION, "analysis period must not be negative")

        analysis_start = max(0, height - analysis_period)
        entry = audit.append(db, caller, height, audit.ACCESS_ANALYTICS, models.NO_CONSENT, "provider-report")
        report = ProviderReport(
            provider_id=provider.provider_id,
            organization=provider.organization,
            specialization=provider.specialization,
            license_number=provider.license_number,
            verified=provider.verified,
            registered_at=provider.registered_at,
            total_data_requests=provider.total_data_requests,
            total_patients=state.total_patients,
            total_providers=state.total_providers,
            total_consents=state.next_consent_id - 1,
            analysis_start=analysis_start,
            analysis_end=height,
            include_expired=include_expired,
            generated_by=caller,
            report_log_id=entry.log_id,
        )
    events.emit("report-generated", provider_id=provider_id, caller=caller,
                log_id=report.report_log_id, height=height)
    return report
