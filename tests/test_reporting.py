import pytest

from carechain import audit, ledger, models, registry, reporting
from carechain.errors import LedgerError, ErrorCode

ADMIN = "admin"


def test_provider_report_snapshot(db, parties):
    patient, provider = parties
    ledger.grant_consent(db, patient, 100, provider, "Labs", "diagnosis", 1000, True)
    ledger.grant_consent(db, patient, 110, provider, "Imaging", "follow-up", 500, False)

    report = reporting.generate_provider_report(db, provider, 5000, provider, 1000, include_expired=True)

    assert report.provider_id == provider
    assert report.organization == "GenHospital"
    assert report.specialization == "cardiology"
    assert report.verified is True
    assert (report.total_patients, report.total_providers, report.total_consents) == (1, 1, 2)
    assert (report.analysis_start, report.analysis_end) == (4000, 5000)
    assert report.include_expired is True
    assert report.generated_by == provider


def test_analysis_start_floors_at_zero(db, parties):
    _, provider = parties
    report = reporting.generate_provider_report(db, ADMIN, 50, provider, 1000)
    assert report.analysis_start == 0
    assert report.generated_by == ADMIN


def test_include_expired_does_not_change_totals(db, parties):
    patient, provider = parties
    ledger.grant_consent(db, patient, 100, provider, "Labs", "diagnosis", 144, True)
    with_expired = reporting.generate_provider_report(db, provider, 9000, provider, 100, True)
    without = reporting.generate_provider_report(db, provider, 9000, provider, 100, False)
    assert with_expired.total_consents == without.total_consents == 1


def test_report_is_audited(db, parties):
    _, provider = parties
    report = reporting.generate_provider_report(db, provider, 300, provider, 100)
    entry = audit.scan(db)[-1]
    assert entry.log_id == report.report_log_id
    assert entry.consent_id == models.NO_CONSENT
    assert entry.access_type == audit.ACCESS_ANALYTICS
    assert entry.accessor == provider
    assert entry.ts == 300


def test_third_party_not_authorized(db, parties):
    _, provider = parties
    with pytest.raises(LedgerError) as exc:
        reporting.generate_provider_report(db, "mallory", 300, provider, 100)
    assert exc.value.code == ErrorCode.NOT_AUTHORIZED
    assert audit.scan(db) == []


def test_unknown_provider(db):
    with pytest.raises(LedgerError) as exc:
        reporting.generate_provider_report(db, ADMIN, 300, "ghost", 100)
    assert exc.value.code == ErrorCode.PROVIDER_NOT_FOUND


def test_unverified_provider(db):
    registry.register_provider(db, "clinic", 1, "Clinic", "gp", "L")
    with pytest.raises(LedgerError) as exc:
        reporting.generate_provider_report(db, "clinic", 300, "clinic", 100)
    assert exc.value.code == ErrorCode.PROVIDER_NOT_VERIFIED
    assert models.ledger_state(db).next_log_id == 1


def test_negative_period_rejected(db, parties):
    _, provider = parties
    with pytest.raises(LedgerError) as exc:
        reporting.generate_provider_report(db, provider, 100, provider, -500)
    assert exc.value.code == ErrorCode.INVALID_DURATION
    assert models.ledger_state(db).next_log_id == 1
