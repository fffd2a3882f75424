import asyncio

import pytest

from fakes import FakeBrowserService, build_records, error_table, portal_config
from wotc_portal_bot.application.services import BatchPortalDriver, LoggingService
from wotc_portal_bot.application.services.portal_layouts import CALIFORNIA_LAYOUT, CERTLINK_LAYOUT, TEXAS_LAYOUT
from wotc_portal_bot.domain.models import DriverState, TableRow

SIGNER_MESSAGE = "Signator listed is not on employer's power of attorney"


@pytest.fixture
def make_driver(timing, logger, tmp_path):
    def _make(browser, max_attempts=3):
        return BatchPortalDriver(
            browser_factory=lambda session_logger: browser,
            timing_service=timing,
            logging_service=logger,
            max_attempts=max_attempts,
            screenshot_dir=str(tmp_path / "screenshots"),
            upload_dir=str(tmp_path / "uploads"),
        )

    return _make


def _submit(driver, artifact, config=None):
    return asyncio.run(driver.submit(artifact, config or portal_config()))


def test_recovers_over_three_attempts_and_submits_clean_rows(make_driver, encoder):
    browser = FakeBrowserService(
        validation_passes=[
            error_table(*[(row, "SSN is invalid") for row in (2, 4, 6, 8, 10)]),
            error_table((1, "DOB required"), (3, "Hire date is in the future")),
        ]
    )
    artifact = encoder.encode("AZ", build_records(10))

    result = _submit(make_driver(browser), artifact)

    assert result.success
    assert result.attempts == 3
    assert result.submitted_record_ids == ("rec-03", "rec-07", "rec-09")
    assert result.records_submitted == 3
    assert result.records_rejected == 7
    assert result.confirmation_numbers == ("20451",)
    assert {row.record_id for row in result.rejected_rows} == {
        "rec-01", "rec-02", "rec-04", "rec-05", "rec-06", "rec-08", "rec-10"
    }
    assert browser.upload_count == 3
    assert len(browser.uploads[2].split("\n")) == 4
    assert browser.clicks.count(CERTLINK_LAYOUT.delete_button) == 2
    assert browser.clicks.count(CERTLINK_LAYOUT.delete_confirm_button) == 2
    assert result.state_history[-1] == DriverState.DONE
    assert browser.closed


def test_login_types_credentials_and_ticks_agreement(make_driver, encoder):
    browser = FakeBrowserService()

    result = _submit(make_driver(browser), encoder.encode("AZ", build_records(2)))

    assert result.success
    assert browser.typed[CERTLINK_LAYOUT.username_field] == "bot@example.com"
    assert browser.typed[CERTLINK_LAYOUT.password_field] == "s3cret"
    assert CERTLINK_LAYOUT.agreement_checkbox in browser.clicks
    assert result.state_history[:3] == (DriverState.LOGGED_OUT, DriverState.LOGGING_IN, DriverState.DASHBOARD)


def test_signer_rejections_rotate_to_next_candidate(make_driver, encoder):
    browser = FakeBrowserService(validation_passes=[error_table((2, SIGNER_MESSAGE, "ICF_SignatorName"))])
    artifact = encoder.encode("AZ", build_records(3))

    result = _submit(make_driver(browser), artifact)

    assert result.success
    assert result.submitted_record_ids == ("rec-01", "rec-02", "rec-03")
    second_upload = browser.uploads[1].split("\n")
    assert '"Philip Wentworth, CEO"' in second_upload[2]
    assert '"Philip Wentworth, CEO"' not in second_upload[1]


def test_exhausted_attempts_fail_with_union_of_rejections(make_driver, encoder):
    browser = FakeBrowserService(validation_passes=[error_table((1, "SSN is invalid"))] * 3)

    result = _submit(make_driver(browser), encoder.encode("AZ", build_records(10)))

    assert not result.success
    assert result.message == "Failed after 3 attempts. Some errors could not be resolved."
    assert result.attempts == 3
    assert result.records_submitted == 0
    assert result.records_rejected == 10
    assert [row.record_id for row in result.rejected_rows] == ["rec-01", "rec-02", "rec-03"]
    assert result.state_history[-1] == DriverState.ABORTED
    assert browser.closed


def test_all_rows_rejected_leaves_nothing_to_submit(make_driver, encoder):
    browser = FakeBrowserService(validation_passes=[error_table((1, "SSN is invalid"), (2, "DOB required"))])

    result = _submit(make_driver(browser), encoder.encode("AZ", build_records(2)))

    assert not result.success
    assert result.message == "All records had errors after 1 attempt(s). No clean records remain."
    assert browser.upload_count == 1


def test_login_failure_never_uploads(make_driver, encoder):
    browser = FakeBrowserService(login_ok=False)

    result = _submit(make_driver(browser), encoder.encode("AZ", build_records(2)))

    assert not result.success
    assert result.message.startswith("Login failed - did not reach dashboard")
    assert browser.upload_count == 0
    assert DriverState.LOGGED_OUT in result.state_history[1:]
    assert browser.closed


def test_validation_timeout_consumes_one_attempt(make_driver, encoder):
    browser = FakeBrowserService(validation_timeouts=1)

    result = _submit(make_driver(browser), encoder.encode("AZ", build_records(2)))

    assert result.success
    assert result.attempts == 2
    assert browser.upload_count == 2
    assert any("attempt1_error" in path for path in browser.screenshots)


def test_texas_message_list_flow_reads_claim_range(make_driver, encoder):
    browser = FakeBrowserService(
        layout=TEXAS_LAYOUT,
        validation_passes=[["Row 2: SSN is invalid"]],
        receipt="Submitted. Claim number range: 5001 to 5002",
    )
    artifact = encoder.encode("TX", build_records(3, state="TX"))

    result = _submit(make_driver(browser), artifact, portal_config("TX"))

    assert result.success
    assert result.submitted_record_ids == ("rec-01", "rec-03")
    assert result.confirmation_numbers == ("5001 to 5002",)
    for checkbox in TEXAS_LAYOUT.pre_confirm_checkboxes:
        assert checkbox in browser.clicks
    assert result.rejected_rows[0].record_id == "rec-02"


def test_errors_naming_no_row_abort_the_upload(make_driver, encoder):
    browser = FakeBrowserService(layout=TEXAS_LAYOUT, validation_passes=[["File header is missing"]])

    result = _submit(make_driver(browser), encoder.encode("TX", build_records(2, state="TX")), portal_config("TX"))

    assert not result.success
    assert "name no row" in result.message
    assert browser.upload_count == 1
    assert result.state_history[-1] == DriverState.ABORTED


def test_jurisdiction_without_browser_portal_fails_without_browser(make_driver, encoder):
    browser = FakeBrowserService()

    result = _submit(make_driver(browser), encoder.encode("GA", build_records(1, state="GA")), portal_config("GA"))

    assert not result.success
    assert "No browser portal layout" in result.message
    assert not browser.started


def test_address_line_error_removes_the_row_it_names(make_driver, encoder):
    browser = FakeBrowserService(layout=TEXAS_LAYOUT, validation_passes=[["Address Line 1 is too long for record 3"]])

    result = _submit(make_driver(browser), encoder.encode("TX", build_records(3, state="TX")), portal_config("TX"))

    assert result.success
    assert result.submitted_record_ids == ("rec-01", "rec-02")
    assert [row.record_id for row in result.rejected_rows] == ["rec-03"]


# ================================
# CALIFORNIA
# ================================


def _receipt_row(index):
    return TableRow(f"861505473 12345600{index}", ("861505473", f"123-45-{6000 + index:04d}"))


def test_california_clean_upload_reads_receipt_without_login_form(make_driver, encoder):
    browser = FakeBrowserService(
        layout=CALIFORNIA_LAYOUT,
        missing=[CALIFORNIA_LAYOUT.username_field],
        receipt="Batch ID: 7781. 3 applications successfully accepted. 0 applications rejected.",
    )
    artifact = encoder.encode("CA", build_records(3, state="CA"))

    result = _submit(make_driver(browser), artifact, portal_config("CA"))

    assert result.success
    assert result.submitted_record_ids == ("rec-01", "rec-02", "rec-03")
    assert result.confirmation_numbers == ("7781",)
    assert (result.receipt_accepted, result.receipt_rejected) == (3, 0)
    assert CALIFORNIA_LAYOUT.login_button not in browser.clicks
    assert CALIFORNIA_LAYOUT.upload_button in browser.clicks
    assert browser.upload_count == 1
    assert result.state_history[-1] == DriverState.DONE


def test_california_row_error_reuploads_without_portal_delete(make_driver, encoder):
    browser = FakeBrowserService(
        layout=CALIFORNIA_LAYOUT,
        validation_passes=[["Record 2: SSN is invalid"]],
        receipt="Batch ID: 7790. 2 applications successfully accepted.",
    )

    result = _submit(make_driver(browser), encoder.encode("CA", build_records(3, state="CA")), portal_config("CA"))

    assert result.success
    assert result.submitted_record_ids == ("rec-01", "rec-03")
    assert browser.upload_count == 2
    assert "123456002" not in browser.uploads[1]
    assert DriverState.DELETED in result.state_history


def test_california_file_level_error_aborts(make_driver, encoder):
    browser = FakeBrowserService(layout=CALIFORNIA_LAYOUT, validation_passes=[["The uploaded file is not valid XML"]])

    result = _submit(make_driver(browser), encoder.encode("CA", build_records(2, state="CA")), portal_config("CA"))

    assert not result.success
    assert "name no row" in result.message
    assert browser.upload_count == 1
    assert result.state_history[-1] == DriverState.ABORTED


def test_california_partial_receipt_submits_only_listed_applicants(make_driver, encoder):
    browser = FakeBrowserService(
        layout=CALIFORNIA_LAYOUT,
        receipt="Batch ID: 7781. 3 applications successfully accepted. 2 applications rejected.",
        receipt_rows=[_receipt_row(1), _receipt_row(3), _receipt_row(4)],
    )

    result = _submit(make_driver(browser), encoder.encode("CA", build_records(5, state="CA")), portal_config("CA"))

    assert result.success
    assert result.submitted_record_ids == ("rec-01", "rec-03", "rec-04")
    assert result.records_submitted == 3
    assert result.records_rejected == 2
    assert {row.record_id for row in result.rejected_rows} == {"rec-02", "rec-05"}
    assert "partial acceptance" in result.message
    assert browser.upload_count == 1


def test_california_partial_receipt_without_table_confirms_nothing(make_driver, encoder):
    browser = FakeBrowserService(
        layout=CALIFORNIA_LAYOUT,
        receipt="Batch ID: 7781. 3 applications successfully accepted. 2 applications rejected.",
    )

    result = _submit(make_driver(browser), encoder.encode("CA", build_records(5, state="CA")), portal_config("CA"))

    assert result.success
    assert result.submitted_record_ids == ()
    assert result.receipt_accepted == 3
    assert len(result.rejected_rows) == 5
    assert "does not say which" in result.rejected_rows[0].message
    assert browser.upload_count == 1


def test_session_logs_and_browser_carry_the_job_prefix(timing, tmp_path, capsys, encoder):
    browser = FakeBrowserService()
    loggers = []

    def factory(session_logger):
        loggers.append(session_logger)
        return browser

    driver = BatchPortalDriver(
        browser_factory=factory,
        timing_service=timing,
        logging_service=LoggingService(log_level="INFO", prefix="driver"),
        screenshot_dir=str(tmp_path / "screenshots"),
        upload_dir=str(tmp_path / "uploads"),
    )

    result = asyncio.run(driver.submit(encoder.encode("AZ", build_records(1)), portal_config(), job_id="42"))

    assert result.success
    assert loggers[0].prefix == "driver/job-42"
    assert "[driver/job-42] ✅ [AZ] Login successful" in capsys.readouterr().out
