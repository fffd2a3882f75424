from datetime import datetime

import pytest

from fakes import build_records, detail_row, error_table
from wotc_portal_bot.application.services.portal_layouts import CERTLINK_LAYOUT, TEXAS_LAYOUT, CALIFORNIA_LAYOUT, layout_for
from wotc_portal_bot.domain.models import (
    ConfigurationError,
    DriverState,
    ErrorKind,
    ErrorRow,
    InvalidTransition,
    PortalFamily,
    RowAction,
    SignatorRotation,
    TableRow,
)
from wotc_portal_bot.domain.services import (
    DriverStateMachine,
    ErrorClassifier,
    RetryPolicy,
    dedupe,
    get_jurisdiction,
    messages_by_record,
    parse_detail_table,
    parse_message_list,
)

SIGNER_MESSAGE = "Signator listed is not on employer's power of attorney"


# ================================
# ERROR TABLE PARSING
# ================================


def test_detail_rows_inherit_applicant_header_and_skip_warnings():
    rows = [
        TableRow("Applicant Name: Jane Roe Reference Number: 0A1B2C3D", ("Applicant Name: Jane Roe Reference Number: 0A1B2C3D",)),
        detail_row(3, "SSN is invalid", "Form8850_ApplicantSSN"),
        detail_row(3, "Zip looks unusual", "Form8850_ApplicantZipCode", severity="Warning"),
        TableRow("", ()),
        detail_row(4, SIGNER_MESSAGE, "ICF_SignatorName"),
    ]

    errors = parse_detail_table(rows)

    assert [(e.row_number, e.field_name) for e in errors] == [(3, "Form8850_ApplicantSSN"), (4, "ICF_SignatorName")]
    assert errors[0].applicant_name == "Jane Roe"
    assert errors[0].reference_id == "0a1b2c3d"
    assert errors[1].reference_id == "0a1b2c3d"


def test_message_list_takes_row_number_from_text():
    errors = parse_message_list(["Row 2: SSN is invalid", "", "File header is missing", "record #7 has no hire date"])

    assert [e.row_number for e in errors] == [2, 0, 7]
    assert errors[1].message == "File header is missing"


def test_address_line_field_is_not_read_as_a_row():
    errors = parse_message_list(
        [
            "Address Line 1 is required for applicant in row 3",
            "Address Line 1 is too long for record 3",
            "Address Line 2 is required",
            "Line 4: SSN is invalid",
            "Unexpected value on line 5",
        ]
    )

    assert [e.row_number for e in errors] == [3, 3, 0, 4, 5]


def test_dedupe_keeps_first_occurrence():
    first = ErrorRow(row_number=1, message="bad", reference_id="a")
    rows = [first, ErrorRow(row_number=1, message="bad", reference_id="a", field_name="other"), ErrorRow(2, "bad")]

    assert dedupe(rows) == [first, ErrorRow(2, "bad")]


# ================================
# CLASSIFIER
# ================================


def test_signer_only_rows_are_fixed_when_another_candidate_exists():
    classifier = ErrorClassifier()
    rows = [ErrorRow(1, SIGNER_MESSAGE), ErrorRow(2, SIGNER_MESSAGE), ErrorRow(2, "SSN is invalid"), ErrorRow(3, "DOB required")]

    result = classifier.classify(rows, candidate_count=2)

    kinds = {v.row_number: v.kind for v in result.verdicts}
    assert kinds == {1: ErrorKind.SIGNER_ONLY, 2: ErrorKind.MIXED, 3: ErrorKind.OTHER}
    assert result.fix_rows == (1,)
    assert result.remove_rows == (2, 3)
    assert result.is_actionable


def test_signer_rows_are_removed_without_alternative_signer():
    result = ErrorClassifier().classify([ErrorRow(1, SIGNER_MESSAGE)], candidate_count=1)

    assert result.verdicts[0].action == RowAction.REMOVE


def test_rows_without_row_number_are_unattributed():
    result = ErrorClassifier().classify([ErrorRow(0, "File could not be parsed")], candidate_count=2)

    assert not result.is_actionable
    assert result.unattributed[0].message == "File could not be parsed"


def test_messages_by_record_joins_distinct_messages():
    rows = [
        ErrorRow(1, "SSN is invalid", field_name="SSN", record_id="r1"),
        ErrorRow(1, "SSN is invalid", field_name="SSN", record_id="r1"),
        ErrorRow(1, "DOB required", record_id="r1"),
        ErrorRow(0, "Unattributed"),
    ]

    assert messages_by_record(rows) == {"r1": "SSN: SSN is invalid; DOB required"}


# ================================
# ARTIFACT CORRECTION
# ================================


def test_corrected_artifact_drops_rows_and_rotates_signers(encoder):
    artifact = encoder.encode("AZ", build_records(4))
    rotation = get_jurisdiction("AZ").signers

    corrected = artifact.corrected(remove_rows=[2], fix_rows=[1, 2], rotation=rotation)

    assert corrected.record_ids == ("rec-01", "rec-03", "rec-04")
    assert corrected.rows[0]["ICF_SignatorName"] == "Philip Wentworth, CEO"
    assert corrected.rows[1]["ICF_SignatorName"] == "David Young"
    assert artifact.row_count == 4
    assert '"Philip Wentworth, CEO"' in corrected.content


def test_signer_rotation_wraps_and_handles_unknown_names():
    rotation = SignatorRotation(("A", "B", "C"))

    assert rotation.next_after("C") == "A"
    assert rotation.next_after("Z") == "B"
    assert not SignatorRotation(("A",)).can_rotate


def test_record_id_for_row_is_one_based(encoder):
    artifact = encoder.encode("AZ", build_records(2))

    assert artifact.record_id_for_row(1) == "rec-01"
    assert artifact.record_id_for_row(2) == "rec-02"
    assert artifact.record_id_for_row(0) is None
    assert artifact.record_id_for_row(3) is None


# ================================
# STATE MACHINE
# ================================


def test_state_machine_records_history_and_rejects_illegal_moves():
    seen = []
    machine = DriverStateMachine(on_enter=lambda previous, target: seen.append((previous, target)))

    machine.move(DriverState.LOGGING_IN)
    machine.move(DriverState.DASHBOARD)
    with pytest.raises(InvalidTransition):
        machine.move(DriverState.CONFIRMING)

    assert machine.history == [DriverState.LOGGED_OUT, DriverState.LOGGING_IN, DriverState.DASHBOARD]
    assert seen[-1] == (DriverState.LOGGING_IN, DriverState.DASHBOARD)


def test_abort_is_terminal():
    machine = DriverStateMachine()
    machine.abort()
    machine.abort()

    assert machine.is_terminal
    assert machine.history == [DriverState.LOGGED_OUT, DriverState.ABORTED]
    assert not machine.can_move(DriverState.LOGGING_IN)


# ================================
# RETRY POLICY
# ================================


def test_backoff_doubles_per_retry():
    policy = RetryPolicy(max_retries=3, base_delay_seconds=5)
    now = datetime(2026, 1, 5, 9, 0, 0)

    assert [policy.backoff_seconds(n) for n in (1, 2, 3)] == [5, 10, 20]
    assert policy.next_retry_at(now, 2) == datetime(2026, 1, 5, 9, 0, 10)
    assert policy.should_retry(2)
    assert not policy.should_retry(3)


def test_retry_policy_validates_settings():
    with pytest.raises(ValueError):
        RetryPolicy(max_retries=0)
    with pytest.raises(ValueError):
        RetryPolicy(base_delay_seconds=0)


# ================================
# LAYOUTS
# ================================


def test_confirmation_patterns_per_portal():
    assert TEXAS_LAYOUT.extract_confirmations("Success! Claim number range: 1001 to 1010.") == ["1001 to 1010"]
    assert CERTLINK_LAYOUT.extract_confirmations("Batch ID: 20451 created. Batch ID: 20451") == ["20451"]
    assert CALIFORNIA_LAYOUT.extract_confirmations("Upload received, batch 7781 queued") == ["7781"]
    assert CERTLINK_LAYOUT.extract_confirmations("Thank you") == []


def test_page_links_and_missing_layouts():
    assert CERTLINK_LAYOUT.page_link(2)[1] == "a[aria-controls='tblBatchDetails'][aria-label='Page 2']"
    assert TEXAS_LAYOUT.page_link(2) is None
    with pytest.raises(ConfigurationError):
        layout_for(PortalFamily.CSDC)


def test_error_table_helper_matches_parser():
    errors = parse_detail_table(error_table((2, "SSN is invalid"), (5, "DOB required", "Form8850_ApplicantDOB")))

    assert [(e.row_number, e.message) for e in errors] == [(2, "SSN is invalid"), (5, "DOB required")]
    assert errors[1].field_name == "Form8850_ApplicantDOB"
