import csv
import io
from dataclasses import replace

import pytest

from fakes import build_record, build_records
from wotc_portal_bot.domain.models import RecordCeilingExceeded, Screening, UnsupportedJurisdiction
from wotc_portal_bot.domain.services import get_jurisdiction
from wotc_portal_bot.domain.services.encoders import CERTLINK_COLUMNS, CSDC_LAYOUT, TEXAS_COLUMNS
from wotc_portal_bot.domain.services.encoders.california import occupation_code
from wotc_portal_bot.domain.services.encoders.csdc import split_wage


def _certlink_row(content: str, line: int = 1) -> dict:
    values = content.split("\n")[line].split(",")
    return dict(zip(CERTLINK_COLUMNS, values))


# ================================
# CERTLINK
# ================================


def test_certlink_header_and_quoted_text_columns(encoder):
    artifact = encoder.encode("AZ", [build_record(1)])
    lines = artifact.content.split("\n")

    assert lines[0] == ",".join(CERTLINK_COLUMNS)
    row = _certlink_row(artifact.content)
    assert row["Form8850_ApplicantSSN"] == '"123456001"'
    assert row["Form8850_ApplicantZipCode"] == '"85001"'
    assert row["Form8850_ApplicantDOB"] == '"03/14/1995"'
    assert row["Form8850_EmployerFEIN"] == '"861505473"'
    assert row["General_FormVersionID"] == "9"
    assert row["Form8850_EmployerStateCd"] == "AZ"


def test_certlink_free_text_with_commas_and_quotes_keeps_column_alignment(encoder):
    record = build_record(1, address='100 Main St, Apt "B"')
    record = replace(record, employer=replace(record.employer, name='Desert Foods, "The Kitchen" LLC'))

    content = encoder.encode("AZ", [record, build_record(2)]).content
    header, first, second = list(csv.reader(io.StringIO(content)))

    assert len(header) == len(CERTLINK_COLUMNS) == 86
    assert len(first) == len(second) == 86
    row = dict(zip(header, first))
    assert row["Form8850_ApplicantAddressLine1"] == '100 Main St, Apt "B"'
    assert row["Form8850_EmployerName"] == 'Desert Foods, "The Kitchen" LLC'
    assert row["Form8850_ApplicantSSN"] == "123456001"
    assert dict(zip(header, second))["Form8850_EmployerName"] == "Desert Foods LLC"


def test_certlink_snap_under_forty_and_ssi_from_forty(encoder):
    young = build_record(1, date_of_birth="1995-03-14")
    older = build_record(2, date_of_birth="1980-01-01")

    content = encoder.encode("AZ", [young, older]).content
    young_row, older_row = _certlink_row(content, 1), _certlink_row(content, 2)

    assert young_row["ICF_SNAP"] == "TRUE"
    assert young_row["ICF_SSI"] == "FALSE"
    assert young_row["ICF_SNAPName"] == "Applicant1 Tester"
    assert older_row["ICF_SNAP"] == "FALSE"
    assert older_row["ICF_SSI"] == "TRUE"


def test_certlink_uses_default_signer_and_record_identifier(encoder):
    record = build_record(1, id="abc123-4567")
    artifact = encoder.encode("IL", [record])
    row = _certlink_row(artifact.content)

    assert row["ICF_SignatorName"] == get_jurisdiction("IL").signers.default
    assert row["General_YourSystemsRecordIdentifier"] == "abc123"
    assert artifact.signer_field == "ICF_SignatorName"
    assert artifact.record_ids == ("abc123-4567",)


def test_certlink_validation_requires_target_group(encoder):
    record = build_record(1, groups=())
    result = encoder.validate("AZ", record.employee, record.screening)

    assert not result.valid
    assert "At least one target group must be selected" in result.errors


def test_missing_fields_are_reported_together(encoder):
    record = build_record(1, ssn="", city="")
    result = encoder.validate("KS", record.employee, record.screening)

    assert result.errors == ("SSN required", "City required")
    assert result.reason == "SSN required; City required"


# ================================
# TEXAS
# ================================


def test_texas_is_unquoted_with_delimiters_stripped(encoder):
    record = build_record(1, state="TX", address='12 Elm St, Apt "B"', groups=("SNAP", "VETERAN"))
    artifact = encoder.encode("tx", [record])
    header, line = artifact.content.split("\n")

    assert header == ",".join(TEXAS_COLUMNS)
    assert '"' not in line
    row = dict(zip(TEXAS_COLUMNS, line.split(",")))
    assert len(line.split(",")) == len(TEXAS_COLUMNS)
    assert row["address"] == "12 Elm St  Apt B"
    assert row["cein"] == "861505473"
    assert row["dob"] == "19950314"
    assert row["startingWage"] == "15.50"
    assert row["jobOnetCode"] == "41"
    assert row["snap"] == "Y"
    assert row["snapState"] == "TX"
    assert row["qualifiedVet"] == "Y"
    assert artifact.file_name == "TX_WOTC_Bulk.csv"


def test_texas_validation_rules(encoder):
    record = build_record(1, state="TX", ssn="12-345")
    unscreened = build_record(2, state="TX")

    bad_ssn = encoder.validate("TX", record.employee, record.screening)
    assert "SSN must be 9 digits (###-##-#### or #########)" in bad_ssn.errors

    screening = Screening(status="pending", target_groups=("SNAP",))
    not_screened = encoder.validate("TX", unscreened.employee, screening)
    assert not_screened.errors == ("Employee must have completed screening for WOTC",)


def test_texas_summer_youth_age_window(encoder):
    record = build_record(1, state="TX", groups=("SUMMER_YOUTH",), date_of_birth="1990-01-01")
    result = encoder.validate("TX", record.employee, record.screening)

    assert "Summer Youth requires employee age 16-17" in result.errors


# ================================
# CALIFORNIA
# ================================


def test_california_xml_escapes_and_nests_contact(encoder):
    record = build_record(1, state="CA", first_name="Ann & Co", job_title="Line Cook", occupation_code="")
    content = encoder.encode("CA", [record]).content

    assert content.startswith('<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n<wotcBatch>')
    assert "<firstName>Ann &amp; Co</firstName>" in content
    assert "<contactInfo><name>Wayne Goodwin</name></contactInfo>" in content
    assert "<occupationCode>35</occupationCode>" in content
    assert "<snapRecipientLocation>CA</snapRecipientLocation>" in content
    assert content.count("<wotcApplication>") == 1
    assert content.endswith("</wotcBatch>")


def test_california_requires_qualifying_group(encoder):
    record = build_record(1, state="CA", groups=("VETERAN",))
    result = encoder.validate("CA", record.employee, record.screening)

    assert result.errors == ("Must qualify for SNAP, SSI, TANF, or LTANF for California XML submission",)


def test_occupation_code_fallbacks():
    assert occupation_code("53") == "53"
    assert occupation_code("", "Delivery Driver") == "53"
    assert occupation_code("", "Astronaut") == "43"


# ================================
# CSDC
# ================================


def test_csdc_lines_are_fixed_width(encoder):
    records = build_records(3, state="GA")
    artifact = encoder.encode("GA", records)
    width = sum(w for _, w in CSDC_LAYOUT)
    lines = artifact.content.split("\n")

    assert len(lines) == 3
    assert all(len(line) == width for line in lines)
    assert lines[0].startswith("SCREEN      861505473123456001")
    assert "PIN123" in lines[0]
    assert artifact.file_stem == "GANOELEVENTXT"


def test_csdc_wage_split_and_default_wage(encoder):
    assert split_wage(15.5) == ("15", "50")
    assert split_wage(11.999) == ("12", "00")

    record = build_record(1, state="CO", hourly_wage=None)
    row = encoder.encoder_for("CO").build_row(record, get_jurisdiction("CO"))
    assert (row["StartingWage_Dollars_2"], row["HourlyWage_Cents"]) == ("15", "50")
    assert row["Representative_774_785_12chars"] == "GRinehart"


# ================================
# FACADE
# ================================


def test_encoding_is_deterministic(encoder):
    records = build_records(5)
    assert encoder.encode("AZ", records).content == encoder.encode("AZ", records).content


def test_record_ceiling_fails_fast(encoder):
    records = build_records(201, state="CA")
    with pytest.raises(RecordCeilingExceeded) as info:
        encoder.encode("CA", records)
    assert info.value.ceiling == 200
    assert info.value.count == 201


def test_unknown_jurisdiction(encoder):
    with pytest.raises(UnsupportedJurisdiction):
        encoder.encode("ZZ", [build_record(1)])

    record = build_record(1)
    result = encoder.validate("ZZ", record.employee, record.screening)
    assert result.errors == ("Validation not implemented for jurisdiction: ZZ",)
