"""Texas Workforce Commission OLS bulk upload CSV."""

import re
from typing import Dict

from ...models.artifact import ArtifactFormat, DelimitedFormat, ValidationResult
from ...models.jurisdiction import JurisdictionDescriptor, PortalFamily
from ...models.records import Employee, Screening, SubmissionRecord
from ..formatting import digits_only, format_date, format_wage, has_group, strip_delimiters, yes_no
from .base import JurisdictionEncoder, required_field_errors

TEXAS_COLUMNS = (
    "cein",
    "fein",
    "ssn",
    "dob",
    "hireDate",
    "startDate",
    "lastName",
    "firstName",
    "address",
    "city",
    "state",
    "zip",
    "startingWage",
    "jobOnetCode",
    "q1_condCert",
    "q2_metConditions",
    "q3_uVet6",
    "q4_dVet",
    "q5_dUVet6",
    "q6_tanfPayments",
    "q7_u27",
    "qualifiedIva",
    "qualifiedIvaState",
    "qualifiedVet",
    "qualifiedVetState",
    "uVet4Weeks",
    "uVet6Months",
    "dVet",
    "dUVet6Months",
    "exFelon",
    "exFelonTypeFederal",
    "exFelonTypeState",
    "dcr",
    "dcrResidesInRRC",
    "dcrResidesInEZ",
    "vocRehab",
    "summerYouth",
    "snap",
    "snapState",
    "ssi",
    "ltfar",
    "ltfarState",
    "ltu",
    "lturState",
    "sourceDocs",
)

DATE_PATTERN = "%Y%m%d"
SSN_SHAPE = re.compile(r"^\d{3}-?\d{2}-?\d{4}$")
COMPLETED_SCREENING_STATUSES = ("eligible", "certified", "completed")


def onet_prefix(code: str) -> str:
    """Two-digit O*NET major group, or empty when the code does not start with digits."""
    head = (code or "")[:2]
    return head if len(head) == 2 and head.isdigit() else ""


class TexasEncoder(JurisdictionEncoder):
    """
    Encoder for the 45-column TWC bulk file.

    The portal rejects quoted fields, so nothing is quoted: free text has
    commas replaced by spaces and quotes removed instead. Dates are
    ``YYYYMMDD``.
    """

    family = PortalFamily.TEXAS_OLS

    def artifact_format(self, descriptor: JurisdictionDescriptor) -> ArtifactFormat:
        return DelimitedFormat(columns=TEXAS_COLUMNS, quoting=False)

    def build_row(self, record: SubmissionRecord, descriptor: JurisdictionDescriptor) -> Dict[str, str]:
        e, groups = record.employee, record.screening.target_groups

        is_tanf = has_group(groups, "TANF")
        is_ltanf = has_group(groups, "LTANF", "LTFAR")
        is_snap = has_group(groups, "SNAP")
        is_ssi = has_group(groups, "SSI")
        is_vet = has_group(groups, "Vet", "VETERAN")
        is_felon = has_group(groups, "Felon", "EXFELON")
        is_vet_disabled = has_group(groups, "VETERAN_DISABLED", "DV")

        return {
            "cein": digits_only(self.options.consultant_ein),
            "fein": digits_only(record.employer.fein),
            "ssn": digits_only(e.ssn),
            "dob": format_date(e.date_of_birth, DATE_PATTERN),
            "hireDate": format_date(e.effective_hire_date, DATE_PATTERN),
            "startDate": format_date(e.effective_start_date, DATE_PATTERN),
            "lastName": strip_delimiters(e.last_name),
            "firstName": strip_delimiters(e.first_name),
            "address": strip_delimiters(e.address),
            "city": strip_delimiters(e.city),
            "state": "TX",
            "zip": digits_only(e.zip_code),
            "startingWage": format_wage(e.hourly_wage),
            "jobOnetCode": onet_prefix(e.occupation_code),
            "q1_condCert": "N",
            "q2_metConditions": yes_no(is_snap or is_ssi or is_tanf),
            "q3_uVet6": "N",
            "q4_dVet": yes_no(is_vet_disabled),
            "q5_dUVet6": "N",
            "q6_tanfPayments": yes_no(is_tanf or is_ltanf),
            "q7_u27": "N",
            "qualifiedIva": yes_no(is_tanf),
            "qualifiedIvaState": "TX" if is_tanf else "",
            "qualifiedVet": yes_no(is_vet),
            "qualifiedVetState": "",
            "uVet4Weeks": "N",
            "uVet6Months": "N",
            "dVet": "N",
            "dUVet6Months": "N",
            "exFelon": yes_no(is_felon),
            "exFelonTypeFederal": "",
            "exFelonTypeState": "",
            "dcr": "N",
            "dcrResidesInRRC": "",
            "dcrResidesInEZ": "",
            "vocRehab": "N",
            "summerYouth": "N",
            "snap": yes_no(is_snap),
            "snapState": "TX" if is_snap else "",
            "ssi": yes_no(is_ssi),
            "ltfar": yes_no(is_ltanf),
            "ltfarState": "TX" if is_ltanf else "",
            "ltu": "N",
            "lturState": "",
            "sourceDocs": "N",
        }

    def validate(self, employee: Employee, screening: Screening) -> ValidationResult:
        errors = required_field_errors(employee)

        if employee.ssn and not SSN_SHAPE.match(employee.ssn):
            errors.append("SSN must be 9 digits (###-##-#### or #########)")

        if screening.status not in COMPLETED_SCREENING_STATUSES:
            errors.append("Employee must have completed screening for WOTC")

        if not screening.target_groups:
            errors.append("At least one target group must be identified")

        if "SUMMER_YOUTH" in (g.upper() for g in screening.target_groups):
            age = employee.age_on(employee.effective_hire_date)
            if age is not None and not 16 <= age <= 17:
                errors.append("Summer Youth requires employee age 16-17")

        return ValidationResult.from_errors(errors)
