"""California EDD ``wotcBatch`` XML."""

import re
from typing import Dict

from ...models.artifact import ArtifactFormat, ValidationResult, XmlFormat
from ...models.jurisdiction import JurisdictionDescriptor, PortalFamily
from ...models.records import Employee, Screening, SubmissionRecord
from ..formatting import digits_only, format_date, has_group, state_abbr, yes_no
from .base import JurisdictionEncoder, required_field_errors

DATE_PATTERN = "%Y-%m-%d"
DEFAULT_WAGE = "16.00"
DEFAULT_OCCUPATION = "43"

AGENT = {
    "name": "SCREEN TECHNOLOGIES LLC DBA ROCKERBOX",
    "street": "17250 DALLAS PARKWAY",
    "city": "DALLAS",
    "state": "TX",
    "zipCode": "75248",
    "phone": "4052262121",
    "contactInfo.name": "GARRETT R",
}
EMPLOYER_CONTACT = "Wayne Goodwin"

OCCUPATION_KEYWORDS = (
    ("Manager", "11"), ("Business", "13"), ("Financial", "13"), ("Computer", "15"),
    ("Engineer", "17"), ("Science", "19"), ("Social", "21"), ("Legal", "23"),
    ("Education", "25"), ("Arts", "27"), ("Media", "27"), ("Healthcare", "29"),
    ("Nurse", "29"), ("Doctor", "29"), ("Support", "31"), ("Protective", "33"),
    ("Food", "35"), ("Cook", "35"), ("Server", "35"), ("Cleaning", "37"),
    ("Maintenance", "37"), ("Personal", "39"), ("Caregiver", "39"), ("Sales", "41"),
    ("Retail", "41"), ("Admin", "43"), ("Office", "43"), ("Farm", "45"),
    ("Construction", "47"), ("Installation", "49"), ("Production", "51"),
    ("Transportation", "53"), ("Driver", "53"),
)

SECTIONS = (
    ("applicantInfo", ("ssn", "firstName", "lastName", "street", "city", "state", "zipCode", "birthDate")),
    ("employerInfo", ("fein", "name", "street", "city", "state", "zipCode", "phone", "contactInfo.name")),
    ("agentInfo", ("name", "street", "city", "state", "zipCode", "phone", "contactInfo.name")),
    (
        "form8850",
        (
            "checkItem1", "checkItem2", "checkItem3", "checkItem4", "checkItem5", "checkItem6", "checkItem7",
            "infoDate", "offerDate", "hireDate", "startDate",
        ),
    ),
    (
        "form9061_r202305",
        (
            "previousEmployer", "startingWage", "occupationCode", "tanfAny9Months", "tanfPrimaryRecipient",
            "tanfRecipientLocation", "veteran", "veteranSnapPrimaryRecipient", "exFelon",
            "inRuralRenewalCounty", "dcrEmpowermentZone", "vocationalRehab", "youthEmployee",
            "snap6Months", "snapBirthdate", "snapPrimaryRecipient", "snapRecipientLocation", "receivedSSI",
            "tanf18Months", "tanfPrimaryRecipientLongTerm", "tanfRecipientLocationLongTerm",
            "ltuRecipient27weeks",
        ),
    ),
)

_NOT_ALNUM = re.compile(r"[^a-zA-Z0-9\s]")
QUALIFYING_GROUPS = ("SNAP", "SSI", "TANF", "LTANF")


def occupation_code(raw: str, title: str = "") -> str:
    """Numeric codes pass through; otherwise the first matching keyword wins, defaulting to 43."""
    if raw and raw.strip().isdigit():
        return raw.strip()
    text = (raw or title or "").lower()
    for keyword, code in OCCUPATION_KEYWORDS:
        if keyword.lower() in text:
            return code
    return DEFAULT_OCCUPATION


def _bool(flag: bool) -> str:
    return "true" if flag else "false"


class CaliforniaEncoder(JurisdictionEncoder):
    """Encoder for the EDD batch XML (form 9061 revision 2023-05)."""

    family = PortalFamily.CALIFORNIA_EDD
    ssn_field = "applicantInfo.ssn"

    def artifact_format(self, descriptor: JurisdictionDescriptor) -> ArtifactFormat:
        return XmlFormat(root="wotcBatch", item="wotcApplication", sections=SECTIONS)

    def build_row(self, record: SubmissionRecord, descriptor: JurisdictionDescriptor) -> Dict[str, str]:
        e, employer, groups = record.employee, record.employer, record.screening.target_groups

        is_snap = has_group(groups, "SNAP")
        is_tanf = has_group(groups, "TANF")
        is_ssi = has_group(groups, "SSI")
        is_vet = has_group(groups, "VET")
        is_felon = has_group(groups, "FELON")
        is_ltanf = has_group(groups, "LTANF")
        name = e.full_name
        start = e.effective_start_date

        row = {
            "applicantInfo.ssn": digits_only(e.ssn),
            "applicantInfo.firstName": e.first_name,
            "applicantInfo.lastName": e.last_name,
            "applicantInfo.street": _NOT_ALNUM.sub("", e.address).strip(),
            "applicantInfo.city": e.city,
            "applicantInfo.state": "CA",
            "applicantInfo.zipCode": e.zip_code,
            "applicantInfo.birthDate": format_date(e.date_of_birth, DATE_PATTERN),
            "employerInfo.fein": digits_only(employer.fein),
            "employerInfo.name": employer.name,
            "employerInfo.street": _NOT_ALNUM.sub("", employer.address).strip(),
            "employerInfo.city": employer.city,
            "employerInfo.state": state_abbr(employer.state),
            "employerInfo.zipCode": employer.zip_code,
            "employerInfo.phone": digits_only(employer.phone),
            "employerInfo.contactInfo.name": EMPLOYER_CONTACT,
            "form8850.checkItem1": "false",
            "form8850.checkItem2": _bool(is_snap or is_ssi or is_tanf or is_vet or is_felon),
            "form8850.checkItem3": "false",
            "form8850.checkItem4": "false",
            "form8850.checkItem5": "false",
            "form8850.checkItem6": _bool(is_ltanf),
            "form8850.checkItem7": "false",
            "form8850.infoDate": format_date(e.date_gave_info, DATE_PATTERN),
            "form8850.offerDate": format_date(e.date_offered_job or start, DATE_PATTERN),
            "form8850.hireDate": format_date(e.effective_hire_date, DATE_PATTERN),
            "form8850.startDate": format_date(start, DATE_PATTERN),
            "form9061_r202305.previousEmployer": "N",
            "form9061_r202305.startingWage": f"{e.hourly_wage:.2f}" if e.hourly_wage else DEFAULT_WAGE,
            "form9061_r202305.occupationCode": occupation_code(e.occupation_code, e.job_title),
            "form9061_r202305.tanfAny9Months": yes_no(is_tanf),
            "form9061_r202305.tanfPrimaryRecipient": name if is_tanf else "",
            "form9061_r202305.tanfRecipientLocation": "CA" if is_tanf else "",
            "form9061_r202305.veteran": yes_no(is_vet),
            "form9061_r202305.veteranSnapPrimaryRecipient": " ",
            "form9061_r202305.exFelon": yes_no(is_felon),
            "form9061_r202305.inRuralRenewalCounty": "N",
            "form9061_r202305.dcrEmpowermentZone": "N",
            "form9061_r202305.vocationalRehab": "N",
            "form9061_r202305.youthEmployee": yes_no(record.screening.summer_youth_empowerment_zone),
            "form9061_r202305.snap6Months": yes_no(is_snap),
            "form9061_r202305.snapBirthdate": format_date(e.date_of_birth, DATE_PATTERN),
            "form9061_r202305.snapPrimaryRecipient": name if is_snap else "",
            "form9061_r202305.snapRecipientLocation": "CA" if is_snap else "",
            "form9061_r202305.receivedSSI": yes_no(is_ssi),
            "form9061_r202305.tanf18Months": yes_no(is_ltanf),
            "form9061_r202305.tanfPrimaryRecipientLongTerm": name if is_ltanf else "",
            "form9061_r202305.tanfRecipientLocationLongTerm": "CA" if is_ltanf else "",
            "form9061_r202305.ltuRecipient27weeks": "N",
        }
        row.update({f"agentInfo.{key}": value for key, value in AGENT.items()})
        return row

    def validate(self, employee: Employee, screening: Screening) -> ValidationResult:
        errors = required_field_errors(employee, require_state=False)
        if not has_group(screening.target_groups, *QUALIFYING_GROUPS):
            errors.append("Must qualify for SNAP, SSI, TANF, or LTANF for California XML submission")
        return ValidationResult.from_errors(errors)
