"""CertLink batch CSV (FormVersion 9) used by the AZ, IL, KS and ME portals."""

from typing import Dict

from ...models.artifact import ArtifactFormat, DelimitedFormat, ValidationResult
from ...models.jurisdiction import JurisdictionDescriptor, PortalFamily
from ...models.records import Employee, Screening, SubmissionRecord
from ..formatting import digits_only, format_date, has_group, state_abbr, true_false
from .base import JurisdictionEncoder, required_field_errors

CERTLINK_COLUMNS = (
    "General_FormVersionID",
    "General_YourSystemsRecordIdentifier",
    "Form8850_ApplicantFirstName",
    "Form8850_ApplicantMiddleName",
    "Form8850_ApplicantLastName",
    "Form8850_ApplicantSuffix",
    "Form8850_ApplicantSSN",
    "Form8850_ApplicantAddressLine1",
    "Form8850_ApplicantCity",
    "Form8850_ApplicantStateCd",
    "Form8850_ApplicantZipCode",
    "Form8850_ApplicantCounty",
    "Form8850_ApplicantPhone",
    "Form8850_ApplicantDOB",
    "Form8850_Checkbox1",
    "Form8850_Checkbox2",
    "Form8850_Checkbox3",
    "Form8850_Checkbox4",
    "Form8850_Checkbox5",
    "Form8850_Checkbox6",
    "Form8850_Checkbox7",
    "Form8850_EmployeeSignatureDate",
    "Form8850_EmployerName",
    "Form8850_EmployerPhone",
    "Form8850_EmployerFEIN",
    "Form8850_EmployerAddressLine1",
    "Form8850_EmployerCity",
    "Form8850_EmployerStateCd",
    "Form8850_EmployerZipcode",
    "Form8850_ContactFirstName",
    "Form8850_ContactLastName",
    "Form8850_ContactPhone",
    "Form8850_ContactAddressLine1",
    "Form8850_ContactCity",
    "Form8850_ContactStateCd",
    "Form8850_ContactZipcode",
    "Form8850_GroupNumber",
    "Form8850_GaveInformationDate",
    "Form8850_OfferedJobDate",
    "Form8850_EmployeeDateHired",
    "Form8850_EmployeeStartDate",
    "ICF_Rehire",
    "ICF_StartingWage",
    "ICF_OccupationID",
    "ICF_IVA",
    "ICF_IVAName",
    "ICF_IVACity",
    "ICF_IVAStateCd",
    "ICF_IVAAdditionalCity",
    "ICF_IVAAdditionalStateCd",
    "ICF_Veteran",
    "ICF_VeteranSNAPName",
    "ICF_VeteranSNAPCity",
    "ICF_VeteranSNAPStateCd",
    "ICF_VeteranSNAPAdditionalCity",
    "ICF_VeteranSNAPAdditionalStateCd",
    "ICF_Felon",
    "ICF_Felon_WorkRelease",
    "ICF_FelonDateConviction",
    "ICF_FelonDateRelease",
    "ICF_FelonType",
    "ICF_FelonStateCd",
    "ICF_DCR_RRC",
    "ICF_DCR_EZ",
    "ICF_VR",
    "ICF_SummerYouth",
    "ICF_SNAP",
    "ICF_SNAPName",
    "ICF_SNAPCity",
    "ICF_SNAPStateCd",
    "ICF_SNAPAdditionalCity",
    "ICF_SNAPAdditionalStateCd",
    "ICF_SSI",
    "ICF_TANF",
    "ICF_TANFName",
    "ICF_TANFCity",
    "ICF_TANFStateCd",
    "ICF_TANFAdditionalCity",
    "ICF_TANFAdditionalStateCd",
    "ICF_LTUR",
    "ICF_LTURCity",
    "ICF_LTURStateCd",
    "ICF_LTURAdditionalCity",
    "ICF_LTURAdditionalStateCd",
    "ICF_EligibilitySources",
    "ICF_SignatorName",
)

# Always quoted so leading zeros survive the import
CERTLINK_TEXT_COLUMNS = frozenset(
    {
        "Form8850_ApplicantSSN",
        "Form8850_ApplicantZipCode",
        "Form8850_ApplicantDOB",
        "Form8850_EmployerFEIN",
        "Form8850_EmployerZipcode",
    }
)

DATE_PATTERN = "%m/%d/%Y"


def certlink_record_identifier(employee_id: str) -> str:
    """First segment of the employee id; the portal echoes it back as the reference number."""
    return employee_id.split("-", 1)[0] if "-" in employee_id else employee_id


class CertLinkEncoder(JurisdictionEncoder):
    """
    Encoder for the 86-column CertLink template.

    Checkbox logic:
        - SNAP when age at start is 39 or younger, SSI when 40 or older
        - TANF when any TANF/LTANF category is present
        - Checkbox 6 (long-term TANF) only for LTANF
    """

    family = PortalFamily.CERTLINK

    def artifact_format(self, descriptor: JurisdictionDescriptor) -> ArtifactFormat:
        return DelimitedFormat(columns=CERTLINK_COLUMNS, quote_columns=CERTLINK_TEXT_COLUMNS)

    def build_row(self, record: SubmissionRecord, descriptor: JurisdictionDescriptor) -> Dict[str, str]:
        e, employer, groups = record.employee, record.employer, record.screening.target_groups

        start = e.effective_start_date
        hired = e.effective_hire_date
        age = e.age_on(start)
        is_snap = age is not None and age <= 39
        is_ssi = age is not None and age >= 40
        has_ltanf = has_group(groups, "LTANF")
        is_tanf = has_group(groups, "TANF")
        applicant_state = state_abbr(e.state)

        row = {column: "" for column in CERTLINK_COLUMNS}
        row.update(
            {
                "General_FormVersionID": "9",
                "General_YourSystemsRecordIdentifier": certlink_record_identifier(e.id),
                "Form8850_ApplicantFirstName": e.first_name,
                "Form8850_ApplicantLastName": e.last_name,
                "Form8850_ApplicantSSN": digits_only(e.ssn),
                "Form8850_ApplicantAddressLine1": e.address,
                "Form8850_ApplicantCity": e.city,
                "Form8850_ApplicantStateCd": applicant_state,
                "Form8850_ApplicantZipCode": digits_only(e.zip_code),
                "Form8850_ApplicantCounty": e.county,
                "Form8850_ApplicantPhone": digits_only(e.phone),
                "Form8850_ApplicantDOB": format_date(e.date_of_birth, DATE_PATTERN),
                "Form8850_Checkbox1": "FALSE",
                "Form8850_Checkbox2": "TRUE",
                "Form8850_Checkbox3": "FALSE",
                "Form8850_Checkbox4": "FALSE",
                "Form8850_Checkbox5": "FALSE",
                "Form8850_Checkbox6": true_false(has_ltanf),
                "Form8850_Checkbox7": "FALSE",
                "Form8850_EmployeeSignatureDate": format_date(hired, DATE_PATTERN),
                "Form8850_EmployerName": employer.name,
                "Form8850_EmployerPhone": digits_only(employer.phone),
                "Form8850_EmployerFEIN": digits_only(employer.fein),
                "Form8850_EmployerAddressLine1": employer.address,
                "Form8850_EmployerCity": employer.city,
                "Form8850_EmployerStateCd": state_abbr(employer.state),
                "Form8850_EmployerZipcode": digits_only(employer.zip_code),
                "Form8850_GaveInformationDate": format_date(e.date_gave_info, DATE_PATTERN),
                "Form8850_OfferedJobDate": format_date(e.date_offered_job, DATE_PATTERN),
                "Form8850_EmployeeDateHired": format_date(hired, DATE_PATTERN),
                "Form8850_EmployeeStartDate": format_date(start, DATE_PATTERN),
                "ICF_Rehire": "FALSE",
                "ICF_StartingWage": f"{e.hourly_wage:.2f}" if e.hourly_wage else "",
                "ICF_OccupationID": e.occupation_code,
                "ICF_IVA": "FALSE",
                "ICF_Veteran": "FALSE",
                "ICF_Felon": "FALSE",
                "ICF_Felon_WorkRelease": "FALSE",
                "ICF_DCR_RRC": "FALSE",
                "ICF_DCR_EZ": "FALSE",
                "ICF_VR": "FALSE",
                "ICF_SummerYouth": "FALSE",
                "ICF_SNAP": true_false(is_snap),
                "ICF_SSI": true_false(is_ssi),
                "ICF_TANF": true_false(is_tanf),
                "ICF_LTUR": "FALSE",
                "ICF_SignatorName": descriptor.signers.default,
            }
        )

        if is_snap:
            row.update(
                {"ICF_SNAPName": e.full_name, "ICF_SNAPCity": e.city, "ICF_SNAPStateCd": applicant_state}
            )
        if is_tanf:
            row.update(
                {"ICF_TANFName": e.full_name, "ICF_TANFCity": e.city, "ICF_TANFStateCd": applicant_state}
            )
        return row

    def validate(self, employee: Employee, screening: Screening) -> ValidationResult:
        errors = required_field_errors(employee)
        if not screening.target_groups:
            errors.append("At least one target group must be selected")
        return ValidationResult.from_errors(errors)
