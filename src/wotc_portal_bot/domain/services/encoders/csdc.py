"""CSDC fixed-width file for the AL, AR, CO, GA, ID, OK, OR, SC, VT and WV drops."""

from typing import Dict

from ...models.artifact import ArtifactFormat, FixedWidthFormat, ValidationResult
from ...models.jurisdiction import JurisdictionDescriptor, PortalFamily
from ...models.records import Employee, Screening, SubmissionRecord
from ..formatting import digits_only, format_date, has_group, state_abbr, yes_no
from ..jurisdictions import CSDC_STATE_DEFAULTS
from .base import JurisdictionEncoder, required_field_errors

DATE_PATTERN = "%m%d%Y"

# (field, width). Several widths absorb filler positions of the state layout.
CSDC_LAYOUT = (
    ("ConsultantID", 12),
    ("fein", 9),
    ("plain_ssn", 19),
    ("MiddleInitial", 1),
    ("last_name", 19),
    ("address", 30),
    ("city", 20),
    ("state", 2),
    ("zip_code", 5),
    ("phone", 10),
    ("date_birth", 90),
    ("pin_or_password", 20),
    ("SignatureOnFile_YN", 1),
    ("DateOfSignature_mmddccyy", 8),
    ("TargetedGroup_4_or_6_or_blank", 1),
    ("date_gave_info", 8),
    ("date_was_offered_job", 8),
    ("date_was_hired", 8),
    ("date_started_job", 31),
    ("DatePart2Signature_mmddccyy", 8),
    ("StartingWage_Dollars_2", 2),
    ("HourlyWage_Cents", 2),
    ("occupation_code", 2),
    ("is_rehire", 5),
    ("SNAP1_YN_322", 5),
    ("TANF_9_18_YN_327", 1),
    ("TANF_last18_YN_328", 3),
    ("PrimaryRecipientName_30", 50),
    ("PrimaryRecipientState_2", 2),
    ("Felony_YN_383", 1),
    ("ConvictionDate_mmddccyy_384_391", 8),
    ("ReleaseDate_mmddccyy_392_399", 8),
    ("EmpowermentZone_YN_400", 1),
    ("RuralRenewal_YN_401", 21),
    ("SSI_YN_422", 1),
    ("Eligibility_Line1_80", 80),
    ("Eligibility_Line2_80", 80),
    ("Eligibility_Line3_80", 80),
    ("Eligibility_Line4_80", 80),
    ("CompletedBy_743_E_A_C_S_G", 1),
    ("Dateof9061", 28),
    ("OutOfStateBenefits_State_2_772_773", 2),
    ("Representative_774_785_12chars", 15),
    ("Version_8850_Pos_789_790_SET_23", 2),
    ("Version_ICF_Pos_791_792_SET_23", 2),
    ("Is9062_YN_793", 1),
    ("Q2_YN_794", 1),
    ("Q3_YN_795", 1),
    ("Q4_YN_796", 1),
    ("Q5_YN_797", 1),
    ("Q6_YN_798", 1),
    ("ConvictionType_F_or_S_799", 1),
    ("ConvictionState_2_800_801", 4),
    ("CategoryF_YN_804", 1),
    ("MailDate_mmddccyy_805_812_optional", 8),
    ("LTUR_YN_813", 2),
    ("Q7_YN_815", 1),
    ("LTUR_State_2_843_844", 29),
    ("first_name", 20),
    ("Vet_YN_865", 1),
    ("WorkRelease_YN_866", 1),
    ("VocRehab_YN_867", 185),
)


def split_wage(wage: float) -> tuple:
    """Split an hourly wage into (dollars, two-digit cents), carrying rounding into dollars."""
    dollars = int(wage)
    cents = int(round((wage - dollars) * 100))
    if cents >= 100:
        dollars, cents = dollars + 1, 0
    return str(dollars), f"{cents:02d}"


class CsdcEncoder(JurisdictionEncoder):
    """
    Encoder for the CSDC fixed-width layout.

    Phone and the four eligibility narrative lines are left blank; CSDC
    accepts the record without them.
    """

    family = PortalFamily.CSDC

    def artifact_format(self, descriptor: JurisdictionDescriptor) -> ArtifactFormat:
        return FixedWidthFormat(layout=CSDC_LAYOUT)

    def build_row(self, record: SubmissionRecord, descriptor: JurisdictionDescriptor) -> Dict[str, str]:
        e, groups = record.employee, record.screening.target_groups
        defaults = CSDC_STATE_DEFAULTS[descriptor.code]

        is_snap = has_group(groups, r"\bSNAP\b")
        is_tanf = has_group(groups, r"\bTANF\b")
        is_ltanf = has_group(groups, r"\bLTANF\b")
        is_ssi = has_group(groups, r"\bSSI\b")
        is_recipient = is_snap or is_tanf
        applicant_state = state_abbr(e.state)

        gave_info = format_date(e.date_gave_info, DATE_PATTERN)
        started = format_date(e.effective_start_date, DATE_PATTERN)
        dollars, cents = split_wage(e.hourly_wage or float(defaults["default_wage"]))

        fields = {name: "" for name, _ in CSDC_LAYOUT}
        fields.update(
            {
                "ConsultantID": str(defaults["consultant_id"]),
                "fein": digits_only(record.employer.fein),
                "plain_ssn": digits_only(e.ssn),
                "last_name": e.last_name,
                "address": e.address,
                "city": e.city,
                "state": applicant_state,
                "zip_code": digits_only(e.zip_code)[:5],
                "date_birth": format_date(e.date_of_birth, DATE_PATTERN),
                "pin_or_password": self.options.csdc_pin,
                "SignatureOnFile_YN": "N",
                "DateOfSignature_mmddccyy": gave_info,
                "date_gave_info": gave_info,
                "date_was_offered_job": format_date(e.date_offered_job, DATE_PATTERN) or started,
                "date_was_hired": format_date(e.hire_date, DATE_PATTERN) or started,
                "date_started_job": started,
                "DatePart2Signature_mmddccyy": gave_info,
                "StartingWage_Dollars_2": dollars,
                "HourlyWage_Cents": cents,
                "occupation_code": e.occupation_code,
                "is_rehire": "N",
                "SNAP1_YN_322": yes_no(is_snap),
                "TANF_9_18_YN_327": yes_no(is_tanf),
                "TANF_last18_YN_328": yes_no(is_tanf),
                "PrimaryRecipientName_30": e.full_name if is_recipient else "",
                "PrimaryRecipientState_2": applicant_state if is_recipient else "",
                "Felony_YN_383": "N",
                "EmpowermentZone_YN_400": "N",
                "RuralRenewal_YN_401": "N",
                "SSI_YN_422": yes_no(is_ssi),
                "CompletedBy_743_E_A_C_S_G": "C",
                "Dateof9061": gave_info,
                "Representative_774_785_12chars": str(defaults["representative"]),
                "Version_8850_Pos_789_790_SET_23": "23",
                "Version_ICF_Pos_791_792_SET_23": "23",
                "Is9062_YN_793": "N",
                "Q2_YN_794": "Y",
                "Q3_YN_795": "N",
                "Q4_YN_796": "N",
                "Q5_YN_797": "N",
                "Q6_YN_798": yes_no(is_ltanf),
                "CategoryF_YN_804": "N",
                "LTUR_YN_813": "N",
                "Q7_YN_815": "N",
                "first_name": e.first_name,
                "Vet_YN_865": "N",
                "WorkRelease_YN_866": "N",
                "VocRehab_YN_867": "N",
            }
        )
        return fields

    def validate(self, employee: Employee, screening: Screening) -> ValidationResult:
        return ValidationResult.from_errors(required_field_errors(employee))
