"""Canonical employee, employer and screening records consumed by the encoders."""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Optional, Tuple

_DATE_PATTERNS = ("%Y-%m-%d", "%m/%d/%Y", "%Y%m%d", "%m-%d-%Y")


def parse_date(value: Any) -> Optional[date]:
    """
    Parse an upstream date value into a ``date``.

    Accepts ``date``/``datetime`` objects, ISO strings (with or without a time
    part) and the US ``MM/DD/YYYY`` form. Unparseable values yield ``None``.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if "T" in text:
        text = text.split("T", 1)[0]
    for pattern in _DATE_PATTERNS:
        try:
            return datetime.strptime(text, pattern).date()
        except ValueError:
            continue
    return None


def _text(data: Dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return str(value).strip()
    return ""


def _float(value: Any) -> Optional[float]:
    if value in (None, ""):
        return None
    try:
        return float(str(value).replace("$", "").replace(",", ""))
    except ValueError:
        return None


@dataclass(frozen=True)
class Employee:
    """
    Domain model for a new hire being submitted for certification.

    Only the identity, address and hiring facts the state forms ask for are
    carried; eligibility decisions have already been made upstream.
    """

    id: str
    first_name: str = ""
    last_name: str = ""
    ssn: str = ""
    date_of_birth: Optional[date] = None
    hire_date: Optional[date] = None
    start_date: Optional[date] = None
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    county: str = ""
    phone: str = ""
    hourly_wage: Optional[float] = None
    occupation_code: str = ""
    job_title: str = ""
    date_gave_info: Optional[date] = None
    date_offered_job: Optional[date] = None

    def __post_init__(self):
        """Validate employee on creation."""
        if not self.id or not str(self.id).strip():
            raise ValueError("Employee id cannot be empty")

    @property
    def full_name(self) -> str:
        """First and last name joined."""
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def effective_start_date(self) -> Optional[date]:
        """Start date, falling back to the hire date."""
        return self.start_date or self.hire_date

    @property
    def effective_hire_date(self) -> Optional[date]:
        """Hire date, falling back to the start date."""
        return self.hire_date or self.start_date

    def age_on(self, on: Optional[date]) -> Optional[int]:
        """Age in whole years on the given date, or None when either date is unknown."""
        if self.date_of_birth is None or on is None:
            return None
        dob = self.date_of_birth
        years = on.year - dob.year
        if (on.month, on.day) < (dob.month, dob.day):
            years -= 1
        return years

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Employee":
        """Build from an upstream payload, tolerating camelCase and snake_case keys."""
        return cls(
            id=_text(data, "id", "employee_id", "employeeId"),
            first_name=_text(data, "first_name", "firstName"),
            last_name=_text(data, "last_name", "lastName"),
            ssn=_text(data, "ssn", "plain_ssn", "plainSsn"),
            date_of_birth=parse_date(data.get("date_of_birth") or data.get("dateOfBirth") or data.get("dob")),
            hire_date=parse_date(data.get("hire_date") or data.get("hireDate")),
            start_date=parse_date(data.get("start_date") or data.get("startDate")),
            address=_text(data, "address", "address_line1"),
            city=_text(data, "city"),
            state=_text(data, "state"),
            zip_code=_text(data, "zip_code", "zipCode", "zip"),
            county=_text(data, "county"),
            phone=_text(data, "phone", "phone_number", "phoneNumber"),
            hourly_wage=_float(data.get("hourly_wage", data.get("hourlyStartWage"))),
            occupation_code=_text(data, "occupation_code", "occupationCode", "job_onet_code"),
            job_title=_text(data, "job_title", "jobTitle"),
            date_gave_info=parse_date(data.get("date_gave_info") or data.get("dateGaveInfo")),
            date_offered_job=parse_date(data.get("date_offered_job") or data.get("dateWasOfferedJob")),
        )


@dataclass(frozen=True)
class Employer:
    """Employer identity printed on Form 8850 and the ICF."""

    id: str
    name: str = ""
    fein: str = ""
    address: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    phone: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Employer":
        return cls(
            id=_text(data, "id", "employer_id", "employerId"),
            name=_text(data, "name", "employer_name", "companyName"),
            fein=_text(data, "fein", "ein", "employerEin"),
            address=_text(data, "address"),
            city=_text(data, "city"),
            state=_text(data, "state"),
            zip_code=_text(data, "zip_code", "zipCode", "zip"),
            phone=_text(data, "phone"),
        )


@dataclass(frozen=True)
class Screening:
    """
    Outcome of the eligibility questionnaire.

    ``target_groups`` keeps the upstream category labels verbatim; encoders
    match them by keyword, so naming drift upstream does not break encoding.
    """

    status: str = ""
    target_groups: Tuple[str, ...] = field(default_factory=tuple)
    summer_youth_empowerment_zone: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Screening":
        groups = data.get("target_groups", data.get("targetGroups", ()))
        if isinstance(groups, str):
            groups = [g for g in (part.strip() for part in groups.split(",")) if g]
        zone = data.get("summer_youth_empowerment_zone", data.get("summerYouthEmpZone", False))
        return cls(
            status=_text(data, "status").lower(),
            target_groups=tuple(str(g) for g in groups or ()),
            summer_youth_empowerment_zone=zone in (True, "true", "Y", "y", 1, "1"),
        )


@dataclass(frozen=True)
class SubmissionRecord:
    """One queue record joined with the canonical data needed to encode it."""

    record_id: str
    employee: Employee
    employer: Employer
    screening: Screening

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SubmissionRecord":
        employee = Employee.from_dict(data.get("employee", {}))
        return cls(
            record_id=str(data.get("id") or data.get("record_id") or employee.id),
            employee=employee,
            employer=Employer.from_dict(data.get("employer", {})),
            screening=Screening.from_dict(data.get("screening", {})),
        )
