"""Registry of supported jurisdictions."""

from typing import Dict, List

from ..models.errors import UnsupportedJurisdiction
from ..models.jurisdiction import JurisdictionDescriptor, PortalFamily, SignatorRotation

CERTLINK_SIGNER_FIELD = "ICF_SignatorName"

# ================================
# CSDC STATE DEFAULTS
# ================================
# consultant id, representative, default hourly wage
CSDC_STATE_DEFAULTS: Dict[str, Dict[str, object]] = {
    "AL": {"consultant_id": "ROCKERBOX", "representative": "Young", "default_wage": 7.25},
    "AR": {"consultant_id": "ROCKERBOX", "representative": "DYOUNG", "default_wage": 11.00},
    "CO": {"consultant_id": "ROCKERBOX", "representative": "GRinehart", "default_wage": 15.50},
    "GA": {"consultant_id": "SCREEN", "representative": "PHILIPW", "default_wage": 11.50},
    "ID": {"consultant_id": "ROCKERBOX", "representative": "PCALHOUN", "default_wage": 11.50},
    "OK": {"consultant_id": "ROCKERBOX", "representative": "DYOUNG", "default_wage": 11.50},
    "OR": {"consultant_id": "ROCKERBOX", "representative": "DYOUNG", "default_wage": 16.00},
    "SC": {"consultant_id": "ROCKERBOX", "representative": "DAVIDYOUNG", "default_wage": 11.50},
    "VT": {"consultant_id": "ROCKERBOX", "representative": "DAVIDY", "default_wage": 14.50},
    "WV": {"consultant_id": "SCREENTECH", "representative": "DYOUNG", "default_wage": 11.50},
}

_CSDC_NAMES = {
    "AL": "Alabama", "AR": "Arkansas", "CO": "Colorado", "GA": "Georgia", "ID": "Idaho",
    "OK": "Oklahoma", "OR": "Oregon", "SC": "South Carolina", "VT": "Vermont", "WV": "West Virginia",
}


def _certlink(code: str, name: str, url: str, signers: List[str]) -> JurisdictionDescriptor:
    return JurisdictionDescriptor(
        code=code,
        name=name,
        family=PortalFamily.CERTLINK,
        max_records=1000,
        portal_url=url,
        signers=SignatorRotation(tuple(signers)),
        signer_field=CERTLINK_SIGNER_FIELD,
        file_stem=f"{code}_CertLink_Batch",
    )


def _csdc(code: str) -> JurisdictionDescriptor:
    stem = "GANOELEVENTXT" if code == "GA" else f"{code}NOVELEVENTXT"
    return JurisdictionDescriptor(
        code=code,
        name=_CSDC_NAMES[code],
        family=PortalFamily.CSDC,
        max_records=1000,
        file_stem=stem,
    )


JURISDICTIONS: Dict[str, JurisdictionDescriptor] = {
    "AZ": _certlink("AZ", "Arizona", "https://wotc.azdes.gov/Account/Login", ["David Young", "Philip Wentworth, CEO"]),
    "IL": _certlink("IL", "Illinois", "https://illinoiswotc.com/", ["Garrett Rinehart", "Philip Wentworth, CEO"]),
    "KS": _certlink("KS", "Kansas", "https://kansaswotc.com/", ["David Young", "Philip Wentworth"]),
    "ME": _certlink("ME", "Maine", "https://wotc.maine.gov/Account/Login", ["Philip Wentworth", "David Young"]),
    "TX": JurisdictionDescriptor(
        code="TX",
        name="Texas",
        family=PortalFamily.TEXAS_OLS,
        max_records=998,
        portal_url="https://www.twc.texas.gov/wotc",
        file_stem="TX_WOTC_Bulk",
    ),
    "CA": JurisdictionDescriptor(
        code="CA",
        name="California",
        family=PortalFamily.CALIFORNIA_EDD,
        max_records=200,
        portal_url="https://eddservices.edd.ca.gov/wotc/",
        file_stem="CA_WOTC_Batch",
    ),
    **{code: _csdc(code) for code in CSDC_STATE_DEFAULTS},
}


def get_jurisdiction(code: str) -> JurisdictionDescriptor:
    """
    Look up a jurisdiction descriptor.

    Args:
        code: Two-letter jurisdiction code, any case

    Returns:
        The registered descriptor

    Raises:
        UnsupportedJurisdiction: When the code is not registered
    """
    descriptor = JURISDICTIONS.get((code or "").strip().upper())
    if descriptor is None:
        raise UnsupportedJurisdiction(code)
    return descriptor


def supported_codes() -> List[str]:
    return sorted(JURISDICTIONS)
