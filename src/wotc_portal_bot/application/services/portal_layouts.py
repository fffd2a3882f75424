"""
Portal layouts: the selectors and page facts for each portal family.

The driver's state machine is the same for every portal; everything that
differs between CertLink, the Texas OLS and the California EDD site lives
in one ``PortalLayout`` value. Selectors use Selenium ``By`` strategies;
CSS alternatives are comma-separated and XPath alternatives are unions.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from selenium.webdriver.common.by import By

from wotc_portal_bot.application.interfaces import Locator
from wotc_portal_bot.domain.models import ConfigurationError, PortalFamily


class ErrorListMode(Enum):
    """How a portal presents validation feedback."""

    DETAIL_TABLE = "detail_table"  # Applicant header rows followed by [row, message, field, severity]
    MESSAGE_LIST = "message_list"  # One free-text message per element


def _has_text(tag: str, *texts: str) -> str:
    """XPath fragment for a ``tag`` whose text contains any of ``texts``."""
    condition = " or ".join(f"contains(normalize-space(.), '{text}')" for text in texts)
    return f"//{tag}[{condition}]"


@dataclass(frozen=True)
class PortalLayout:
    """
    Selectors and behaviour flags for one portal family.

    ``validation_ready`` must appear whether or not the upload has errors;
    the driver decides clean versus errored from ``error_rows`` afterwards.
    A layout without ``delete_button`` has nothing to clean up on the
    portal between attempts. A layout without ``confirm_button`` commits
    the batch at upload time and only the receipt is read.
    """

    family: PortalFamily
    username_field: Locator
    password_field: Locator
    login_button: Locator
    batch_link: Locator
    file_input: Locator
    validation_ready: Locator
    error_rows: Locator
    error_mode: ErrorListMode
    agreement_checkbox: Optional[Locator] = None
    dashboard_url_marker: str = ""
    dashboard_ready: Optional[Locator] = None
    login_optional: bool = False
    upload_button: Optional[Locator] = None
    page_link_template: Optional[str] = None
    delete_button: Optional[Locator] = None
    delete_confirm_button: Optional[Locator] = None
    pre_confirm_checkboxes: Tuple[Locator, ...] = ()
    confirm_button: Optional[Locator] = None
    completion_marker: Optional[Locator] = None
    confirmation_patterns: Tuple[str, ...] = ()
    accepted_pattern: Optional[str] = None
    rejected_pattern: Optional[str] = None
    receipt_rows: Optional[Locator] = None
    receipt_ssn_cell: int = 1

    def page_link(self, page: int) -> Optional[Locator]:
        """Locator of the pagination link for ``page`` of the error table."""
        if not self.page_link_template:
            return None
        return (By.CSS_SELECTOR, self.page_link_template.format(page=page))

    def extract_confirmations(self, text: str) -> List[str]:
        """
        Pull confirmation numbers from completion-page text.

        Patterns are tried in order and the first one that matches wins;
        every match of that pattern is returned, in page order, de-duplicated.
        """
        for pattern in self.confirmation_patterns:
            found = [m.group(1).strip() for m in re.finditer(pattern, text or "", re.IGNORECASE)]
            if found:
                return list(dict.fromkeys(found))
        return []

    def extract_counts(self, text: str) -> Tuple[Optional[int], Optional[int]]:
        """Accepted and rejected counts from receipt text; None where the receipt is silent."""

        def _count(pattern: Optional[str]) -> Optional[int]:
            match = re.search(pattern, text or "", re.IGNORECASE) if pattern else None
            return int(match.group(1)) if match else None

        return _count(self.accepted_pattern), _count(self.rejected_pattern)


CERTLINK_LAYOUT = PortalLayout(
    family=PortalFamily.CERTLINK,
    username_field=(By.CSS_SELECTOR, "#Email"),
    password_field=(By.CSS_SELECTOR, "#Password"),
    agreement_checkbox=(By.CSS_SELECTOR, "#Agreement"),
    login_button=(By.CSS_SELECTOR, "div:nth-of-type(4) > button"),
    dashboard_url_marker="/Employer/Dashboard",
    batch_link=(
        By.XPATH,
        "//*[@id='empAppCollapse']//ul/li[4]/a"
        f" | {_has_text('a', 'Batch Applications')}"
        " | //a[contains(@href, 'BatchApplication')]",
    ),
    file_input=(By.CSS_SELECTOR, "#BatchData"),
    upload_button=(By.CSS_SELECTOR, "#Upload"),
    validation_ready=(By.CSS_SELECTOR, "#btnProcess"),
    error_rows=(By.CSS_SELECTOR, "table#tblBatchDetails tbody tr"),
    error_mode=ErrorListMode.DETAIL_TABLE,
    page_link_template="a[aria-controls='tblBatchDetails'][aria-label='Page {page}']",
    delete_button=(By.XPATH, f"{_has_text('button', 'Delete Batch Import')} | {_has_text('a', 'Delete Batch Import')}"),
    delete_confirm_button=(
        By.XPATH,
        f"{_has_text('button', 'Yes, Delete this batch')} | {_has_text('a', 'Yes, Delete this batch')}",
    ),
    confirm_button=(By.CSS_SELECTOR, "#btnProcess"),
    confirmation_patterns=(
        r"batch\s*(?:id|#|number)\s*:?\s*([A-Za-z0-9-]+)",
        r"confirmation\s*(?:id|#|number)\s*:?\s*([A-Za-z0-9-]+)",
    ),
)

TEXAS_LAYOUT = PortalLayout(
    family=PortalFamily.TEXAS_OLS,
    username_field=(By.CSS_SELECTOR, "input[name='username'], input[id='username'], #loginUsername"),
    password_field=(By.CSS_SELECTOR, "input[name='password'], input[id='password'], #loginPassword"),
    login_button=(
        By.XPATH,
        f"//button[@type='submit'] | //input[@type='submit'] | {_has_text('button', 'Login', 'Sign In')}",
    ),
    dashboard_ready=(
        By.XPATH,
        f"{_has_text('a', 'Submit a Bulk File')} | {_has_text('button', 'Bulk Upload')} | //*[@data-testid='bulk-upload']",
    ),
    batch_link=(
        By.XPATH,
        f"{_has_text('a', 'Submit a Bulk File')} | {_has_text('button', 'Bulk Upload')} | //*[@data-testid='bulk-upload']",
    ),
    file_input=(By.CSS_SELECTOR, "input[type='file']"),
    upload_button=(By.XPATH, "//button[contains(normalize-space(.), 'NEXT') or contains(normalize-space(.), 'Next')][not(@disabled)]"),
    validation_ready=(
        By.XPATH,
        f"{_has_text('button', 'SUBMIT', 'Submit')}"
        " | //*[contains(@class, 'incomplete-applications') or @data-section='incomplete']",
    ),
    error_rows=(By.CSS_SELECTOR, ".incomplete-applications li, [data-section='incomplete'] li"),
    error_mode=ErrorListMode.MESSAGE_LIST,
    pre_confirm_checkboxes=(
        (By.XPATH, "(//input[@type='checkbox'])[1]"),
        (By.XPATH, "(//input[@type='checkbox'])[2]"),
    ),
    confirm_button=(By.XPATH, _has_text("button", "SUBMIT", "Submit")),
    confirmation_patterns=(
        r"claim number range:\s*([\d-]+\s*to\s*[\d-]+)",
        r"confirmation.*?number[s]?:\s*([\d-]+(?:\s*to\s*[\d-]+)?)",
    ),
)

CALIFORNIA_LAYOUT = PortalLayout(
    family=PortalFamily.CALIFORNIA_EDD,
    username_field=(By.CSS_SELECTOR, "input[id*='username' i], input[id*='user' i], input[name*='username' i]"),
    password_field=(By.CSS_SELECTOR, "input[type='password']"),
    login_button=(
        By.XPATH,
        f"{_has_text('button', 'Log In')} | //input[@value='Log In'] | //button[@type='submit'] | //input[@type='submit']",
    ),
    login_optional=True,
    dashboard_ready=(
        By.XPATH,
        f"{_has_text('a', 'Submit Multiple Applications')}"
        " | //a[contains(@href, 'multiple') or contains(@href, 'batch') or contains(@href, 'upload')]",
    ),
    batch_link=(
        By.XPATH,
        f"{_has_text('a', 'Submit Multiple Applications')}"
        " | //a[contains(@href, 'multiple') or contains(@href, 'batch') or contains(@href, 'upload')]",
    ),
    file_input=(By.CSS_SELECTOR, "input[type='file']"),
    upload_button=(By.XPATH, f"//input[@value='Upload'] | {_has_text('button', 'Upload')} | //*[@id='btnUpload']"),
    validation_ready=(By.CSS_SELECTOR, "#FormValidation, #lblMessage"),
    error_rows=(By.CSS_SELECTOR, "#FormValidation > ul > li"),
    error_mode=ErrorListMode.MESSAGE_LIST,
    completion_marker=(By.CSS_SELECTOR, "#lblMessage"),
    confirmation_patterns=(r"batch\s*(?:id|#|number)?\s*:?\s*([A-Za-z0-9-]*\d[A-Za-z0-9-]*)",),
    accepted_pattern=r"(\d+)\s+applications?\s+(?:were\s+|was\s+)?(?:successfully\s+)?accepted",
    rejected_pattern=r"(\d+)\s+applications?\s+(?:were\s+|was\s+)?rejected",
    receipt_rows=(By.XPATH, "//table//tr[td]"),
)

LAYOUTS: Dict[PortalFamily, PortalLayout] = {
    PortalFamily.CERTLINK: CERTLINK_LAYOUT,
    PortalFamily.TEXAS_OLS: TEXAS_LAYOUT,
    PortalFamily.CALIFORNIA_EDD: CALIFORNIA_LAYOUT,
}


def layout_for(family: PortalFamily) -> PortalLayout:
    """
    Get the layout for a portal family.

    Raises:
        ConfigurationError: The family has no browser portal (CSDC file drops)
    """
    try:
        return LAYOUTS[family]
    except KeyError:
        raise ConfigurationError(f"No browser portal layout for {family.value}") from None
