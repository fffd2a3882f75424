"""
Portal Driver for state WOTC portals.

Drives one browser session through login, batch upload, validation,
error recovery and confirmation. The flow is an explicit state machine
(``DriverStateMachine``); page details come from a ``PortalLayout`` and
error triage from the pure ``ErrorClassifier``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from wotc_portal_bot.application.interfaces import IBrowserService, ILoggingService, IPortalDriver, Locator
from wotc_portal_bot.application.services.portal_layouts import ErrorListMode, PortalLayout, layout_for
from wotc_portal_bot.application.services.timing_service import TimingService
from wotc_portal_bot.config import config
from wotc_portal_bot.domain.models import (
    Artifact,
    DriverResult,
    DriverState,
    ErrorRow,
    JurisdictionDescriptor,
    LoginResult,
    PortalConfig,
    PortalInteractionError,
    Receipt,
)
from wotc_portal_bot.domain.services import (
    DriverStateMachine,
    ErrorClassifier,
    dedupe,
    get_jurisdiction,
    parse_detail_table,
    parse_message_list,
)

BrowserFactory = Callable[[ILoggingService], IBrowserService]


@dataclass
class PortalSession:
    """Mutable state of one submission: the browser, the machine and what it produced."""

    browser: IBrowserService
    logger: ILoggingService
    layout: PortalLayout
    descriptor: JurisdictionDescriptor
    machine: DriverStateMachine
    screenshots: List[str] = field(default_factory=list)
    rejected: List[ErrorRow] = field(default_factory=list)
    attempts: int = 0

    @property
    def code(self) -> str:
        return self.descriptor.code


def _rejection_key(row: ErrorRow) -> Tuple:
    # Row numbers shift between attempts, so attributed rows are keyed by record
    if row.record_id:
        return (row.record_id, row.reference_id, row.field_name, row.message)
    return (None, row.reference_id, row.row_number, row.message)


class BatchPortalDriver(IPortalDriver):
    """
    Batch submission driver for CertLink, Texas OLS and California EDD portals.

    Per job:
        1. Log in (never raises; failures come back as ``LoginResult``)
        2. Up to ``max_attempts`` upload attempts. Rows the portal rejects
           are fixed (signer rotation) or removed and the corrected file is
           uploaded again after deleting the bad batch on the portal.
        3. Confirm a clean batch and scrape the confirmation number.

    A transient failure (timeout, missing element, navigation error)
    consumes one attempt and returns the machine to the dashboard. The
    browser is always closed before ``submit`` returns.
    """

    def __init__(
        self,
        browser_factory: BrowserFactory,
        timing_service: TimingService,
        logging_service: ILoggingService,
        classifier: Optional[ErrorClassifier] = None,
        max_attempts: Optional[int] = None,
        screenshot_dir: Optional[str] = None,
        upload_dir: Optional[str] = None,
        layouts: Optional[Dict] = None,
    ):
        """
        Initialize the driver.

        Args:
            browser_factory: Creates one unstarted browser per submission from its logger
            timing_service: Human pacing between actions
            logging_service: Service for logging operations
            classifier: Error classifier (default patterns if None)
            max_attempts: Upload attempt budget (config default if None)
            screenshot_dir: Where screenshots go (config default if None)
            upload_dir: Where artifacts are written before upload (config default if None)
            layouts: Family to layout overrides, mainly for tests
        """
        self.browser_factory = browser_factory
        self.timing = timing_service
        self.logger = logging_service
        self.classifier = classifier or ErrorClassifier()
        self.max_attempts = max_attempts or config.UPLOAD_MAX_ATTEMPTS
        self.screenshot_dir = Path(screenshot_dir or config.SCREENSHOT_DIR)
        self.upload_dir = Path(upload_dir or config.UPLOAD_DIR)
        self.layouts = layouts or {}

    # ================================
    # ENTRY POINT
    # ================================

    async def submit(
        self, artifact: Artifact, portal_config: PortalConfig, job_id: Optional[str] = None
    ) -> DriverResult:
        """
        Submit one artifact to its jurisdiction's portal.

        Args:
            artifact: Encoded batch; its jurisdiction selects layout and signers
            portal_config: URL and credentials
            job_id: Tags this session's log lines (``driver/job-<id>``)

        Returns:
            DriverResult describing the outcome; never raises
        """
        requested = artifact.row_count
        logger = self.logger.child(f"job-{job_id}") if job_id else self.logger
        try:
            descriptor = get_jurisdiction(artifact.jurisdiction_code)
            layout = self.layouts.get(descriptor.family) or layout_for(descriptor.family)
        except Exception as e:
            logger.error(f"❌ Cannot drive portal for {artifact.jurisdiction_code}: {e}")
            return DriverResult.failed(str(e), requested=requested)

        session = PortalSession(
            browser=self.browser_factory(logger),
            logger=logger,
            layout=layout,
            descriptor=descriptor,
            machine=DriverStateMachine(
                on_enter=lambda previous, target: logger.debug(f"🔀 Driver {previous.value} -> {target.value}")
            ),
        )

        try:
            await session.browser.start()

            login = await self.login(session, portal_config)
            if not login.success:
                session.machine.abort()
                return self._failed(session, login.message, requested)

            return await self.batch_upload(session, artifact)
        except Exception as e:
            session.logger.error(f"❌ [{session.code}] Fatal portal error: {e}")
            await self._screenshot(session, "fatal_error")
            session.machine.abort()
            return self._failed(session, f"Fatal error for {descriptor.name}: {e}", requested)
        finally:
            try:
                await session.browser.close()
            except Exception as e:
                session.logger.warning(f"⚠️ [{session.code}] Browser did not close cleanly: {e}")

    # ================================
    # LOGIN
    # ================================

    async def login(self, session: PortalSession, portal_config: PortalConfig) -> LoginResult:
        """
        Log in and wait for the dashboard.

        Args:
            session: Session with a started browser in LOGGED_OUT
            portal_config: URL and credentials

        Returns:
            LoginResult; the machine ends in DASHBOARD on success, LOGGED_OUT otherwise
        """
        browser, layout, code = session.browser, session.layout, session.code
        url = portal_config.portal_url or session.descriptor.portal_url
        shots_before = len(session.screenshots)
        await self._move(session, DriverState.LOGGING_IN)

        try:
            session.logger.info(f"🔐 [{code}] Opening login page: {url}")
            await browser.goto(url)
            await self.timing.human_delay("login form")

            has_form = await browser.wait_for(layout.username_field, config.ELEMENT_WAIT_TIMEOUT)
            if has_form:
                await self._human_type(browser, layout.username_field, portal_config.username)
                await self.timing.human_delay("password")
                await self._human_type(browser, layout.password_field, portal_config.password)
                await self.timing.human_delay("agreement")

                if layout.agreement_checkbox and await browser.exists(layout.agreement_checkbox):
                    if not await browser.is_checked(layout.agreement_checkbox):
                        await browser.click(layout.agreement_checkbox)
                        await self.timing.human_delay()

                await browser.click(layout.login_button)
            elif not layout.login_optional:
                raise PortalInteractionError("Login form not found - portal structure may have changed")
            else:
                session.logger.info(f"ℹ️ [{code}] Already logged in (login form not shown)")

            reached = await self._reached_dashboard(session)
            if not reached:
                current = await browser.current_url()
                await self._screenshot(session, "login_failed")
                await self._move(session, DriverState.LOGGED_OUT)
                message = f"Login failed - did not reach dashboard. Current URL: {current}"
                session.logger.error(f"❌ [{code}] {message}")
                return LoginResult(False, message, current, tuple(session.screenshots[shots_before:]))

            await self._move(session, DriverState.DASHBOARD)
            session.logger.info(f"✅ [{code}] Login successful - dashboard reached")
            return LoginResult(True, "Login successful", await browser.current_url(), tuple(session.screenshots[shots_before:]))

        except Exception as e:
            session.logger.error(f"❌ [{code}] Login error: {e}")
            await self._screenshot(session, "login_error")
            if session.machine.can_move(DriverState.LOGGED_OUT):
                await self._move(session, DriverState.LOGGED_OUT)
            return LoginResult(False, f"Login failed: {e}", "", tuple(session.screenshots[shots_before:]))

    async def _reached_dashboard(self, session: PortalSession) -> bool:
        browser, layout = session.browser, session.layout

        if layout.dashboard_url_marker:
            if await browser.wait_for_url(layout.dashboard_url_marker, config.LOGIN_TIMEOUT):
                return True
            # Some portals land on a dashboard variant without the full path
            current = await browser.current_url()
            return layout.dashboard_url_marker in current or "/Dashboard" in current

        if layout.dashboard_ready:
            return await browser.wait_for(layout.dashboard_ready, config.LOGIN_TIMEOUT)

        return True

    # ================================
    # BATCH UPLOAD
    # ================================

    async def batch_upload(self, session: PortalSession, artifact: Artifact) -> DriverResult:
        """
        Upload, recover and confirm, within the attempt budget.

        Args:
            session: Session in DASHBOARD
            artifact: Batch as originally encoded

        Returns:
            DriverResult; ``rejected_rows`` is the union over every attempt
        """
        code = session.code
        requested = artifact.row_count
        current = artifact

        for attempt in range(1, self.max_attempts + 1):
            session.attempts = attempt
            session.logger.info(f"🔄 [{code}] Attempt {attempt}/{self.max_attempts} with {current.row_count} rows")

            try:
                await self._stage_upload(session, current, attempt)
                await self._move(session, DriverState.VALIDATING)

                ready = await session.browser.wait_for(session.layout.validation_ready, config.VALIDATION_TIMEOUT)
                if not ready:
                    raise PortalInteractionError(
                        f"Validation did not finish within {config.VALIDATION_TIMEOUT:.0f}s"
                    )

                errors = await self._collect_errors(session)

                if not errors:
                    await self._move(session, DriverState.CLEAN)
                    receipt = await self._confirm(session)
                    submitted = self._reconcile_receipt(session, current, receipt)
                    if len(submitted) == current.row_count:
                        message = f"Batch upload successful. {current.row_count} records submitted for {session.descriptor.name}."
                    else:
                        message = (
                            f"Batch committed with partial acceptance for {session.descriptor.name}: portal accepted "
                            f"{receipt.accepted} of {current.row_count}, {len(submitted)} confirmed by the receipt."
                        )
                    session.logger.info(f"✅ [{code}] {message}")
                    return DriverResult.succeeded(
                        message=message,
                        submitted_record_ids=submitted,
                        requested=requested,
                        confirmation_numbers=list(receipt.confirmation_numbers),
                        rejected_rows=session.rejected,
                        screenshots=session.screenshots,
                        attempts=attempt,
                        state_history=session.machine.history,
                        receipt=receipt,
                    )

                await self._move(session, DriverState.HAS_ERRORS)
                await self._move(session, DriverState.RECOVERING)
                session.logger.warning(f"⚠️ [{code}] Found {len(errors)} errors in attempt {attempt}")
                self._record_rejections(session, errors, current)

                classification = self.classifier.classify(errors, len(session.descriptor.signers.candidates))
                if not classification.is_actionable:
                    await self._delete_quietly(session)
                    session.machine.abort()
                    reasons = "; ".join(row.message for row in classification.unattributed[:5])
                    return self._failed(
                        session, f"Portal reported errors that name no row; batch cannot be corrected: {reasons}", requested
                    )

                session.logger.info(
                    f"📊 [{code}] rowsToRemove={len(classification.remove_rows)} "
                    f"rowsToFixSignator={len(classification.fix_rows)}"
                )
                current = current.corrected(
                    classification.remove_rows, classification.fix_rows, session.descriptor.signers
                )

                await self._delete_batch(session)

                if current.is_empty:
                    session.machine.abort()
                    return self._failed(
                        session, f"All records had errors after {attempt} attempt(s). No clean records remain.", requested
                    )

                if attempt == self.max_attempts:
                    session.machine.abort()
                    return self._failed(
                        session, f"Failed after {attempt} attempts. Some errors could not be resolved.", requested
                    )

            except Exception as e:
                session.logger.error(f"❌ [{code}] Attempt {attempt} error: {e}")
                await self._screenshot(session, f"attempt{attempt}_error")

                if attempt == self.max_attempts or not self._back_to_dashboard(session):
                    session.machine.abort()
                    return self._failed(session, f"Failed after {attempt} attempts: {e}", requested)

        session.machine.abort()
        return self._failed(session, "Upload failed after all attempts", requested)

    async def _stage_upload(self, session: PortalSession, artifact: Artifact, attempt: int) -> None:
        """Open batch import, attach the artifact and start the portal's import."""
        browser, layout, code = session.browser, session.layout, session.code

        session.logger.info(f"📤 [{code}] Navigating to batch upload...")
        await self.timing.human_delay("batch link")
        if not await browser.wait_for(layout.batch_link, config.ELEMENT_WAIT_TIMEOUT):
            raise PortalInteractionError("Could not find batch upload link")
        await browser.click(layout.batch_link)
        await self.timing.human_delay("upload page")

        if not await browser.wait_for(layout.file_input, config.ELEMENT_WAIT_TIMEOUT):
            raise PortalInteractionError("File input not found")

        path = self._write_artifact(artifact, attempt)
        await browser.upload_file(layout.file_input, str(path))
        await self._move(session, DriverState.UPLOAD_STAGED)
        await self.timing.human_delay("import")

        if layout.upload_button:
            if not await browser.wait_for(layout.upload_button, config.ELEMENT_WAIT_TIMEOUT):
                raise PortalInteractionError("Upload button not found")
            await browser.click(layout.upload_button)

        session.logger.info(f"📤 [{code}] Waiting for portal validation (attempt {attempt})...")

    def _write_artifact(self, artifact: Artifact, attempt: int) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = self.upload_dir / f"{artifact.file_stem}_attempt{attempt}_{stamp}.{artifact.format.extension}"
        path.write_text(artifact.content, encoding="utf-8")
        return path

    async def _collect_errors(self, session: PortalSession) -> List[ErrorRow]:
        """Read every page of validation feedback into de-duplicated error rows."""
        browser, layout = session.browser, session.layout

        if layout.error_mode == ErrorListMode.MESSAGE_LIST:
            return dedupe(parse_message_list(await browser.texts(layout.error_rows)))

        rows = parse_detail_table(await browser.table_rows(layout.error_rows))

        for page in range(2, config.ERROR_TABLE_MAX_PAGES + 1):
            link = layout.page_link(page)
            if link is None or not await browser.exists(link):
                break
            try:
                await browser.click(link)
                await self.timing.human_delay(f"error page {page}")
                await browser.wait_for(layout.error_rows, config.ELEMENT_WAIT_TIMEOUT)
                rows.extend(parse_detail_table(await browser.table_rows(layout.error_rows)))
            except Exception as e:
                session.logger.warning(f"⚠️ [{session.code}] Stopped reading error pages at page {page}: {e}")
                break

        return dedupe(rows)

    def _record_rejections(self, session: PortalSession, errors: List[ErrorRow], artifact: Artifact) -> None:
        """Attach record ids from the artifact that was uploaded, then merge into the union."""
        seen = {_rejection_key(row) for row in session.rejected}
        for error in errors:
            row = error.with_record_id(artifact.record_id_for_row(error.row_number))
            key = _rejection_key(row)
            if key not in seen:
                seen.add(key)
                session.rejected.append(row)

    async def _delete_batch(self, session: PortalSession) -> None:
        """Remove the errored batch from the portal, when the portal keeps one."""
        browser, layout = session.browser, session.layout

        if layout.delete_button:
            session.logger.info(f"🗑️ [{session.code}] Deleting bad batch...")
            if not await browser.wait_for(layout.delete_button, config.VALIDATION_TIMEOUT):
                raise PortalInteractionError("Delete Batch Import button not found")
            await browser.click(layout.delete_button)
            await self.timing.human_delay("delete confirmation")

            if layout.delete_confirm_button:
                if not await browser.wait_for(layout.delete_confirm_button, config.VALIDATION_TIMEOUT):
                    raise PortalInteractionError("Delete confirmation not found")
                await browser.click(layout.delete_confirm_button)
                await self.timing.human_delay("batch deletion")

        await self._move(session, DriverState.DELETED)

    async def _delete_quietly(self, session: PortalSession) -> None:
        try:
            await self._delete_batch(session)
        except Exception as e:
            session.logger.warning(f"⚠️ [{session.code}] Could not delete errored batch before aborting: {e}")

    async def _confirm(self, session: PortalSession) -> Receipt:
        """Commit a clean batch and read its receipt. Machine ends in DONE."""
        browser, layout, code = session.browser, session.layout, session.code
        await self._move(session, DriverState.CONFIRMING)

        for checkbox in layout.pre_confirm_checkboxes:
            if not await browser.is_checked(checkbox):
                await browser.click(checkbox)
                await self.timing.human_delay()

        if layout.confirm_button:
            session.logger.info(f"📤 [{code}] No errors detected - confirming batch import")
            await browser.click(layout.confirm_button)
            await self.timing.human_delay("confirmation page")

        # Past this point the batch is committed and must never be uploaded again
        try:
            receipt = await self._read_receipt(session)
        except Exception as e:
            session.logger.warning(f"⚠️ [{code}] Batch confirmed but receipt could not be read: {e}")
            receipt = Receipt()

        if not receipt.confirmation_numbers:
            session.logger.warning(f"⚠️ [{code}] Batch confirmed but no confirmation number found")

        await self._move(session, DriverState.DONE)
        return receipt

    async def _read_receipt(self, session: PortalSession) -> Receipt:
        browser, layout = session.browser, session.layout

        marker_text = ""
        if layout.completion_marker:
            if await browser.wait_for(layout.completion_marker, config.COMPLETION_TIMEOUT):
                marker_text = " ".join(await browser.texts(layout.completion_marker))
            else:
                session.logger.warning(f"⚠️ [{session.code}] Completion marker not seen; reading page as is")

        page_text = await browser.page_text()
        confirmations = layout.extract_confirmations(marker_text) or layout.extract_confirmations(page_text)
        accepted, rejected = layout.extract_counts(marker_text)
        if accepted is None and rejected is None:
            accepted, rejected = layout.extract_counts(page_text)

        ssns: List[str] = []
        if layout.receipt_rows:
            for row in await browser.table_rows(layout.receipt_rows):
                if len(row.cells) > layout.receipt_ssn_cell:
                    ssn = "".join(ch for ch in row.cells[layout.receipt_ssn_cell] if ch.isdigit())
                    if ssn:
                        ssns.append(ssn)

        return Receipt(tuple(confirmations), accepted, rejected, tuple(ssns))

    def _reconcile_receipt(self, session: PortalSession, artifact: Artifact, receipt: Receipt) -> List[str]:
        """
        Record ids the receipt confirms.

        Without counts every uploaded row is confirmed. When the portal
        accepted fewer rows than were uploaded, only rows whose SSN appears on
        the receipt count; the rest get a rejection naming the shortfall.
        """
        if not receipt.is_short_of(artifact.row_count):
            return list(artifact.record_ids)

        matched = artifact.record_ids_for_ssns(receipt.ssns)
        session.logger.warning(
            f"⚠️ [{session.code}] Portal accepted {receipt.accepted} of {artifact.row_count} applications; "
            f"{len(matched)} matched on the receipt"
        )
        if matched:
            reason = "Not listed among the applications the portal accepted"
        else:
            reason = (
                f"Portal accepted {receipt.accepted} of {artifact.row_count} applications "
                "and the receipt does not say which"
            )
        for index, record_id in enumerate(artifact.record_ids, start=1):
            if record_id not in matched:
                session.rejected.append(ErrorRow(row_number=index, message=reason, record_id=record_id))
        return matched

    # ================================
    # HELPERS
    # ================================

    def _back_to_dashboard(self, session: PortalSession) -> bool:
        """Return to DASHBOARD after a transient error. False when the machine cannot."""
        machine = session.machine
        if machine.state == DriverState.DASHBOARD:
            return True
        if machine.can_move(DriverState.DASHBOARD):
            machine.move(DriverState.DASHBOARD)
            return True
        return False

    async def _human_type(self, browser: IBrowserService, locator: Locator, text: str) -> None:
        await browser.click(locator)
        await self.timing.human_delay()
        await browser.clear(locator)
        for char in text or "":
            await browser.send_keys(locator, char)
            await self.timing.keystroke_delay()

    async def _move(self, session: PortalSession, target: DriverState) -> None:
        session.machine.move(target)
        await self._screenshot(session, target.value)

    async def _screenshot(self, session: PortalSession, label: str) -> Optional[str]:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        path = self.screenshot_dir / f"{session.code}_{label}_{stamp}.png"
        try:
            saved = await session.browser.screenshot(str(path))
        except Exception as e:
            session.logger.debug(f"Screenshot {label} failed: {e}")
            return None
        if saved:
            session.screenshots.append(str(path))
            return str(path)
        return None

    def _failed(self, session: PortalSession, message: str, requested: int) -> DriverResult:
        return DriverResult.failed(
            message=message,
            requested=requested,
            rejected_rows=session.rejected,
            screenshots=session.screenshots,
            attempts=session.attempts,
            state_history=session.machine.history,
        )
