"""Browser service implementation using Selenium."""

import asyncio
from pathlib import Path
from typing import List, Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.common.by import By
from selenium.webdriver.remote.webelement import WebElement
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait

from wotc_portal_bot.application.interfaces import IBrowserService, ILoggingService, Locator
from wotc_portal_bot.config import config
from wotc_portal_bot.domain.models import TableRow

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/125.0.0.0 Safari/537.36 Edg/125.0.0.0"
)

MASK_WEBDRIVER_SCRIPT = "Object.defineProperty(navigator, 'webdriver', { get: () => false });"


class BrowserService(IBrowserService):
    """
    Browser service implementation using Selenium WebDriver.

    Every blocking WebDriver call runs in a worker thread through
    ``asyncio.to_thread`` so several portal sessions can share one event
    loop. One instance drives one Chrome process; the portal driver creates
    a fresh instance per job.
    """

    def __init__(
        self,
        logging_service: ILoggingService,
        headless: Optional[bool] = None,
        chrome_binary: Optional[str] = None,
        page_load_timeout: float = 60.0,
    ):
        """
        Initialize browser service.

        Args:
            logging_service: Service for logging operations
            headless: Run browser in headless mode (config default if None)
            chrome_binary: Explicit Chrome/Chromium executable (config default if None)
            page_load_timeout: Seconds before a navigation is abandoned
        """
        self.logger = logging_service
        self.headless = config.HEADLESS if headless is None else headless
        self.chrome_binary = config.CHROME_BINARY if chrome_binary is None else chrome_binary
        self.page_load_timeout = page_load_timeout
        self.driver = None

    # ================================
    # LIFECYCLE
    # ================================

    def _build_options(self) -> Options:
        chrome_options = Options()
        chrome_options.add_argument("--no-first-run")
        chrome_options.add_argument("--no-default-browser-check")
        chrome_options.add_argument("--disable-extensions")
        chrome_options.add_argument("--disable-infobars")
        chrome_options.add_argument("--disable-blink-features=AutomationControlled")
        chrome_options.add_argument("--window-size=1366,768")
        chrome_options.add_argument("--lang=en-US")
        chrome_options.add_argument(f"--user-agent={DESKTOP_USER_AGENT}")
        chrome_options.add_experimental_option("excludeSwitches", ["enable-automation"])

        if self.headless:
            chrome_options.add_argument("--headless=new")
            chrome_options.add_argument("--no-sandbox")
            chrome_options.add_argument("--disable-dev-shm-usage")

        if self.chrome_binary:
            chrome_options.binary_location = self.chrome_binary

        return chrome_options

    def _setup_driver(self) -> None:
        try:
            self.logger.info("🚀 Setting up Chrome WebDriver...")
            self.driver = webdriver.Chrome(options=self._build_options())
            self.driver.set_page_load_timeout(self.page_load_timeout)
            self.driver.execute_cdp_cmd("Page.addScriptToEvaluateOnNewDocument", {"source": MASK_WEBDRIVER_SCRIPT})
            self.logger.info("✅ Chrome WebDriver initialized")
        except Exception as e:
            self.logger.error(f"❌ Failed to setup Chrome WebDriver: {e}")
            raise

    def _quit(self) -> None:
        try:
            self.logger.info("🔚 Closing browser...")
            self.driver.quit()
            self.logger.info("✅ Browser closed")
        except WebDriverException as e:
            self.logger.error(f"❌ Error closing browser: {e}")
        finally:
            self.driver = None

    async def start(self) -> None:
        """Launch Chrome."""
        await asyncio.to_thread(self._setup_driver)

    async def close(self) -> None:
        """Close browser and cleanup."""
        if self.driver:
            await asyncio.to_thread(self._quit)

    # ================================
    # NAVIGATION
    # ================================

    def _require_driver(self):
        if not self.driver:
            raise RuntimeError("Browser driver not initialized")
        return self.driver

    async def goto(self, url: str) -> None:
        self.logger.debug(f"🌐 Navigating to {url}")
        await asyncio.to_thread(self._require_driver().get, url)

    async def current_url(self) -> str:
        if not self.driver:
            return ""
        return await asyncio.to_thread(lambda: self.driver.current_url)

    def _wait_until(self, condition, timeout: float) -> bool:
        try:
            WebDriverWait(self._require_driver(), timeout).until(condition)
            return True
        except TimeoutException:
            return False

    async def wait_for(self, locator: Locator, timeout: float) -> bool:
        """
        Wait for element to be present.

        Args:
            locator: (By strategy, selector) pair
            timeout: Seconds to wait

        Returns:
            True if found, False on timeout
        """
        return await asyncio.to_thread(self._wait_until, EC.presence_of_element_located(locator), timeout)

    async def wait_for_url(self, pattern: str, timeout: float) -> bool:
        return await asyncio.to_thread(self._wait_until, EC.url_contains(pattern), timeout)

    # ================================
    # ELEMENT INTERACTION
    # ================================

    def _find(self, locator: Locator) -> WebElement:
        return self._require_driver().find_element(*locator)

    def _find_all(self, locator: Locator) -> List[WebElement]:
        return self._require_driver().find_elements(*locator)

    async def exists(self, locator: Locator) -> bool:
        elements = await asyncio.to_thread(self._find_all, locator)
        return bool(elements)

    def _click(self, locator: Locator) -> None:
        element = WebDriverWait(self._require_driver(), config.ELEMENT_WAIT_TIMEOUT).until(
            EC.element_to_be_clickable(locator)
        )
        try:
            element.click()
        except WebDriverException:
            # Overlays (cookie banners, modals fading out) intercept native clicks
            self.driver.execute_script("arguments[0].click();", element)

    async def click(self, locator: Locator) -> None:
        await asyncio.to_thread(self._click, locator)

    async def clear(self, locator: Locator) -> None:
        await asyncio.to_thread(lambda: self._find(locator).clear())

    async def send_keys(self, locator: Locator, text: str) -> None:
        await asyncio.to_thread(lambda: self._find(locator).send_keys(text))

    async def is_checked(self, locator: Locator) -> bool:
        return await asyncio.to_thread(lambda: self._find(locator).is_selected())

    async def upload_file(self, locator: Locator, path: str) -> None:
        """Attach a file; Chrome needs an absolute path on the file input."""
        absolute = str(Path(path).resolve())
        await asyncio.to_thread(lambda: self._find(locator).send_keys(absolute))

    # ================================
    # SCRAPING
    # ================================

    def _table_rows(self, locator: Locator) -> List[TableRow]:
        rows = []
        for tr in self._find_all(locator):
            cells = tuple(td.text.strip() for td in tr.find_elements(By.TAG_NAME, "td"))
            rows.append(TableRow(text=tr.text.strip(), cells=cells))
        return rows

    async def table_rows(self, locator: Locator) -> List[TableRow]:
        return await asyncio.to_thread(self._table_rows, locator)

    async def texts(self, locator: Locator) -> List[str]:
        return await asyncio.to_thread(lambda: [el.text.strip() for el in self._find_all(locator)])

    async def page_text(self) -> str:
        return await asyncio.to_thread(lambda: self._find((By.TAG_NAME, "body")).text)

    def _screenshot(self, path: str) -> bool:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            return bool(self._require_driver().save_screenshot(path))
        except (WebDriverException, OSError, RuntimeError) as e:
            self.logger.warning(f"⚠️ Screenshot failed ({path}): {e}")
            return False

    async def screenshot(self, path: str) -> bool:
        return await asyncio.to_thread(self._screenshot, path)
