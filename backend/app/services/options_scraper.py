"""
Manufacturer configurator scraper for priced add-on options.

Each supported brand has a strategy that knows its configurator URL per
market and the CSS selectors that hold option names and prices. Pages are
rendered with headless Chromium (Playwright) and parsed with BeautifulSoup.

Scraping is best effort: any navigation or parse failure yields an empty
option list, never an exception, so ingestion is unaffected by site churn.

Usage:
    scraper = OptionsScraperService()
    options = await scraper.scrape_options("Tesla Model 3", "2024", "SG")
"""

import asyncio
import re
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag
from playwright.async_api import async_playwright
from pydantic import BaseModel

from app.core.config import settings
from app.core.logging import get_logger
from app.core.metrics import track_option_scrape

logger = get_logger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
PAGE_LOAD_TIMEOUT_MS = 30000
SETTLE_DELAY_MS = 3000
BATCH_DELAY_SECONDS = 3.0

_PRICE_CHARS = re.compile(r"[^\d.,]")
_LEADING_DECIMAL = re.compile(r"\d*\.?\d*")


class OptionPrice(BaseModel):
    """A priced configurator option."""

    name: str
    price: float


def parse_price(text: Optional[str]) -> float:
    """
    Parse a displayed price such as "S$ 8,600" or "RM12,000.00".

    Returns:
        The amount, or 0 when no number can be read.
    """
    if not text:
        return 0.0
    digits = _PRICE_CHARS.sub("", text).replace(",", "")
    match = _LEADING_DECIMAL.match(digits)
    if not match or not any(ch.isdigit() for ch in match.group(0)):
        return 0.0
    return float(match.group(0))


# =============================================================================
# Brand strategies
# =============================================================================


class ConfiguratorScraper(ABC):
    """Selectors and URL rules for one manufacturer's configurator."""

    brand: str = ""
    keywords: Tuple[str, ...] = ()
    container_selector: str = ""
    name_selector: Optional[str] = None  # None: the container text is the name
    price_selector: str = '[class*="price"]'
    option_keywords: Tuple[str, ...] = ()  # when set, keep only matching options

    def matches(self, vehicle_name: str) -> bool:
        lowered = vehicle_name.lower()
        return any(keyword in lowered for keyword in self.keywords)

    @abstractmethod
    def build_url(self, vehicle_name: str, country: str) -> Optional[str]:
        """Configurator URL, or None when the model or market is unsupported."""

    def _option_name(self, element: Tag) -> str:
        if self.name_selector is None:
            return element.get_text(" ", strip=True)
        name_el = element.select_one(self.name_selector)
        return name_el.get_text(" ", strip=True) if name_el else ""

    def extract(self, html: str) -> List[OptionPrice]:
        """Pull priced options out of a rendered configurator page."""
        soup = BeautifulSoup(html, "html.parser")
        options: List[OptionPrice] = []
        seen = set()

        for element in soup.select(self.container_selector):
            name = self._option_name(element)
            price_el = element.select_one(self.price_selector)
            price = parse_price(price_el.get_text(strip=True)) if price_el else 0.0

            if not name or price <= 0:
                continue
            if self.option_keywords and not any(k in name.lower() for k in self.option_keywords):
                continue
            if (name, price) in seen:
                continue

            seen.add((name, price))
            options.append(OptionPrice(name=name, price=price))

        return options


class TeslaScraper(ConfiguratorScraper):
    brand = "tesla"
    keywords = ("tesla",)
    container_selector = '[data-testid*="option"], [class*="option"], button[class*="package"]'
    price_selector = '[class*="price"], [data-testid*="price"]'
    option_keywords = ("fsd", "self-driving", "premium")

    LOCALES = {"SG": "en_sg", "MY": "en_my"}
    MODELS = {"model 3": "model3", "model y": "modely", "model s": "models", "model x": "modelx"}

    def build_url(self, vehicle_name: str, country: str) -> Optional[str]:
        locale = self.LOCALES.get(country)
        lowered = vehicle_name.lower()
        slug = next((s for key, s in self.MODELS.items() if key in lowered), None)
        if not locale or not slug:
            return None
        return f"https://www.tesla.com/{locale}/{slug}/design"


class BYDScraper(ConfiguratorScraper):
    brand = "byd"
    keywords = ("byd",)
    container_selector = '[class*="option"], [class*="package"], [class*="accessory"]'
    name_selector = 'h3, h4, [class*="title"]'

    BASE_URLS = {"SG": "https://www.byd.com/sg", "MY": "https://www.byd.com/my"}
    MODELS = {"atto 3": "atto-3", "dolphin": "dolphin", "seal": "seal"}

    def build_url(self, vehicle_name: str, country: str) -> Optional[str]:
        base = self.BASE_URLS.get(country)
        lowered = vehicle_name.lower()
        slug = next((s for key, s in self.MODELS.items() if key in lowered), None)
        if not base or not slug:
            return None
        return f"{base}/{slug}"


class HyundaiKiaScraper(ConfiguratorScraper):
    brand = "hyundai-kia"
    keywords = ("hyundai", "ioniq", "kia", "ev6")
    container_selector = '[class*="option"], [class*="package"]'
    name_selector = 'h3, h4, [class*="name"]'

    HYUNDAI_BASE_URLS = {"SG": "https://www.hyundai.com.sg", "MY": "https://www.hyundai.com.my"}
    KIA_BASE_URLS = {"SG": "https://www.kia.com.sg", "MY": "https://www.kia.com.my"}

    def build_url(self, vehicle_name: str, country: str) -> Optional[str]:
        lowered = vehicle_name.lower()
        if "kia" in lowered or "ev6" in lowered:
            base = self.KIA_BASE_URLS.get(country)
            slug = "ev6" if "ev6" in lowered else None
        else:
            base = self.HYUNDAI_BASE_URLS.get(country)
            if "ioniq 6" in lowered:
                slug = "ioniq-6"
            elif "ioniq 5" in lowered:
                slug = "ioniq-5"
            else:
                slug = None
        if not base or not slug:
            return None
        return f"{base}/{slug}"


SCRAPERS: Sequence[ConfiguratorScraper] = (TeslaScraper(), BYDScraper(), HyundaiKiaScraper())


def select_scraper(vehicle_name: str) -> Optional[ConfiguratorScraper]:
    """Pick the brand strategy by substring match, None for unsupported brands."""
    return next((s for s in SCRAPERS if s.matches(vehicle_name)), None)


# =============================================================================
# Service
# =============================================================================


class OptionsScraperService:
    """Politeness-delayed, failure-tolerant option scraping."""

    def __init__(self, delay_ms: Optional[int] = None, batch_delay_seconds: float = BATCH_DELAY_SECONDS):
        self._delay_ms = settings.SCRAPE_DELAY_MS if delay_ms is None else delay_ms
        self._batch_delay_seconds = batch_delay_seconds

    async def _fetch_html(self, url: str) -> str:
        """Render ``url`` in headless Chromium and return the page HTML."""
        async with async_playwright() as p:
            browser = await p.chromium.launch(
                headless=True,
                args=["--no-sandbox", "--disable-setuid-sandbox"],
            )
            try:
                context = await browser.new_context(
                    viewport={"width": 1920, "height": 1080},
                    user_agent=USER_AGENT,
                )
                page = await context.new_page()
                await page.goto(url, timeout=PAGE_LOAD_TIMEOUT_MS, wait_until="networkidle")
                await page.wait_for_timeout(SETTLE_DELAY_MS)
                return await page.content()
            finally:
                await browser.close()

    async def scrape_options(
        self,
        vehicle_name: str,
        model_trim: Optional[str],
        country: str,
    ) -> List[OptionPrice]:
        """
        Scrape priced options for one vehicle.

        Returns:
            Options with a positive price, or an empty list for unsupported
            brands, markets or any failure.
        """
        if self._delay_ms > 0:
            await asyncio.sleep(self._delay_ms / 1000)

        scraper = select_scraper(vehicle_name)
        if scraper is None:
            return []

        url = scraper.build_url(vehicle_name, country)
        if url is None:
            logger.debug(f"No configurator URL for {vehicle_name} in {country}")
            return []

        try:
            html = await self._fetch_html(url)
            options = scraper.extract(html)
        except Exception as e:
            logger.warning(
                f"Option scrape failed for {vehicle_name} {model_trim or ''}".strip(),
                extra={"url": url, "country": country, "error_message": str(e)},
            )
            track_option_scrape(scraper.brand, success=False)
            return []

        track_option_scrape(scraper.brand, success=True)
        logger.info(
            f"Scraped {len(options)} options for {vehicle_name}",
            extra={"url": url, "country": country, "options": len(options)},
        )
        return options

    async def scrape_many(
        self,
        vehicles: Sequence[Tuple[str, Optional[str], str]],
    ) -> Dict[str, List[OptionPrice]]:
        """
        Scrape a batch of (name, trim, country) tuples sequentially.

        Returns:
            Options keyed by "{name}-{trim}-{country}".
        """
        results: Dict[str, List[OptionPrice]] = {}
        for index, (name, trim, country) in enumerate(vehicles):
            results[f"{name}-{trim or ''}-{country}"] = await self.scrape_options(name, trim, country)
            if index < len(vehicles) - 1 and self._batch_delay_seconds > 0:
                await asyncio.sleep(self._batch_delay_seconds)
        return results
