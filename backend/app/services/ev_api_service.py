"""
EV specifications API client (api-ninjas ``/electricvehicle``).

Fetches one page of results per model query, parses the provider's
loosely typed text fields ("220 kW", "6,9 s") into numbers and derives
range, efficiency, EPA range and DC charging time where the provider
leaves them out.

Features:
- Async HTTP client with connection pooling
- Retry with exponential backoff on transport failures only
- Fixed delay between queries and a per-run request cap
- Per-query failures are logged and skipped
"""

import asyncio
import math
import re
import time
from typing import Any, Dict, List, Optional, Pattern

import httpx
from pydantic import BaseModel, Field
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from app.core.config import settings
from app.core.exceptions import EVSpecsAPIException
from app.core.logging import get_logger, log_external_api_call
from app.core.metrics import track_external_api_call
from app.services.units import round_half_up

logger = get_logger(__name__)

SERVICE_NAME = "api_ninjas"

DEFAULT_MODEL_QUERIES: List[str] = [
    "Model 3",
    "Model Y",
    "Model S",
    "Model X",
    "Atto 3",
    "Seal",
    "IONIQ 5",
    "IONIQ 6",
    "EV6",
    "Niro EV",
    "Soul EV",
    "Kona Electric",
    "XC40",
    "C40",
    "EX90",
    "EX30",
    "iX",
    "iX3",
    "i4",
    "iX1",
    "EQS",
    "EQE",
    "EQC",
    "e-tron",
    "Q4 e-tron",
    "e-tron GT",
    "ID.4",
    "ID.3",
    "ID.7",
    "Leaf",
    "Ariya",
    "Mustang Mach-E",
    "F-150 Lightning",
    "R1T",
    "R1S",
    "Lucid Air",
    "Porsche Taycan",
    "Polestar 2",
    "Bolt EV",
    "Bolt EUV",
    "GV60",
    "Electrified GV70",
    "Electrified G80",
    "MG4",
    "ZS EV",
]

# Assumed range when only battery capacity is known
FALLBACK_RANGE_KM = 400
# Share of the pack delivered during a 0-80% DC session
DC_CHARGE_WINDOW = 0.7

NUMBER_PATTERN = re.compile(r"([0-9.]+)")
KW_PATTERN = re.compile(r"([0-9.]+)\s?kW")
ACCELERATION_PATTERN = re.compile(r"([0-9.]+)\s*(?:s|sec|seconds)?", re.IGNORECASE)
WEIGHT_PATTERN = re.compile(r"([0-9.]+)\s*(?:kg|kilograms?)?", re.IGNORECASE)
_LEADING_DECIMAL = re.compile(r"\d*\.?\d*")


# =============================================================================
# Pydantic Models
# =============================================================================


class EVSpecRecord(BaseModel):
    """A normalized vehicle record from the specs provider."""

    name: str = Field(..., description="Make and model, e.g. 'Tesla Model 3'")
    model_trim: Optional[str] = Field(None, description="Model year or trim label")
    range_km: Optional[float] = None
    range_wltp_km: Optional[float] = None
    range_epa_km: Optional[float] = None
    efficiency_kwh_per_100km: Optional[float] = None
    power_rating_kw: Optional[float] = None
    battery_capacity_kwh: Optional[float] = None
    charging_time_dc_0_to_80_min: Optional[float] = None
    acceleration_0_to_100_kmh: Optional[float] = None
    gross_vehicle_weight_kg: Optional[float] = None
    raw_data: Dict[str, Any] = Field(default_factory=dict, description="Complete raw API record")


# =============================================================================
# Parsing
# =============================================================================


def parse_number(value: Any, pattern: Optional[Pattern[str]] = None) -> Optional[float]:
    """
    Extract a number from a loosely formatted provider value.

    Decimal commas are read as decimal points. The first capture group of
    ``pattern`` (default: the first run of digits and dots) is parsed up to
    the first character that cannot continue a decimal, so "1.2.3" gives 1.2.

    Returns:
        The parsed number, or None when nothing numeric is found.
    """
    if value is None:
        return None

    normalized = str(value).replace(",", ".")
    match = (pattern or NUMBER_PATTERN).search(normalized)
    if not match:
        return None

    leading = _LEADING_DECIMAL.match(match.group(1))
    text = leading.group(0) if leading else ""
    if not any(ch.isdigit() for ch in text):
        return None

    number = float(text)
    return number if math.isfinite(number) else None


def _first_number(raw: Dict[str, Any], *keys: str, pattern: Optional[Pattern[str]] = None) -> Optional[float]:
    for key in keys:
        number = parse_number(raw.get(key), pattern)
        if number is not None:
            return number
    return None


def transform_vehicle(raw: Dict[str, Any], epa_ratio: Optional[float] = None) -> Optional[EVSpecRecord]:
    """
    Normalize one provider record.

    Returns None when neither efficiency nor battery capacity can be
    derived, since nothing downstream can use such a record.
    """
    ratio = settings.EPA_WLTP_RATIO if epa_ratio is None else epa_ratio

    capacity = _first_number(raw, "battery_useable_capacity", "battery_capacity")
    wh_per_km = _first_number(
        raw,
        "energy_consumption_combined_mild_weather",
        "energy_consumption_combined_cold_weather",
        "vehicle_consumption",
    )
    provider_range = parse_number(raw.get("electric_range"))

    efficiency: Optional[float] = None
    if wh_per_km:
        efficiency = wh_per_km / 1000 * 100
    elif capacity is not None:
        assumed_range = provider_range if provider_range and provider_range > 0 else FALLBACK_RANGE_KM
        efficiency = capacity / assumed_range * 100

    if efficiency is None and capacity is None:
        return None

    range_km = provider_range or None
    if not range_km and capacity and wh_per_km:
        range_km = float(round_half_up(capacity / (wh_per_km / 1000)))

    range_wltp = range_km
    range_epa = float(round_half_up(range_wltp * ratio)) if range_wltp else None

    charge_kw = _first_number(raw, "charge_power_10p_80p", "charge_power_max", pattern=KW_PATTERN)
    charging_time = None
    if capacity and charge_kw:
        charging_time = float(round_half_up(capacity * DC_CHARGE_WINDOW / charge_kw * 60))

    year = raw.get("year_start")
    model_trim = str(year) if year not in (None, "", "No Data") else None
    name = f"{raw.get('make') or ''} {raw.get('model') or ''}".strip()

    return EVSpecRecord(
        name=name,
        model_trim=model_trim,
        range_km=range_km,
        range_wltp_km=range_wltp,
        range_epa_km=range_epa,
        efficiency_kwh_per_100km=efficiency,
        power_rating_kw=parse_number(raw.get("total_power"), KW_PATTERN),
        battery_capacity_kwh=capacity,
        charging_time_dc_0_to_80_min=charging_time,
        acceleration_0_to_100_kmh=parse_number(raw.get("acceleration_0_100_kmh"), ACCELERATION_PATTERN),
        gross_vehicle_weight_kg=parse_number(raw.get("gross_vehicle_weight"), WEIGHT_PATTERN),
        raw_data=raw,
    )


# =============================================================================
# Service
# =============================================================================


class EVSpecsService:
    """
    Async client for the EV specs provider.

    Usage:
        async with EVSpecsService() as service:
            records = await service.fetch_all()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_queries: Optional[List[str]] = None,
        request_interval_ms: Optional[int] = None,
        max_requests: Optional[int] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the specs client.

        Args:
            api_key: Provider API key (settings.API_NINJAS_KEY if omitted)
            base_url: Provider base URL
            model_queries: Model queries to run (settings override, then defaults)
            request_interval_ms: Delay after each query
            max_requests: Cap on queries per run
            timeout: HTTP request timeout in seconds
            transport: Optional httpx transport, used by tests
        """
        self._api_key = settings.API_NINJAS_KEY if api_key is None else api_key
        self._base_url = (base_url or settings.API_NINJAS_BASE_URL).rstrip("/")
        self._model_queries = model_queries or settings.api_ninjas_model_queries or DEFAULT_MODEL_QUERIES
        self._interval_ms = (
            settings.API_NINJAS_REQUEST_INTERVAL_MS if request_interval_ms is None else request_interval_ms
        )
        self._max_requests = settings.API_NINJAS_MAX_REQUESTS if max_requests is None else max_requests
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def model_queries(self) -> List[str]:
        """Queries issued by one run, capped at the request limit."""
        return self._model_queries[: self._max_requests]

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout),
                limits=httpx.Limits(max_keepalive_connections=5, max_connections=10),
                headers={
                    "User-Agent": f"{settings.PROJECT_NAME}/{settings.VERSION}",
                    "Accept": "application/json",
                },
                transport=self._transport,
            )
        return self._client

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True,
    )
    async def _make_request(self, query: str) -> List[Dict[str, Any]]:
        """
        Run one model query.

        Raises:
            EVSpecsAPIException: On any non-2xx response
            httpx.TransportError: If the provider stays unreachable after retries
        """
        client = await self._get_client()
        url = f"{self._base_url}/electricvehicle"
        start = time.time()

        with track_external_api_call(SERVICE_NAME, "/electricvehicle") as ctx:
            response = await client.get(url, params={"model": query}, headers={"X-Api-Key": self._api_key or ""})
            ctx["status_code"] = response.status_code

        duration_ms = (time.time() - start) * 1000
        log_external_api_call(
            SERVICE_NAME, "/electricvehicle", "GET", response.status_code, duration_ms,
            success=response.is_success,
        )

        if response.status_code == 401:
            raise EVSpecsAPIException("Invalid API key", status_code=401)
        if response.status_code == 429:
            raise EVSpecsAPIException("Rate limit exceeded", status_code=429)
        if not response.is_success:
            raise EVSpecsAPIException(f"API error: {response.status_code}", status_code=response.status_code)

        payload = response.json()
        return payload if isinstance(payload, list) else []

    async def fetch_by_model(self, query: str) -> List[EVSpecRecord]:
        """Fetch and normalize all records for one model query."""
        records = []
        for raw in await self._make_request(query):
            if not isinstance(raw, dict):
                logger.warning(
                    f"Skipping malformed record for query: {query}",
                    extra={"query": query, "record_type": type(raw).__name__},
                )
                continue
            record = transform_vehicle(raw)
            if record is not None:
                records.append(record)
        return records

    async def fetch_all(self) -> List[EVSpecRecord]:
        """
        Run every configured model query sequentially.

        Returns:
            Records de-duplicated on (name, model_trim), first seen wins.
            Empty when no API key is configured.
        """
        if not self._api_key:
            logger.warning("API_NINJAS_KEY is not set, skipping vehicle specs fetch")
            return []

        seen: Dict[tuple, EVSpecRecord] = {}
        queries = self.model_queries

        for index, query in enumerate(queries):
            try:
                for record in await self.fetch_by_model(query):
                    seen.setdefault((record.name, record.model_trim), record)
            except Exception as e:
                logger.error(
                    f"Vehicle specs query failed: {query}",
                    extra={"query": query, "error_message": str(e)},
                )

            if self._interval_ms > 0 and index < len(queries) - 1:
                await asyncio.sleep(self._interval_ms / 1000)

        logger.info(
            f"Fetched {len(seen)} unique vehicles from {len(queries)} queries",
            extra={"queries": len(queries), "vehicles": len(seen)},
        )
        return list(seen.values())

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "EVSpecsService":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


# =============================================================================
# Service Instance Factory
# =============================================================================


_service_instance: EVSpecsService | None = None


async def get_ev_specs_service() -> EVSpecsService:
    """Get or create the shared specs client."""
    global _service_instance
    if _service_instance is None:
        _service_instance = EVSpecsService()
    return _service_instance


async def close_ev_specs_service() -> None:
    """Close the shared specs client."""
    global _service_instance
    if _service_instance is not None:
        await _service_instance.close()
        _service_instance = None
