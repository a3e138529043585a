"""
Versioned static reference tables used by the backfill scripts.

Each table lives in ``app/data/reference/<name>.json`` as
``{"version", "description", "entries"}``. Lookups try an exact
case-insensitive key first, then a substring match in either direction.
Substring matches are logged with both keys so wrong guesses show up in
the script output.
"""

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)

REFERENCE_DIR = Path(__file__).parent.parent / "data" / "reference"

BATTERY_CAPACITIES = "battery_capacities"
TORQUE = "torque"
BATTERY_WARRANTIES = "battery_warranties"
TECHNOLOGY_FEATURES = "technology_features"
BIDIRECTIONAL_CHARGING = "bidirectional_charging"
WLTP_EFFICIENCY = "wltp_efficiency"


@dataclass
class ReferenceTable:
    """One loaded reference table."""

    name: str
    version: str
    description: str
    entries: dict[str, Any]
    extra: dict[str, Any] = field(default_factory=dict)

    def lookup(self, key: Optional[str]) -> Optional[str]:
        """
        Return the table key matching ``key``, or None.

        Exact (case-insensitive) match wins; otherwise the first key that
        contains ``key`` or is contained in it.
        """
        if not key:
            return None
        wanted = key.strip().lower()
        if not wanted:
            return None

        for candidate in self.entries:
            if candidate.lower() == wanted:
                return candidate

        for candidate in self.entries:
            lowered = candidate.lower()
            if not lowered:
                continue
            if wanted in lowered or lowered in wanted:
                logger.info(
                    f"Reference '{self.name}': fuzzy match '{key}' -> '{candidate}'",
                    extra={"table": self.name, "key": key, "matched": candidate},
                )
                return candidate
        return None

    def resolve(self, key: Optional[str]) -> Any:
        """Value for ``key`` using exact-then-substring matching, or None."""
        matched = self.lookup(key)
        return None if matched is None else self.entries[matched]

    def resolve_exact(self, key: Optional[str]) -> Any:
        if not key:
            return None
        wanted = key.strip().lower()
        for candidate, value in self.entries.items():
            if candidate.lower() == wanted:
                return value
        return None

    def resolve_trim(self, name: Optional[str], trim: Optional[str]) -> Any:
        """
        Value for a name -> trim -> value table.

        The vehicle name is matched with :meth:`lookup`; the trim must match
        exactly (case-insensitive). A missing trim matches the ``""`` key.
        """
        trims = self.resolve(name)
        if not isinstance(trims, dict):
            return None
        wanted = (trim or "").strip().lower()
        for candidate, value in trims.items():
            if candidate.lower() == wanted:
                return value
        return None


def load_table(name: str, directory: Optional[Path] = None) -> ReferenceTable:
    """Read ``<directory>/<name>.json`` into a :class:`ReferenceTable`."""
    path = (directory or REFERENCE_DIR) / f"{name}.json"
    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    extra = {k: v for k, v in data.items() if k not in ("version", "description", "entries")}
    table = ReferenceTable(
        name=name,
        version=str(data.get("version", "")),
        description=data.get("description", ""),
        entries=data.get("entries", {}),
        extra=extra,
    )
    logger.debug(f"Loaded reference table {name} v{table.version} ({len(table.entries)} entries)")
    return table


@lru_cache
def get_table(name: str) -> ReferenceTable:
    """Cached packaged reference table."""
    return load_table(name)


# =============================================================================
# Bidirectional charging
# =============================================================================


def resolve_bidirectional(
    name: Optional[str],
    charging_capabilities: Optional[str] = None,
    table: Optional[ReferenceTable] = None,
) -> Optional[bool]:
    """
    Whether a vehicle supports bidirectional charging.

    Order: known-vehicle table, charging capability keywords, brand rules.
    Returns None when nothing applies.
    """
    table = table or get_table(BIDIRECTIONAL_CHARGING)

    known = table.resolve(name)
    if known is not None:
        return bool(known)

    capabilities = (charging_capabilities or "").lower()
    keywords = table.extra.get("capability_keywords", [])
    if capabilities and any(keyword in capabilities for keyword in keywords):
        return True

    lowered = (name or "").lower()
    for rule in table.extra.get("brand_rules", []):
        if not any(pattern in lowered for pattern in rule["patterns"]):
            continue
        if any(pattern in lowered for pattern in rule.get("unless", [])):
            continue
        return bool(rule["value"])

    return None


def resolve_warranty(name: Optional[str], table: Optional[ReferenceTable] = None) -> Optional[str]:
    """Battery warranty for the brand (first word of ``name``)."""
    if not name or not name.split():
        return None
    table = table or get_table(BATTERY_WARRANTIES)
    return table.resolve(name.split()[0])


def resolve_wltp_efficiency(
    name: Optional[str],
    trim: Optional[str],
    table: Optional[ReferenceTable] = None,
) -> Optional[float]:
    """WLTP consumption for ``"name trim"`` in kWh/100km."""
    table = table or get_table(WLTP_EFFICIENCY)
    key = f"{name or ''} {trim or ''}".strip()
    value = table.resolve(key)
    return None if value is None else float(value)
