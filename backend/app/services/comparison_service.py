"""
Comparison engine: derived metrics, best values, sorting, insights,
chart series and CSV export for a selection of 2 to 4 vehicles.

All functions are pure and work on any object exposing the vehicle
attributes (ORM rows or API schemas).
"""

import csv
import io
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Iterable, Optional, Sequence

from app.core.exceptions import ComparisonException
from app.services.units import kw_to_hp

MAX_SELECTION = 4

CURRENCIES = {"SG": "SGD", "MY": "MYR", "ID": "IDR", "PH": "PHP", "TH": "THB", "VN": "VND"}
DEFAULT_CURRENCY = "USD"

# Residential electricity price per kWh in local currency
ELECTRICITY_RATES = {"SG": 0.50, "MY": 1.20, "ID": 3500, "PH": 8.50, "TH": 6.50, "VN": 3500}
DEFAULT_ELECTRICITY_RATE = 0.40

CHART_COLORS = ["#0ea5e9", "#10b981", "#f97316", "#a855f7"]
ICE_COLOR = "#6b7280"
NOT_AVAILABLE = "N/A"


@dataclass(frozen=True)
class IceEquivalent:
    """Fuel cost per km of comparable petrol cars in one market."""

    country: str
    cost_per_km: float
    currency: str
    models: tuple[str, ...]
    note: str


ICE_EQUIVALENTS = {
    "SG": IceEquivalent(
        country="SG",
        cost_per_km=0.24,
        currency="SGD",
        models=("Toyota Corolla Altis 1.6", "Honda Civic 1.5T"),
        note="Assumes RON95 @ SGD 2.60/L with ~15 km/L real-world efficiency.",
    ),
    "MY": IceEquivalent(
        country="MY",
        cost_per_km=0.30,
        currency="MYR",
        models=("Honda City 1.5L", "Toyota Vios 1.5L"),
        note="Assumes RON95 @ MYR 2.05/L with ~14 km/L efficiency.",
    ),
}


# =============================================================================
# Derived metrics
# =============================================================================


def currency_for(country: Optional[str]) -> str:
    return CURRENCIES.get(country or "", DEFAULT_CURRENCY)


def electricity_rate(country: Optional[str]) -> float:
    return ELECTRICITY_RATES.get(country or "", DEFAULT_ELECTRICITY_RATE)


def cost_per_km(vehicle: Any) -> Optional[float]:
    """
    Energy cost per km in local currency.

    None unless both battery capacity and range are known and positive.
    """
    capacity = vehicle.battery_capacity_kwh
    range_km = vehicle.range_km
    if capacity is None or range_km is None or capacity <= 0 or range_km <= 0:
        return None
    return capacity * electricity_rate(vehicle.country) / range_km


def cost_per_full_charge(vehicle: Any) -> Optional[float]:
    capacity = vehicle.battery_capacity_kwh
    if capacity is None or capacity <= 0:
        return None
    return capacity * electricity_rate(vehicle.country)


def horsepower(vehicle: Any) -> Optional[int]:
    return kw_to_hp(vehicle.power_rating_kw)


def vehicle_label(vehicle: Any) -> str:
    return f"{vehicle.name} {vehicle.model_trim}" if vehicle.model_trim else vehicle.name


def format_price(amount: Optional[float], country: Optional[str], digits: int = 0) -> str:
    if amount is None:
        return NOT_AVAILABLE
    return f"{currency_for(country)} {amount:,.{digits}f}"


def format_value(value: Any, digits: Optional[int] = None) -> str:
    """Render a cell, "N/A" for missing values and blank strings."""
    if value is None:
        return NOT_AVAILABLE
    if isinstance(value, str):
        return value.strip() or NOT_AVAILABLE
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if digits is not None:
        return f"{value:.{digits}f}"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


# =============================================================================
# Best values
# =============================================================================


# metric -> (getter, higher_is_better)
METRICS: dict[str, tuple[Callable[[Any], Optional[float]], bool]] = {
    "power_rating_kw": (lambda v: v.power_rating_kw, True),
    "horsepower": (horsepower, True),
    "torque_nm": (lambda v: v.torque_nm, True),
    "top_speed_kmh": (lambda v: v.top_speed_kmh, True),
    "range_km": (lambda v: v.range_km, True),
    "range_wltp_km": (lambda v: v.range_wltp_km, True),
    "range_epa_km": (lambda v: v.range_epa_km, True),
    "battery_capacity_kwh": (lambda v: v.battery_capacity_kwh, True),
    "efficiency_kwh_per_100km": (lambda v: v.efficiency_kwh_per_100km, False),
    "cost_per_km": (cost_per_km, False),
    "cost_per_full_charge": (cost_per_full_charge, False),
    "curb_weight_kg": (lambda v: v.curb_weight_kg, False),
    "battery_weight_kg": (lambda v: v.battery_weight_kg, False),
    "battery_weight_percentage": (lambda v: v.battery_weight_percentage, False),
    "charging_time_dc_0_to_80_min": (lambda v: v.charging_time_dc_0_to_80_min, False),
    "base_price_local_currency": (lambda v: v.base_price_local_currency, False),
    "acceleration_0_to_100_kmh": (lambda v: v.acceleration_0_to_100_kmh, False),
}


def best_value(vehicles: Iterable[Any], metric: str, higher_is_better: Optional[bool] = None) -> Optional[float]:
    """
    Extremal value of ``metric`` across ``vehicles``, ignoring missing values.

    Direction comes from METRICS unless ``higher_is_better`` is given.
    """
    getter, default_direction = METRICS[metric]
    direction = default_direction if higher_is_better is None else higher_is_better
    values = [value for value in (getter(v) for v in vehicles) if value is not None]
    if not values:
        return None
    return max(values) if direction else min(values)


def best_values(vehicles: Sequence[Any]) -> dict[str, Optional[float]]:
    return {metric: best_value(vehicles, metric) for metric in METRICS}


def highlighted_metrics(vehicle: Any, best: dict[str, Optional[float]]) -> list[str]:
    """Metrics on which ``vehicle`` equals the best value. Ties highlight every tied row."""
    return [
        metric
        for metric, (getter, _) in METRICS.items()
        if best.get(metric) is not None and getter(vehicle) == best[metric]
    ]


# =============================================================================
# Sorting and selection
# =============================================================================


SORTABLE_FIELDS = (
    "name",
    "range_km",
    "efficiency_kwh_per_100km",
    "base_price_local_currency",
    "power_rating_kw",
    "battery_weight_kg",
)


def sort_vehicles(vehicles: Sequence[Any], field: str, direction: str = "asc") -> list[Any]:
    """
    Sort by one field. Missing values always go last, whatever the direction.
    """
    if field not in SORTABLE_FIELDS:
        raise ComparisonException(f"Cannot sort by {field}")

    present = [v for v in vehicles if getattr(v, field) is not None]
    missing = [v for v in vehicles if getattr(v, field) is None]

    def key(v: Any) -> Any:
        value = getattr(v, field)
        return value.lower() if isinstance(value, str) else value

    return sorted(present, key=key, reverse=direction == "desc") + missing


class ComparisonSelection:
    """
    Vehicles picked for comparison in one market.

    Holds at most four vehicles without duplicates; switching the market
    clears the selection.
    """

    def __init__(self, country: Optional[str] = None, max_size: int = MAX_SELECTION):
        self.country = country
        self.max_size = max_size
        self._vehicles: list[Any] = []

    def __len__(self) -> int:
        return len(self._vehicles)

    @property
    def vehicles(self) -> list[Any]:
        return list(self._vehicles)

    @property
    def ids(self) -> list[Any]:
        return [v.id for v in self._vehicles]

    def is_full(self) -> bool:
        return len(self._vehicles) >= self.max_size

    def add(self, vehicle: Any) -> bool:
        """Add ``vehicle``. False when already selected, full, or from another market."""
        if vehicle.id in self.ids or self.is_full():
            return False
        if self.country is not None and vehicle.country != self.country:
            return False
        if self.country is None:
            self.country = vehicle.country
        self._vehicles.append(vehicle)
        return True

    def remove(self, vehicle_id: Any) -> None:
        self._vehicles = [v for v in self._vehicles if v.id != vehicle_id]

    def set_country(self, country: str) -> None:
        if country != self.country:
            self._vehicles = []
        self.country = country

    def clear(self) -> None:
        self._vehicles = []


# =============================================================================
# Insights and ICE comparison
# =============================================================================


def generate_insights(vehicles: Sequence[Any]) -> list[str]:
    """
    Short comparison callouts for range, efficiency and price.

    Needs two or more vehicles with at least one known range, price and
    efficiency among them.
    """
    if len(vehicles) < 2:
        return []

    ranged = [v for v in vehicles if v.range_km is not None]
    priced = [v for v in vehicles if v.base_price_local_currency is not None]
    rated = [v for v in vehicles if v.efficiency_kwh_per_100km is not None]
    if not ranged or not priced or not rated:
        return []

    insights = []
    longest = max(ranged, key=lambda v: v.range_km)
    cheapest = min(priced, key=lambda v: v.base_price_local_currency)
    priciest = max(priced, key=lambda v: v.base_price_local_currency)

    longest_price = longest.base_price_local_currency
    min_price = cheapest.base_price_local_currency
    if longest is not cheapest and longest_price is not None and longest_price > min_price and min_price > 0:
        premium = (longest_price - min_price) / min_price * 100
        insights.append(
            f"{vehicle_label(longest)} wins on range ({longest.range_km:g}km) "
            f"but costs {premium:.0f}% more than {vehicle_label(cheapest)}"
        )

    most_efficient = min(rated, key=lambda v: v.efficiency_kwh_per_100km)
    least_efficient = max(rated, key=lambda v: v.efficiency_kwh_per_100km)
    if most_efficient is not least_efficient:
        best_eff = most_efficient.efficiency_kwh_per_100km
        worst_eff = least_efficient.efficiency_kwh_per_100km
        saving = (worst_eff - best_eff) / worst_eff * 100
        insights.append(
            f"{vehicle_label(most_efficient)} is the most efficient ({best_eff:.1f} kWh/100km), "
            f"using {saving:.0f}% less energy than {vehicle_label(least_efficient)}"
        )

    spread = priciest.base_price_local_currency - min_price
    if priciest is not cheapest and spread > 0:
        insights.append(
            f"Price difference: {format_price(spread, cheapest.country)} between "
            f"{vehicle_label(priciest)} and {vehicle_label(cheapest)}"
        )

    return insights


def ice_equivalents_for(vehicles: Sequence[Any]) -> list[IceEquivalent]:
    """ICE reference figures for each market represented in the selection."""
    countries = []
    for v in vehicles:
        if v.country not in countries:
            countries.append(v.country)
    return [ICE_EQUIVALENTS[c] for c in countries if c in ICE_EQUIVALENTS]


# =============================================================================
# Chart data
# =============================================================================


def chart_color(index: int) -> str:
    return CHART_COLORS[index % len(CHART_COLORS)]


def build_chart_data(vehicles: Sequence[Any]) -> dict[str, list[dict[str, Any]]]:
    """
    Bar chart series for efficiency, range and cost per km.

    Vehicles with a missing value are left out of that series. The cost
    series also carries one ICE reference bar per represented market.
    """
    efficiency, ranges, costs = [], [], []

    for index, vehicle in enumerate(vehicles):
        label = vehicle_label(vehicle)
        color = chart_color(index)
        if vehicle.efficiency_kwh_per_100km is not None:
            efficiency.append({"name": label, "value": vehicle.efficiency_kwh_per_100km, "color": color})
        if vehicle.range_km is not None:
            ranges.append({"name": label, "value": vehicle.range_km, "color": color})
        cost = cost_per_km(vehicle)
        if cost is not None:
            costs.append({"name": label, "value": round(cost, 3), "color": color})

    for ice in ice_equivalents_for(vehicles):
        costs.append({"name": f"ICE² ({ice.country})", "value": ice.cost_per_km, "color": ICE_COLOR})

    return {"efficiency": efficiency, "range": ranges, "cost_per_km": costs}


# =============================================================================
# CSV export
# =============================================================================


CSV_COLUMNS: list[tuple[str, Callable[[Any], str]]] = [
    ("Name", lambda v: format_value(v.name)),
    ("Model/Trim", lambda v: format_value(v.model_trim)),
    ("Battery Weight (kg)", lambda v: format_value(v.battery_weight_kg, 0)),
    ("Vehicle Weight (kg)", lambda v: format_value(v.curb_weight_kg, 0)),
    ("Battery Weight %", lambda v: format_value(v.battery_weight_percentage, 1)),
    ("Power (kW)", lambda v: format_value(v.power_rating_kw)),
    ("Top Speed (km/h)", lambda v: format_value(v.top_speed_kmh)),
    ("Efficiency (kWh/100km)", lambda v: format_value(v.efficiency_kwh_per_100km)),
    ("Range (km)", lambda v: format_value(v.range_km)),
    ("Cost / km", lambda v: format_value(cost_per_km(v), 3)),
    ("Base Price", lambda v: format_price(v.base_price_local_currency, v.country)),
    ("Battery Manufacturer", lambda v: format_value(v.battery_manufacturer)),
    ("Battery Technology", lambda v: format_value(v.battery_technology)),
    ("Battery Warranty", lambda v: format_value(v.battery_warranty)),
    ("Technology Features", lambda v: format_value(v.technology_features)),
    ("Charging Time 0-80% (min)", lambda v: format_value(v.charging_time_dc_0_to_80_min)),
    ("Charging Capabilities", lambda v: format_value(v.charging_capabilities)),
]


def export_filename(today: Optional[date] = None) -> str:
    return f"ev-comparison-{(today or date.today()).isoformat()}.csv"


def export_csv(vehicles: Sequence[Any]) -> str:
    """One header row plus one row per vehicle; missing values read "N/A"."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=[header for header, _ in CSV_COLUMNS])
    writer.writeheader()
    for vehicle in vehicles:
        writer.writerow({header: render(vehicle) for header, render in CSV_COLUMNS})
    return buffer.getvalue()
