"""
Comparison endpoints - side-by-side metrics and CSV export for 2 to 4 vehicles.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.schemas.comparison import (
    ChartData,
    ComparedVehicle,
    ComparisonRequest,
    ComparisonResponse,
    IceEquivalentSchema,
)
from app.api.v1.schemas.vehicle import VehicleResponse
from app.core.exceptions import ComparisonException, VehicleNotFoundException
from app.core.logging import get_logger
from app.db.postgres.models import Vehicle
from app.db.postgres.repositories import VehicleRepository
from app.db.postgres.session import get_db
from app.services.comparison_service import (
    MAX_SELECTION,
    ComparisonSelection,
    best_values,
    build_chart_data,
    cost_per_full_charge,
    cost_per_km,
    currency_for,
    export_csv,
    export_filename,
    generate_insights,
    highlighted_metrics,
    horsepower,
    ice_equivalents_for,
    sort_vehicles,
)

router = APIRouter()
logger = get_logger(__name__)


def parse_ids(raw: str) -> List[UUID]:
    """Parse a comma separated id list."""
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(UUID(part))
        except ValueError:
            raise ComparisonException(f"Invalid vehicle id: {part}", vehicle_ids=[part])
    return ids


async def load_selection(db: AsyncSession, ids: List[UUID]) -> List[Vehicle]:
    """
    Load the vehicles for ``ids`` as one comparison selection.

    Raises:
        VehicleNotFoundException: If any id is unknown
        ComparisonException: On duplicates or vehicles from different markets
    """
    vehicles = await VehicleRepository(db).get_many(ids)
    found = {v.id for v in vehicles}
    for vehicle_id in ids:
        if vehicle_id not in found:
            raise VehicleNotFoundException(vehicle_id=str(vehicle_id))

    selection = ComparisonSelection()
    for vehicle in vehicles:
        if not selection.add(vehicle):
            raise ComparisonException(
                "Vehicles must be unique and from the same country",
                vehicle_ids=[str(i) for i in ids],
            )
    return selection.vehicles


@router.post("", response_model=ComparisonResponse, summary="Compare vehicles")
async def compare_vehicles(
    request: ComparisonRequest,
    db: AsyncSession = Depends(get_db),
) -> ComparisonResponse:
    """
    Compare 2 to 4 vehicles from the same market.

    Returns every vehicle with derived metrics (horsepower, cost per km,
    cost per full charge) and the metrics on which it is best, along with
    the best values, insights, ICE fuel cost references and chart series.
    """
    vehicles = await load_selection(db, request.vehicle_ids)
    if request.sort_field:
        vehicles = sort_vehicles(vehicles, request.sort_field, request.sort_direction)

    best = best_values(vehicles)
    rows = [
        ComparedVehicle(
            **VehicleResponse.model_validate(v).model_dump(),
            horsepower=horsepower(v),
            cost_per_km=cost_per_km(v),
            cost_per_full_charge=cost_per_full_charge(v),
            currency=currency_for(v.country),
            highlights=highlighted_metrics(v, best),
        )
        for v in vehicles
    ]

    logger.info(
        "Comparison built",
        extra={"vehicle_count": len(vehicles), "country": vehicles[0].country},
    )

    return ComparisonResponse(
        country=vehicles[0].country,
        vehicles=rows,
        best_values=best,
        insights=generate_insights(vehicles),
        ice_equivalents=[IceEquivalentSchema.model_validate(ice) for ice in ice_equivalents_for(vehicles)],
        chart_data=ChartData.model_validate(build_chart_data(vehicles)),
    )


@router.get("/export", summary="Export comparison as CSV")
async def export_comparison(
    ids: str = Query(..., description="Comma separated vehicle ids (1 to 4)"),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Download the selected vehicles as ``ev-comparison-YYYY-MM-DD.csv``."""
    vehicle_ids = parse_ids(ids)
    if not vehicle_ids or len(vehicle_ids) > MAX_SELECTION:
        raise ComparisonException(
            f"Select between 1 and {MAX_SELECTION} vehicles to export",
            vehicle_ids=[str(i) for i in vehicle_ids],
        )

    vehicles = await load_selection(db, vehicle_ids)
    filename = export_filename()
    return Response(
        content=export_csv(vehicles),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
