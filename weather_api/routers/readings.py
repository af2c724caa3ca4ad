"""Weather reading endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status

from weather_api.config import settings
from weather_api.core.auth import AnyKey, StationKey, get_reading_store, raise_for_batch
from weather_api.core.exceptions import StoreError
from weather_api.logging_config import get_logger
from weather_api.schemas.credential import BatchResponse
from weather_api.schemas.reading import (
    FahrenheitConversionRequest,
    MaxPrecipitationResponse,
    PatchReadingsRequest,
    ReadingFields,
    ReadingResponse,
    UpdateLocationRequest,
    WeatherMetrics,
    WeatherMetricsResponse,
)
from weather_api.services.entity_store import ReadingStore
from weather_api.services.reading_service import (
    add_reading,
    convert_to_fahrenheit,
    max_precipitation,
    patch_readings,
    update_location,
    weather_metrics_at,
)

logger = get_logger(__name__)

router = APIRouter(tags=["readings"])

Store = Annotated[ReadingStore, Depends(get_reading_store)]


def _database_error(action: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Failed to {action}.",
    )


@router.post(
    "/add_reading",
    response_model=ReadingResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def add_reading_endpoint(
    body: ReadingFields,
    _api_key: StationKey,
    store: Store,
) -> ReadingResponse:
    """Add a reading; only supplied fields are stored."""
    try:
        reading = await add_reading(store, body.supplied_fields())
    except StoreError:
        raise _database_error("add reading record")
    return ReadingResponse(id=reading.id, **reading.to_fields())


@router.patch("/update_location", response_model=BatchResponse)
async def update_location_endpoint(
    body: UpdateLocationRequest,
    _api_key: StationKey,
    store: Store,
) -> BatchResponse:
    """Update the coordinates of one reading."""
    try:
        result = await update_location(
            store, body.reading_id, body.supplied_coordinates()
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    raise_for_batch(result)
    return BatchResponse(
        message="Coordinate fields successfully updated.",
        applied_count=result.applied_count,
        verified_count=result.verified_count,
    )


@router.patch("/readings", response_model=BatchResponse)
async def patch_readings_endpoint(
    body: PatchReadingsRequest,
    _api_key: StationKey,
    store: Store,
) -> BatchResponse:
    """Set the supplied fields on every listed reading, or on none."""
    try:
        result = await patch_readings(
            store, body.reading_ids, body.fields.supplied_fields()
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    raise_for_batch(result)
    return BatchResponse(
        message="Reading field(s) successfully updated.",
        applied_count=result.applied_count,
        verified_count=result.verified_count,
    )


@router.patch("/fahrenheit_conversion", response_model=BatchResponse)
async def fahrenheit_conversion_endpoint(
    body: FahrenheitConversionRequest,
    _api_key: StationKey,
    store: Store,
) -> BatchResponse:
    """Add ``Temperature (F)`` derived from ``Temperature (C)``."""
    result = await convert_to_fahrenheit(store, body.reading_ids)
    raise_for_batch(result)
    return BatchResponse(
        message="Temperature (F) field(s) successfully added.",
        applied_count=result.applied_count,
        verified_count=result.verified_count,
    )


@router.get("/max_precipitation_by_date_range", response_model=MaxPrecipitationResponse)
async def max_precipitation_endpoint(
    _api_key: AnyKey,
    store: Store,
) -> MaxPrecipitationResponse:
    """Maximum precipitation over the configured window of years."""
    try:
        value, since = await max_precipitation(
            store, settings.precipitation_window_years
        )
    except StoreError:
        raise _database_error("retrieve maximum precipitation record")

    if value is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No precipitation recorded in the requested period.",
        )
    return MaxPrecipitationResponse(
        message=(
            "Maximum precipitation record successfully retrieved, "
            f"which is {value} mm/h."
        ),
        max_precipitation=value,
        since=since,
    )


@router.get("/weather_metrics_at_date_hour", response_model=WeatherMetricsResponse)
async def weather_metrics_endpoint(
    _api_key: AnyKey,
    store: Store,
    year: Annotated[int, Query(ge=1, le=9999)],
    month: Annotated[int, Query(ge=1, le=12)],
    day: Annotated[int, Query(ge=1, le=31)],
    hour: Annotated[int, Query(ge=0, le=23)],
) -> WeatherMetricsResponse:
    """Weather metrics of readings taken within one UTC hour."""
    try:
        metrics = await weather_metrics_at(store, year, month, day, hour)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except StoreError:
        raise _database_error("retrieve weather metrics")

    return WeatherMetricsResponse(
        message="Weather metrics successfully retrieved.",
        readings=[WeatherMetrics(**m) for m in metrics],
    )
