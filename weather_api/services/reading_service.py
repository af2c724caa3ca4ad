"""Weather reading operations.

Fields are carried as ``{attribute_name: value}`` mappings containing only
the keys the caller supplied. A zero temperature or coordinate is a real
value and is stored like any other.
"""

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from weather_api.core.batch import (
    BatchConsistencyProtocol,
    BatchResult,
    DerivedField,
    SetFields,
)
from weather_api.core.identifiers import ValidationPolicy
from weather_api.logging_config import get_logger
from weather_api.models.reading import Reading
from weather_api.services.entity_store import ReadingStore

logger = get_logger(__name__)

_ENTITY = "reading"

KELVIN_OFFSET = 273.15
FAHRENHEIT_FROM_CELSIUS = DerivedField(source="temperature_c", scale=1.8, offset=32)

# Columns a patch may overwrite but never clear
REQUIRED_FIELDS = frozenset({"time"})

# Fields returned by the hourly weather metrics query
WEATHER_METRIC_FIELDS = (
    "temperature_c",
    "atmospheric_pressure_kpa",
    "solar_radiation_wm2",
    "precipitation_mm_h",
)


def generate_device_id(device_name: str) -> str:
    """Derive a device ID from a station's name.

    Each space-separated part contributes its first two and last two
    characters; parts are joined with underscores and lower-cased, e.g.
    ``"Noosa Heads Station"`` -> ``"nosa_heds_ston"``.
    """
    parts = []
    for part in device_name.split(" "):
        parts.append(part[:2] + part[max(len(part) - 2, 0):])
    return "_".join(parts).lower()


def build_reading_fields(
    supplied: Mapping[str, Any],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Complete a new reading's fields with defaults and derived values."""
    fields = dict(supplied)

    if fields.get("time") is None:
        fields["time"] = now or datetime.now(UTC)

    if fields.get("device_id") is None and fields.get("device_name"):
        fields["device_id"] = generate_device_id(fields["device_name"])

    if fields.get("temperature_k") is None and fields.get("temperature_c") is not None:
        fields["temperature_k"] = round(fields["temperature_c"] + KELVIN_OFFSET, 2)

    return {name: value for name, value in fields.items() if value is not None}


async def add_reading(store: ReadingStore, supplied: Mapping[str, Any]) -> Reading:
    """Insert a reading built from the supplied fields."""
    reading = await store.insert(build_reading_fields(supplied))
    logger.info("Reading added", reading_id=reading.id, device_id=reading.device_id)
    return reading


async def patch_readings(
    store: ReadingStore,
    reading_ids: Sequence[Any],
    fields: Mapping[str, Any],
) -> BatchResult:
    """Set ``fields`` on every reading in ``reading_ids``, or on none.

    Raises:
        ValueError: If no fields were supplied, or a required field is null.
    """
    if not fields:
        raise ValueError("No reading fields supplied")
    cleared = sorted(n for n in REQUIRED_FIELDS if n in fields and fields[n] is None)
    if cleared:
        raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
    protocol = BatchConsistencyProtocol(store, _ENTITY)
    return await protocol.apply_batch(
        reading_ids, SetFields(dict(fields)), ValidationPolicy.STRICT
    )


async def update_location(
    store: ReadingStore,
    reading_id: Any,
    coordinates: Mapping[str, Any],
) -> BatchResult:
    """Update the latitude and/or longitude of a single reading.

    Raises:
        ValueError: If neither coordinate was supplied.
    """
    if not coordinates:
        raise ValueError("Latitude or Longitude must be supplied")
    protocol = BatchConsistencyProtocol(store, _ENTITY)
    return await protocol.apply_batch(
        [reading_id], SetFields(dict(coordinates)), ValidationPolicy.STRICT
    )


async def convert_to_fahrenheit(
    store: ReadingStore,
    reading_ids: Sequence[Any],
) -> BatchResult:
    """Derive the Fahrenheit temperature from Celsius on the given readings.

    Malformed IDs are dropped; readings without a Celsius value get a null
    Fahrenheit value.
    """
    protocol = BatchConsistencyProtocol(store, _ENTITY)
    return await protocol.apply_batch(
        reading_ids,
        SetFields({"temperature_f": FAHRENHEIT_FROM_CELSIUS}),
        ValidationPolicy.LENIENT,
    )


async def max_precipitation(
    store: ReadingStore,
    window_years: int,
    now: datetime | None = None,
) -> tuple[float | None, datetime]:
    """Highest precipitation recorded since the start of the window.

    The window starts on 1 January of ``window_years`` calendar years ago.

    Returns:
        Tuple of (maximum or None when nothing was recorded, window start).
    """
    now = now or datetime.now(UTC)
    since = datetime(now.year - window_years, 1, 1, tzinfo=UTC)
    return await store.max_precipitation_since(since), since


async def weather_metrics_at(
    store: ReadingStore,
    year: int,
    month: int,
    day: int,
    hour: int,
) -> list[dict[str, Any]]:
    """Temperature, pressure, radiation and precipitation within one UTC hour.

    Raises:
        ValueError: If the date/hour does not exist, or the hour ends past
            the last representable datetime.
    """
    start = datetime(year, month, day, hour, tzinfo=UTC)
    try:
        end = start + timedelta(hours=1)
    except OverflowError as exc:
        raise ValueError("Hour is beyond the supported date range") from exc
    readings = await store.find_between(start, end)
    return [
        {
            name: getattr(reading, name)
            for name in WEATHER_METRIC_FIELDS
            if getattr(reading, name) is not None
        }
        for reading in readings
    ]
