"""Weather reading schemas.

Fields use the labelled names stations send ("Temperature (C)", ...) on the
wire and attribute names internally. Only keys present in the request are
acted on; see ``supplied_fields``.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ReadingFields(BaseModel):
    """Every optional reading field."""

    model_config = ConfigDict(populate_by_name=True)

    time: datetime | None = Field(None, alias="Time")
    device_id: str | None = Field(None, alias="Device ID", max_length=100)
    device_name: str | None = Field(None, alias="Device Name", max_length=255)
    latitude: float | None = Field(None, alias="Latitude", ge=-90, le=90)
    longitude: float | None = Field(None, alias="Longitude", ge=-180, le=180)
    temperature_c: float | None = Field(None, alias="Temperature (C)")
    temperature_f: float | None = Field(None, alias="Temperature (F)")
    temperature_k: float | None = Field(None, alias="Temperature (K)", ge=0)
    atmospheric_pressure_kpa: float | None = Field(
        None, alias="Atmospheric Pressure (kPa)"
    )
    lightning_avg_distance_km: float | None = Field(
        None, alias="Lightning Average Distance (km)"
    )
    lightning_strike_count: int | None = Field(
        None, alias="Lightning Strike Count", ge=0
    )
    max_wind_speed_ms: float | None = Field(None, alias="Maximum Wind Speed (m/s)")
    precipitation_mm_h: float | None = Field(None, alias="Precipitation (mm/h)")
    solar_radiation_wm2: float | None = Field(None, alias="Solar Radiation (W/m2)")
    vapor_pressure_kpa: float | None = Field(None, alias="Vapor Pressure (kPa)")
    humidity_pct: float | None = Field(None, alias="Humidity (%)", ge=0, le=100)
    wind_direction_deg: float | None = Field(
        None, alias="Wind Direction (deg)", ge=0, le=360
    )
    wind_speed_ms: float | None = Field(None, alias="Wind Speed (m/s)")

    def supplied_fields(self) -> dict[str, Any]:
        """Fields whose keys appeared in the request, by attribute name."""
        return self.model_dump(exclude_unset=True)


class ReadingResponse(ReadingFields):
    """A stored reading."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: str = Field(..., alias="_id")


class UpdateLocationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reading_id: Any
    latitude: float | None = Field(None, alias="Latitude", ge=-90, le=90)
    longitude: float | None = Field(None, alias="Longitude", ge=-180, le=180)

    def supplied_coordinates(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"reading_id"})


class PatchReadingsRequest(BaseModel):
    reading_ids: list[Any]
    fields: ReadingFields


class FahrenheitConversionRequest(BaseModel):
    reading_ids: list[Any]


class MaxPrecipitationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    max_precipitation: float = Field(..., alias="Maximum Precipitation (mm/h)")
    since: datetime


class WeatherMetrics(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temperature_c: float | None = Field(None, alias="Temperature (C)")
    atmospheric_pressure_kpa: float | None = Field(
        None, alias="Atmospheric Pressure (kPa)"
    )
    solar_radiation_wm2: float | None = Field(None, alias="Solar Radiation (W/m2)")
    precipitation_mm_h: float | None = Field(None, alias="Precipitation (mm/h)")


class WeatherMetricsResponse(BaseModel):
    message: str
    readings: list[WeatherMetrics]
