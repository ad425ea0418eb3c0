"""Pydantic models for Decan Chart API request/response validation."""

from datetime import datetime
from typing import Optional, Union

import pytz
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ConfigDict

from natal import UT, BirthData
from solar_return import Precision
from timeutils import TURKEY_ALIASES, TZ_TABLE


# Request Models
class BirthDataRequest(BaseModel):
    """Birth moment and place shared by every chart request."""

    birth_date: datetime = Field(
        ...,
        description="Local civil birth date and time in ISO 8601 format (no offset)",
        examples=["1990-06-15T14:30:00"]
    )
    latitude: float = Field(
        ...,
        ge=-90,
        le=90,
        description="Latitude in decimal degrees (-90 to 90)"
    )
    longitude: float = Field(
        ...,
        ge=-180,
        le=180,
        description="Longitude in decimal degrees (-180 to 180), east positive"
    )
    timezone: Optional[Union[float, str]] = Field(
        None,
        description="IANA zone name, hour offset (e.g. 3 or '+3'), 'UT', or 'turkey'. "
                    "Births inside Turkey use its historical rule for any zone or offset except 'UT' and 0."
    )
    location_name: Optional[str] = Field(
        None,
        description="Free-text place name echoed in summaries"
    )

    @field_validator('timezone')
    @classmethod
    def validate_timezone(cls, v: Optional[Union[float, str]]) -> Optional[Union[float, str]]:
        """Validate timezone string."""
        if v is None or isinstance(v, float):
            return v
        if v == UT or v.lower() in TURKEY_ALIASES or v in TZ_TABLE:
            return v
        try:
            float(v)
            return v
        except ValueError:
            pass
        try:
            pytz.timezone(v)
            return v
        except pytz.exceptions.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")

    def to_birth_data(self) -> BirthData:
        return BirthData(
            year=self.birth_date.year,
            month=self.birth_date.month,
            day=self.birth_date.day,
            hour=self.birth_date.hour,
            minute=self.birth_date.minute,
            latitude=self.latitude,
            longitude=self.longitude,
            timezone=self.timezone,
            location_name=self.location_name,
        )

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{
                "birth_date": "1990-01-01T12:00:00",
                "latitude": 41.0082,
                "longitude": 28.9784,
                "timezone": "Europe/Istanbul",
                "location_name": "Istanbul"
            }]
        }
    )


class NatalChartRequest(BirthDataRequest):
    """Request model for natal chart calculation."""
    include_angles: bool = Field(
        default=False,
        description="Include the Ascendant and MC in aspect calculations"
    )


class SevenRequest(BirthDataRequest):
    """Request model for the seven-year age cycles."""
    current_age: Optional[int] = Field(
        None,
        ge=0,
        description="Age whose segment should be highlighted"
    )


class SolarReturnRequest(BirthDataRequest):
    """Request model for a Solar Return calendar."""
    year: int = Field(
        ...,
        ge=1,
        le=9998,
        description="Calendar year of the return"
    )
    return_latitude: Optional[float] = Field(
        None,
        ge=-90,
        le=90,
        description="Latitude for the return chart (defaults to the birth place)"
    )
    return_longitude: Optional[float] = Field(
        None,
        ge=-180,
        le=180,
        description="Longitude for the return chart (defaults to the birth place)"
    )
    return_location_name: Optional[str] = Field(
        None,
        description="Place name for the return chart"
    )

    @model_validator(mode='after')
    def check_return_location(self):
        if (self.return_latitude is None) != (self.return_longitude is None):
            raise ValueError("return_latitude and return_longitude must be given together")
        return self


class ManualCusp(BaseModel):
    """A hand-entered cusp inside its sign."""
    degree: int = Field(..., ge=0, le=29, description="Whole degrees within the sign")
    minute: int = Field(default=0, ge=0, le=59, description="Arc-minutes")
    same_sign: bool = Field(
        default=False,
        description="The next house starts in this house's sign"
    )
    passed_30: bool = Field(
        default=False,
        description="This house spans more than one full sign"
    )


class ManualDecanRequest(BaseModel):
    """Request model for decans from hand-entered cusps."""
    ascendant_sign: int = Field(..., ge=0, le=11, description="Sign index of the Ascendant (0 = Aries)")
    cusps: list[ManualCusp] = Field(
        ...,
        min_length=12,
        max_length=12,
        description="Cusps of houses 1-12 in order"
    )


# Response Models
class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class SignPositionData(ORMModel):
    sign_index: int
    sign: str
    degree: int
    minute: int
    formatted: str


class CivilDateData(ORMModel):
    year: int
    month: int
    day: int
    hour: int
    minute: int


class PlanetData(ORMModel):
    name: str
    longitude: float
    position: SignPositionData
    house: int
    speed: float
    retrograde: bool


class HouseData(ORMModel):
    house: int
    longitude: float
    position: SignPositionData
    span: float = Field(..., description="Degrees to the next cusp")


class AspectData(ORMModel):
    planet1: str
    planet2: str
    aspect: str
    symbol: str
    angle: float
    orb: float
    exactness: float
    exact: bool


class NatalChartResponse(ORMModel):
    julian_day: float
    utc_offset: float
    source: str = Field(..., description="swiss_ephemeris or approximation")
    house_system: str
    is_approximate: bool
    is_night_birth: bool
    ascendant: float
    midheaven: float
    ascendant_position: SignPositionData
    midheaven_position: SignPositionData
    planets: list[PlanetData]
    houses: list[HouseData]
    aspects: list[AspectData]
    intercepted_houses: list[int]
    intercepted_signs: list[str]
    same_sign_houses: list[int]
    summary: Optional[str] = None


class DecanRefData(ORMModel):
    sign_index: int
    sign: str
    band: int
    ruling_sign_index: int
    ruling_sign: str
    ruling_planet: str


class TraditionalDecanData(ORMModel):
    face: int
    face_sign: str
    ruler: str
    chaldean_ruler: str


class DecanData(ORMModel):
    index: int
    start_offset: float = Field(..., description="Arc-minutes from the house cusp")
    span: float = Field(..., description="Arc-minutes")
    start_longitude: float
    position: SignPositionData
    position_sign: str
    ruling_sign: str
    ruling_planet: str


class HouseDecansData(ORMModel):
    house: int
    cusp: float
    sign: str
    position: SignPositionData
    span: float = Field(..., description="Arc-minutes")
    span_degrees: float
    decans: list[DecanData]


class DecanPlacementData(ORMModel):
    planet: str
    house: int
    decan: int
    offset: float = Field(..., description="Arc-minutes from the house cusp")


class DecanResponse(BaseModel):
    chart: NatalChartResponse
    houses: list[HouseDecansData]
    placements: list[DecanPlacementData]


class ManualDecanResponse(BaseModel):
    houses: list[HouseDecansData]


class AgeSegmentData(ORMModel):
    house: int
    year: int
    start_age: int
    end_age: int
    calendar_year: Optional[int]
    start_offset: float
    span: float
    start_longitude: float
    position: SignPositionData
    decan: DecanRefData
    house_decan: int
    traditional: TraditionalDecanData
    end_sign: str


class SegmentPlacementData(ORMModel):
    planet: str
    longitude: float
    position: SignPositionData
    house: int
    year: int = Field(..., description="Segment 1-7 within the house")
    start_age: int
    offset: float = Field(..., description="Arc-minutes from the house cusp")
    traditional: TraditionalDecanData


class HouseAgeCycleData(ORMModel):
    house: int
    cusp: float
    sign: str
    position: SignPositionData
    span: float
    segments: list[AgeSegmentData]


class SevenResponse(BaseModel):
    chart: NatalChartResponse
    houses: list[HouseAgeCycleData]
    placements: list[SegmentPlacementData]
    current_house: Optional[int] = None
    current_segment: Optional[AgeSegmentData] = None


class SolarReturnInstantData(ORMModel):
    year: int
    julian_day: float
    civil: CivilDateData
    precision: Precision
    is_approximate: bool


class CalendarPlanetData(ORMModel):
    name: str
    longitude: float
    position: SignPositionData
    house: int
    degrees_from_start: float
    days_from_return: float
    julian_day: float
    date: CivilDateData


class CalendarEntryData(ORMModel):
    order: int
    house: int
    decan: int
    house_sign: str
    ruling_sign: str
    ruling_planet: str
    degrees_from_start: float
    span_degrees: float
    start_jd: float
    end_jd: float
    span_days: float
    start_date: CivilDateData
    is_first: bool
    planets: list[CalendarPlanetData]


class SolarMonthData(ORMModel):
    index: int
    start_longitude: float
    end_longitude: float
    start_jd: float
    end_jd: float = Field(..., description="Last day of the month")
    next_start_jd: float
    start_date: CivilDateData
    end_date: CivilDateData
    planets: list[CalendarPlanetData]


class SolarReturnResponse(ORMModel):
    year: int
    natal_sun: float
    instant: SolarReturnInstantData
    next_instant: SolarReturnInstantData
    year_days: float
    is_approximate: bool
    chart: NatalChartResponse
    decans: list[HouseDecansData]
    calendar: list[CalendarEntryData]
    months: list[SolarMonthData]


class TurkeyOffsetResponse(BaseModel):
    year: int
    month: int
    day: int
    offset: int


class AspectDefinitionResponse(ORMModel):
    name: str
    symbol: str
    angle: float
    max_orb: float


class ConfigAspectsResponse(BaseModel):
    aspects: list[AspectDefinitionResponse]


class ConfigTimezonesResponse(BaseModel):
    timezones: list[str]
    turkey_aliases: list[str]
