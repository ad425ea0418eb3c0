"""API routers for the Decan Chart API."""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, Query

from aspects import ASPECT_TYPES
from config import get_settings
from decans import compute_decans, decans_from_manual_entry, place_planets
from ephemeris import EphemerisContext
from exceptions import ChartCalculationError, InvalidInputError
from models import (
    NatalChartRequest,
    BirthDataRequest,
    SevenRequest,
    SolarReturnRequest,
    ManualDecanRequest,
    NatalChartResponse,
    DecanResponse,
    ManualDecanResponse,
    SevenResponse,
    SolarReturnResponse,
    TurkeyOffsetResponse,
    ConfigAspectsResponse,
    ConfigTimezonesResponse,
    AspectDefinitionResponse,
    HouseDecansData,
    DecanPlacementData,
    HouseAgeCycleData,
    AgeSegmentData,
    SegmentPlacementData,
)
from natal import Chart, ChartAssembler, summarize_chart
from seven import compute_age_cycles, place_planets_in_segments, segment_for_age
from solar_return import SolarReturnEngine
from timeutils import TURKEY_ALIASES, known_timezones, resolve_turkey_offset, validate_civil_datetime

logger = logging.getLogger(__name__)

router = APIRouter()


# Dependencies
@lru_cache
def get_ephemeris() -> EphemerisContext:
    """One ephemeris context per process, shared by every request."""
    settings = get_settings()
    return EphemerisContext(
        ephemeris_path=settings.ephemeris_path,
        enabled=settings.ephemeris_enabled,
    )


def get_assembler(ephemeris: EphemerisContext = Depends(get_ephemeris)) -> ChartAssembler:
    return ChartAssembler(ephemeris, get_settings())


def get_solar_return_engine(assembler: ChartAssembler = Depends(get_assembler)) -> SolarReturnEngine:
    return SolarReturnEngine(assembler, settings=get_settings())


# Helper Functions
async def _build_natal_chart(request: BirthDataRequest, assembler: ChartAssembler,
                             include_angles: bool = False) -> Chart:
    """Compute a chart, wrapping anything but bad input in ChartCalculationError."""
    try:
        return await assembler.compute_chart(request.to_birth_data(), include_angles=include_angles)
    except (InvalidInputError, ChartCalculationError):
        raise
    except Exception as e:
        raise ChartCalculationError(f"Chart calculation failed: {str(e)}") from e


def _chart_response(chart: Chart) -> NatalChartResponse:
    response = NatalChartResponse.model_validate(chart)
    response.summary = summarize_chart(chart)
    return response


# Configuration Endpoints
@router.get(
    "/config/aspects",
    response_model=ConfigAspectsResponse,
    summary="List Aspect Definitions",
    description="Aspect types in the order they are tested, with their maximum orbs."
)
async def get_aspects():
    """List all aspect definitions with orb information."""
    return ConfigAspectsResponse(
        aspects=[AspectDefinitionResponse.model_validate(asp) for asp in ASPECT_TYPES]
    )


@router.get(
    "/config/timezones",
    response_model=ConfigTimezonesResponse,
    summary="List Built-in Timezones",
    description="Zones resolved from the built-in offset table. Other IANA names go through pytz."
)
async def get_timezones():
    return ConfigTimezonesResponse(
        timezones=known_timezones(),
        turkey_aliases=sorted(TURKEY_ALIASES)
    )


@router.get(
    "/time/turkey-offset",
    response_model=TurkeyOffsetResponse,
    summary="Historical Turkey UTC Offset"
)
async def get_turkey_offset(
    year: int = Query(..., ge=1, le=9999),
    month: int = Query(..., ge=1, le=12),
    day: int = Query(..., ge=1, le=31),
):
    """UTC offset Turkey observed on a given date."""
    validate_civil_datetime(year, month, day)
    return TurkeyOffsetResponse(year=year, month=month, day=day, offset=resolve_turkey_offset(year, month, day))


# Natal Chart Endpoints
@router.post(
    "/natal/calculate",
    response_model=NatalChartResponse,
    summary="Calculate Natal Chart",
    description="""
    Calculate a natal chart including:
    - Planetary positions in signs and houses
    - House cusps, Ascendant and MC
    - Aspects between planets (and the angles when requested)
    - South Node and Part of Fortune
    - Intercepted and same-sign houses

    Uses the Swiss Ephemeris with Placidus houses, or the approximation
    engine with equal houses when the ephemeris is unavailable.
    """,
    responses={
        200: {"description": "Successful calculation"},
        422: {"description": "Validation error - invalid input parameters"},
        500: {"description": "Calculation error"}
    }
)
async def calculate_natal_chart(request: NatalChartRequest, assembler: ChartAssembler = Depends(get_assembler)):
    """Calculate a single natal chart."""
    chart = await _build_natal_chart(request, assembler, include_angles=request.include_angles)
    return _chart_response(chart)


# Decan Endpoints
@router.post(
    "/decans/calculate",
    response_model=DecanResponse,
    summary="Calculate House Decans",
    description="Split every house into three decans and place the planets in them."
)
async def calculate_decans(request: BirthDataRequest, assembler: ChartAssembler = Depends(get_assembler)):
    chart = await _build_natal_chart(request, assembler)
    try:
        houses = compute_decans(chart.cusps)
        placements = place_planets(houses, chart.planets)
    except InvalidInputError:
        raise
    except Exception as e:
        raise ChartCalculationError(f"Decan calculation failed: {str(e)}") from e

    return DecanResponse(
        chart=_chart_response(chart),
        houses=[HouseDecansData.model_validate(h) for h in houses],
        placements=[DecanPlacementData.model_validate(p) for p in placements]
    )


@router.post(
    "/decans/manual",
    response_model=ManualDecanResponse,
    summary="Calculate Decans From Entered Cusps",
    description="""
    Build decans from cusps typed in as degree and minute within a sign.
    The Ascendant sign anchors house 1; each following house moves one
    sign on unless the previous house is flagged same_sign (no move) or
    passed_30 (two signs).
    """
)
async def calculate_manual_decans(request: ManualDecanRequest):
    houses = decans_from_manual_entry(
        request.ascendant_sign,
        [(c.degree, c.minute) for c in request.cusps],
        [c.same_sign for c in request.cusps],
        [c.passed_30 for c in request.cusps],
    )
    return ManualDecanResponse(houses=[HouseDecansData.model_validate(h) for h in houses])


# Age Cycle Endpoints
@router.post(
    "/seven/calculate",
    response_model=SevenResponse,
    summary="Calculate Seven-Year Age Cycles",
    description="Seven one-year segments per house, each with its sign and decan at the start, "
                "and the natal planets placed in the segment covering their arc from the cusp."
)
async def calculate_seven(request: SevenRequest, assembler: ChartAssembler = Depends(get_assembler)):
    chart = await _build_natal_chart(request, assembler)
    cycles = compute_age_cycles(chart.cusps, birth_year=chart.birth.year)

    response = SevenResponse(
        chart=_chart_response(chart),
        houses=[HouseAgeCycleData.model_validate(h) for h in cycles],
        placements=[SegmentPlacementData.model_validate(p)
                    for p in place_planets_in_segments(cycles, chart.planets)]
    )
    if request.current_age is not None:
        segment = segment_for_age(cycles, request.current_age)
        response.current_house = segment.house
        response.current_segment = AgeSegmentData.model_validate(segment)
    return response


# Solar Return Endpoints
@router.post(
    "/solar-return/calculate",
    response_model=SolarReturnResponse,
    summary="Calculate Solar Return Calendar",
    description="""
    Find the Solar Return for a year and build its calendar:
    - Return instant for the year and the next (measured solar year length)
    - Return chart in UT at the birth place or a chosen place
    - Decan calendar starting from the return Sun
    - Twelve solar months from the natal Sun

    is_approximate is true whenever an instant did not come from the
    ephemeris crossing search.
    """,
    responses={
        200: {"description": "Successful calculation"},
        422: {"description": "Validation error - invalid input parameters"},
        500: {"description": "Calculation error"}
    }
)
async def calculate_solar_return(request: SolarReturnRequest,
                                 engine: SolarReturnEngine = Depends(get_solar_return_engine)):
    natal = await _build_natal_chart(request, engine.assembler)
    try:
        result = await engine.compute(
            natal,
            request.year,
            latitude=request.return_latitude,
            longitude=request.return_longitude,
            location_name=request.return_location_name,
        )
    except (InvalidInputError, ChartCalculationError):
        raise
    except Exception as e:
        raise ChartCalculationError(f"Solar Return calculation failed: {str(e)}") from e

    if result.is_approximate:
        logger.warning("Solar Return %d is approximate (%s)", request.year, result.instant.precision.value)
    response = SolarReturnResponse.model_validate(result)
    response.chart.summary = summarize_chart(result.chart)
    return response
