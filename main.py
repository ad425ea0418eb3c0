import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from config import get_settings
from exceptions import (
    ChartCalculationError,
    InvalidInputError,
    InvalidDateTimeError,
    InvalidCoordinatesError,
    InvalidTimezoneError
)
from routers import router

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Natal charts, house decans, seven-year age cycles and Solar Return calendars",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_response(status_code: int, error: str, message: str, detail=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "detail": detail
        }
    )


# Exception Handlers
@app.exception_handler(InvalidDateTimeError)
async def invalid_datetime_handler(request: Request, exc: InvalidDateTimeError):
    """Handle invalid date/time errors."""
    return _error_response(422, "InvalidDateTimeError", str(exc))


@app.exception_handler(InvalidCoordinatesError)
async def invalid_coordinates_handler(request: Request, exc: InvalidCoordinatesError):
    """Handle invalid coordinates errors."""
    return _error_response(422, "InvalidCoordinatesError", str(exc))


@app.exception_handler(InvalidTimezoneError)
async def invalid_timezone_handler(request: Request, exc: InvalidTimezoneError):
    """Handle invalid timezone errors."""
    return _error_response(422, "InvalidTimezoneError", str(exc))


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    """Handle any other invalid input."""
    return _error_response(422, "InvalidInputError", str(exc))


@app.exception_handler(ChartCalculationError)
async def chart_calculation_error_handler(request: Request, exc: ChartCalculationError):
    """Handle chart calculation errors."""
    cause = exc.__cause__
    logger.error("Chart calculation failed: %s", exc, exc_info=exc)
    return _error_response(500, "ChartCalculationError", str(exc),
                           type(cause).__name__ if cause is not None else None)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle Pydantic validation errors."""
    return _error_response(422, "ValidationError", "Request validation failed", jsonable_encoder(exc.errors()))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other unexpected exceptions."""
    logger.exception("Unhandled error on %s", request.url.path)
    return _error_response(500, "InternalServerError", "An unexpected error occurred")


# Include API router
app.include_router(router, prefix="/api/v1", tags=["API"])


# Root endpoints
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok"}
