import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api import telemetry
from app.config.settings import get_settings
from app.core.errors import ConfigurationError, TelemetryQueryError
from app.core.influx_client import close_influx_client
from app.storage.telemetry_store import get_telemetry_store

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if not await get_telemetry_store().ping():
        await close_influx_client()
        raise ConfigurationError(f"InfluxDB is unreachable at {settings.influx_url}")
    logger.info("Fleet telemetry API started, InfluxDB at %s", settings.influx_url)
    yield
    await close_influx_client()
    logger.info("Fleet telemetry API stopped")


app = FastAPI(title="Fleet Telemetry API", version="1.0.0", lifespan=lifespan)

app.include_router(telemetry.router, prefix="/api", tags=["telemetry"])


@app.get("/health")
async def health_check():
    influx_ok = await get_telemetry_store().ping()
    return {
        "status": "healthy" if influx_ok else "degraded",
        "service": "fleet-telemetry",
        "influxdb": "up" if influx_ok else "down",
    }


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    missing = [str(err["loc"][-1]) for err in exc.errors() if err.get("loc")]
    return JSONResponse(
        status_code=400,
        content={"error": f"Missing or invalid parameters: {', '.join(missing)}"},
    )


@app.exception_handler(TelemetryQueryError)
async def telemetry_query_error_handler(request: Request, exc: TelemetryQueryError):
    logger.error("Telemetry query failed on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})
