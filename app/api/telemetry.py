from fastapi import APIRouter
from pydantic import AwareDatetime

from app.models.telemetry import DataRow, FieldList, ImeiList, TelemetryResponse
from app.services.telemetry_service import get_telemetry_service
from app.storage.flux_queries import parse_time_bound

router = APIRouter()


@router.get("/data", response_model=list[DataRow])
async def get_data(imei: str, start: AwareDatetime, stop: AwareDatetime):
    service = get_telemetry_service()
    return await service.query_data(imei, start, stop)


@router.get("/telemetry", response_model=TelemetryResponse)
async def get_telemetry(imei: str, start: str, end: str):
    service = get_telemetry_service()
    return await service.query_telemetry(
        imei, parse_time_bound(start), parse_time_bound(end)
    )


@router.get("/imeis", response_model=ImeiList)
async def list_imeis():
    service = get_telemetry_service()
    return ImeiList(imeis=await service.list_imeis())


@router.get("/fields", response_model=FieldList)
async def list_fields(imei: str):
    service = get_telemetry_service()
    return FieldList(fields=await service.list_fields(imei))
