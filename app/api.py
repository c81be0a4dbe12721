"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import Any, List, Union

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse, PlainTextResponse

from app.schemas import AccessOut, ErrorResponse, HealthResponse, MessageResponse, ReadingOut
from datastore.connector import StoreConnector, build_default_connector
from services.broadcast import BroadcastHub, build_default_hub
from services.coordinator import IngestionCoordinator, build_default_coordinator
from services.decoder import RecordKind, apply_policy, decode_sensor_body, loads_json
from services.errors import INCOMPLETE, MalformedPayload, StoreUnavailable

logger = logging.getLogger(__name__)

SAVED_MESSAGE = "✅ Dados salvos com sucesso"
INCOMPLETE_MESSAGE = "❌ Dados incompletos"
INVALID_MESSAGE = "❌ Dados inválidos"
SAVE_FAILED_MESSAGE = "Erro ao salvar dados"
QUERY_FAILED_MESSAGE = "Erro ao acessar os dados."
NO_ACCESS_MESSAGE = "Nenhum acesso encontrado"
ACCESS_RECEIVED_MESSAGE = "Recebido"

router = APIRouter()


def get_coordinator() -> IngestionCoordinator:
    return build_default_coordinator()


def get_connector() -> StoreConnector:
    return build_default_connector()


def get_hub() -> BroadcastHub:
    return build_default_hub()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(erro=message).model_dump())


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return loads_json(raw)
    except ValueError as exc:
        raise MalformedPayload("request body is not valid JSON", raw=raw) from exc


@router.post(
    "/salvar-sensor",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Store a sensor reading pushed by an external reporter.",
)
async def save_sensor(
    request: Request,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
) -> Any:
    try:
        body = await _read_json(request)
        sample = apply_policy(RecordKind.sensor, decode_sensor_body, body)
    except MalformedPayload as exc:
        logger.warning(
            "Rejected sensor payload: %s",
            exc,
            extra={"source": "http", "reason": exc.reason, "raw_line": exc.raw},
        )
        message = INCOMPLETE_MESSAGE if exc.reason == INCOMPLETE else INVALID_MESSAGE
        return _error(status.HTTP_400_BAD_REQUEST, message)

    try:
        await coordinator.ingest_sensor(sample, source="http")
    except StoreUnavailable:
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, SAVE_FAILED_MESSAGE)
    return MessageResponse(mensagem=SAVED_MESSAGE)


@router.post(
    "/registrar-acesso",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=MessageResponse,
    summary="Submit a badge scan; incomplete scans are dropped without notice.",
)
async def register_access(
    request: Request,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
) -> MessageResponse:
    try:
        body = await _read_json(request)
    except MalformedPayload:
        body = {}
    if isinstance(body, dict):
        await coordinator.ingest_access(
            body.get("nome"), body.get("uid"), body.get("status"), body.get("foto")
        )
    return MessageResponse(mensagem=ACCESS_RECEIVED_MESSAGE)


@router.get(
    "/api/dados",
    response_model=List[ReadingOut],
    responses={500: {"model": ErrorResponse}},
    summary="Most recent sensor readings, oldest first.",
)
async def recent_readings(
    coordinator: IngestionCoordinator = Depends(get_coordinator),
) -> Any:
    try:
        readings = await coordinator.recent_readings()
    except StoreUnavailable:
        logger.exception("Failed to query sensor readings")
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, QUERY_FAILED_MESSAGE)
    return [ReadingOut.model_validate(reading.to_payload()) for reading in readings]


@router.get(
    "/ultimo-acesso",
    response_model=Union[AccessOut, MessageResponse],
    summary="Latest access event, or a placeholder when none exists.",
)
async def latest_access(
    coordinator: IngestionCoordinator = Depends(get_coordinator),
) -> Any:
    try:
        event = await coordinator.latest_access()
    except StoreUnavailable:
        logger.exception("Failed to fetch the latest access")
        return PlainTextResponse("Erro no servidor", status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    if event is None:
        return MessageResponse(mensagem=NO_ACCESS_MESSAGE)
    return AccessOut.model_validate(event.to_payload())


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck(
    connector: StoreConnector = Depends(get_connector),
    hub: BroadcastHub = Depends(get_hub),
) -> HealthResponse:
    return HealthResponse(
        status="ok",
        store=connector.state.value,
        subscribers=hub.subscriber_count(),
    )
