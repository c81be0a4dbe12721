from __future__ import annotations

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates

from app.schemas import AccessOut
from services.coordinator import IngestionCoordinator, build_default_coordinator
from services.errors import StoreUnavailable

logger = logging.getLogger(__name__)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))


def get_coordinator() -> IngestionCoordinator:
    return build_default_coordinator()


router = APIRouter(include_in_schema=False)


@router.get("/", name="index", response_class=HTMLResponse)
async def index(request: Request) -> Response:
    return templates.TemplateResponse(request, "index.html", {})


@router.get("/dashboard", name="dashboard", response_class=HTMLResponse)
async def dashboard(
    request: Request,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
) -> Response:
    try:
        event = await coordinator.latest_access()
    except StoreUnavailable:
        logger.exception("Failed to load the dashboard")
        return PlainTextResponse("Erro ao acessar os dados do banco.", status_code=500)

    access = AccessOut.model_validate(event.to_payload()) if event is not None else None
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {"dados": access},
    )
