"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MessageResponse(BaseModel):
    """Acknowledgement body."""

    mensagem: str


class ErrorResponse(BaseModel):
    """Error body returned by the ingestion and query endpoints."""

    erro: str


class ReadingOut(BaseModel):
    """One stored sensor reading as exposed to dashboards."""

    model_config = ConfigDict(populate_by_name=True)

    temperature: float = Field(..., alias="temperatura")
    humidity: float = Field(..., alias="umidade")
    lux: float
    timestamp: str = Field(
        ..., alias="data_hora", description="Reference-zone time, second precision."
    )


class AccessOut(BaseModel):
    """Most recent badge scan."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., alias="nome")
    uid: str
    status: str
    timestamp: str = Field(..., alias="data_hora")
    photo: str = Field(..., alias="foto", description="Opaque photo reference.")


class HealthResponse(BaseModel):
    status: str
    store: str
    subscribers: int = Field(0, ge=0)
