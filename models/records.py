"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True, slots=True)
class SensorSample:
    """A decoded sensor sample that has not been accepted yet."""

    temperature: float
    humidity: float
    lux: float


@dataclass(frozen=True, slots=True)
class SensorReading:
    """An accepted sensor sample stamped in the reference time zone."""

    temperature: float
    humidity: float
    lux: float
    timestamp: str
    record_id: Optional[int] = None

    @classmethod
    def from_sample(cls, sample: SensorSample, timestamp: str) -> "SensorReading":
        return cls(
            temperature=sample.temperature,
            humidity=sample.humidity,
            lux=sample.lux,
            timestamp=timestamp,
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "temperatura": self.temperature,
            "umidade": self.humidity,
            "lux": self.lux,
            "data_hora": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class AccessEvent:
    """A badge scan. ``photo`` is an opaque reference, never dereferenced here."""

    name: str
    uid: str
    status: str
    photo: str
    timestamp: str
    record_id: Optional[int] = None

    def to_payload(self) -> Dict[str, Any]:
        return {
            "nome": self.name,
            "uid": self.uid,
            "status": self.status,
            "foto": self.photo,
            "data_hora": self.timestamp,
        }
