"""Decoding of untrusted sensor and access payloads."""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, TypeVar

from models.records import SensorSample
from services.errors import INCOMPLETE, INVALID, MalformedPayload

# Wire field name -> SensorSample attribute.
SENSOR_FIELDS = {
    "temperatura": "temperature",
    "umidade": "humidity",
    "lux": "lux",
}

T = TypeVar("T")


class RecordKind(str, Enum):
    sensor = "sensor"
    access = "access"


class ValidationPolicy(str, Enum):
    """How a decode failure is treated for a given record kind."""

    strict = "strict"
    silent_best_effort = "silent_best_effort"


RECORD_POLICIES = {
    RecordKind.sensor: ValidationPolicy.strict,
    RecordKind.access: ValidationPolicy.silent_best_effort,
}


@dataclass(frozen=True, slots=True)
class AccessFields:
    name: str
    uid: str
    status: str
    photo: str


def _reject_constant(token: str) -> Any:
    raise ValueError(f"{token} is not valid JSON")


def loads_json(text: str | bytes) -> Any:
    """``json.loads`` without the NaN and Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


def _is_number(value: Any) -> bool:
    # bool is an int subclass but never a valid reading.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def decode_sensor_body(body: Any) -> SensorSample:
    """Validate an already parsed object carrying the three sensor fields."""
    if not isinstance(body, Mapping):
        raise MalformedPayload("payload is not an object", raw=body, reason=INVALID)

    values: dict[str, float] = {}
    for wire_name, attribute in SENSOR_FIELDS.items():
        value = body.get(wire_name)
        if value is None:
            raise MalformedPayload(
                f"missing field {wire_name!r}", raw=body, reason=INCOMPLETE
            )
        if not _is_number(value):
            raise MalformedPayload(
                f"field {wire_name!r} is not numeric", raw=body, reason=INVALID
            )
        values[attribute] = float(value)
    return SensorSample(**values)


def decode_sensor_line(line: str) -> SensorSample:
    """Parse one framed serial line as a JSON sensor object."""
    try:
        body = loads_json(line)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload("line is not valid JSON", raw=line, reason=INVALID) from exc
    try:
        return decode_sensor_body(body)
    except MalformedPayload as exc:
        exc.raw = line
        raise


def decode_access(name: Any, uid: Any, status: Any, photo: Any) -> AccessFields:
    """Every field must be a non-empty string; ``name`` is trimmed first."""
    fields = (name, uid, status, photo)
    if any(value is not None and not isinstance(value, str) for value in fields):
        raise MalformedPayload("access field is not a string", reason=INVALID)
    if isinstance(name, str):
        name = name.strip()
    if not name or not uid or not status or not photo:
        raise MalformedPayload("incomplete access event", reason=INCOMPLETE)
    return AccessFields(name=name, uid=uid, status=status, photo=photo)


def apply_policy(kind: RecordKind, decode: Callable[..., T], *args: Any) -> Optional[T]:
    """Run ``decode`` under the policy registered for ``kind``.

    Strict kinds propagate ``MalformedPayload``; best-effort kinds turn it
    into ``None`` without any report.
    """
    try:
        return decode(*args)
    except MalformedPayload:
        if RECORD_POLICIES[kind] is ValidationPolicy.silent_best_effort:
            return None
        raise
