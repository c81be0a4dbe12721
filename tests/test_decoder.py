"""Unit tests for sensor and access payload decoding."""

from __future__ import annotations

import pytest

from models.records import SensorSample
from services.decoder import (
    RECORD_POLICIES,
    RecordKind,
    ValidationPolicy,
    apply_policy,
    decode_access,
    decode_sensor_body,
    decode_sensor_line,
)
from services.errors import INCOMPLETE, INVALID, MalformedPayload


def test_decode_sensor_line_success() -> None:
    sample = decode_sensor_line('{"temperatura": 24.5, "umidade": 60, "lux": 300}')

    assert sample == SensorSample(temperature=24.5, humidity=60.0, lux=300.0)
    assert isinstance(sample.humidity, float)


@pytest.mark.parametrize(
    ("line", "reason"),
    [
        ("not json", INVALID),
        ('{"temperatura": 24.5, "umidade": 60', INVALID),
        ("[24.5, 60, 300]", INVALID),
        ('{"temperatura": 24.5, "umidade": 60}', INCOMPLETE),
        ('{"temperatura": null, "umidade": 60, "lux": 300}', INCOMPLETE),
        ('{"temperatura": "24.5", "umidade": 60, "lux": 300}', INVALID),
        ('{"temperatura": true, "umidade": 60, "lux": 300}', INVALID),
        ('{"temperatura": NaN, "umidade": 60, "lux": 300}', INVALID),
        ('{"temperatura": 24.5, "umidade": Infinity, "lux": 300}', INVALID),
        ('{"temperatura": 24.5, "umidade": 60, "lux": -Infinity}', INVALID),
    ],
)
def test_decode_sensor_line_rejects_malformed_lines(line: str, reason: str) -> None:
    with pytest.raises(MalformedPayload) as excinfo:
        decode_sensor_line(line)

    assert excinfo.value.reason == reason
    assert excinfo.value.raw == line


def test_decode_sensor_body_ignores_extra_fields() -> None:
    body = {"temperatura": 20, "umidade": 55.5, "lux": 0, "device": "arduino"}

    assert decode_sensor_body(body) == SensorSample(temperature=20.0, humidity=55.5, lux=0.0)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
def test_decode_sensor_body_rejects_non_finite_values(value: float) -> None:
    body = {"temperatura": 24.5, "umidade": value, "lux": 300}

    with pytest.raises(MalformedPayload) as excinfo:
        decode_sensor_body(body)

    assert excinfo.value.reason == INVALID


def test_decode_access_trims_name() -> None:
    fields = decode_access("  Maria Silva ", "04A1B2", "liberado", "fotos/maria.jpg")

    assert fields.name == "Maria Silva"
    assert fields.uid == "04A1B2"


@pytest.mark.parametrize(
    "args",
    [
        ("   ", "04A1B2", "liberado", "foto.jpg"),
        ("Maria", "", "liberado", "foto.jpg"),
        ("Maria", "04A1B2", None, "foto.jpg"),
        ("Maria", "04A1B2", "liberado", ""),
    ],
)
def test_decode_access_requires_every_field(args) -> None:
    with pytest.raises(MalformedPayload):
        decode_access(*args)


@pytest.mark.parametrize(
    "args",
    [
        (["Maria"], "04A1B2", "liberado", "foto.jpg"),
        ("Maria", 4660, "liberado", "foto.jpg"),
        ("Maria", "04A1B2", True, "foto.jpg"),
        ("Maria", "04A1B2", "liberado", {"k": 1}),
    ],
)
def test_decode_access_rejects_non_string_fields(args) -> None:
    with pytest.raises(MalformedPayload) as excinfo:
        decode_access(*args)

    assert excinfo.value.reason == INVALID


def test_policies_per_record_kind() -> None:
    assert RECORD_POLICIES[RecordKind.sensor] is ValidationPolicy.strict
    assert RECORD_POLICIES[RecordKind.access] is ValidationPolicy.silent_best_effort


def test_apply_policy_strict_propagates() -> None:
    with pytest.raises(MalformedPayload):
        apply_policy(RecordKind.sensor, decode_sensor_line, "garbage")


def test_apply_policy_best_effort_returns_none() -> None:
    assert apply_policy(RecordKind.access, decode_access, "", "uid", "ok", "f.jpg") is None
