"""Audit stamps: actor enforcement and the persisted JSON shape."""

from datetime import datetime, timezone

import pytest

from bizcore.core.exceptions import ActorRequired
from bizcore.lifecycle.audit import (
    HIDDEN_VERB,
    TRASHED_VERB,
    AuditRecord,
    AuditTrailRecorder,
    RequestMeta,
)
from bizcore.schemas.entity import AuditRead, ClientRead

FIXED = datetime(2025, 3, 14, 9, 26, 53, tzinfo=timezone.utc)


def _recorder(ip="10.0.0.7"):
    return AuditTrailRecorder(RequestMeta(ip=ip), clock=lambda: FIXED)


@pytest.mark.parametrize("actor", [None, "", "   "])
def test_stamp_without_actor_is_rejected(actor):
    with pytest.raises(ActorRequired):
        _recorder().stamp(actor, "Acme")


def test_stamp_takes_clock_and_request_ip():
    stamp = _recorder().stamp("42", "Acme", reason="duplicate")

    assert stamp == AuditRecord(
        actor="42",
        timestamp=FIXED,
        entity_label="Acme",
        ip="10.0.0.7",
        reason="duplicate",
    )


def test_hidden_stamp_json_uses_legacy_keys():
    payload = _recorder().stamp("42", "Acme").to_json(HIDDEN_VERB, "clients")

    assert payload == {
        "excluidopor": "42",
        "excluido_data": "2025-03-14T09:26:53+00:00",
        "tab": "clients",
        "nome": "Acme",
        "ip": "10.0.0.7",
    }


def test_trashed_stamp_json_carries_reason_and_omits_missing_ip():
    payload = _recorder(ip=None).stamp("7", "Curso", reason="typo").to_json(
        TRASHED_VERB, "courses"
    )

    assert payload["deletadopor"] == "7"
    assert payload["deletado_data"] == "2025-03-14T09:26:53+00:00"
    assert payload["motivo"] == "typo"
    assert "ip" not in payload


def test_from_json_reads_persisted_stamp():
    payload = _recorder().stamp("42", "Acme").to_json(TRASHED_VERB, "clients")

    record = AuditRecord.from_json(TRASHED_VERB, payload)

    assert record.actor == "42"
    assert record.timestamp == FIXED
    assert record.ip == "10.0.0.7"


@pytest.mark.parametrize("payload", [None, {}])
def test_from_json_empty_payload_means_no_stamp(payload):
    assert AuditRecord.from_json(HIDDEN_VERB, payload) is None


def test_read_schema_exposes_flags_and_parses_legacy_string_stamp():
    row = {
        "id": 1,
        "name": "Acme",
        "hidden": "s",
        "trashed": None,
        "hidden_audit": '{"excluidopor": "3", "excluido_data": "2024-01-02T03:04:05+00:00", '
        '"tab": "clients", "nome": "Acme"}',
        "trashed_audit": None,
        "created_at": FIXED,
    }

    read = ClientRead.model_validate(row)

    assert read.hidden is True
    assert read.trashed is False
    assert read.hidden_audit == AuditRead(
        actor="3",
        timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        entity_label="Acme",
    )
    assert read.trashed_audit is None
