"""
lifecycle/audit.py
------------------
Audit stamps attached to hidden/trashed transitions.

AuditTrailRecorder.stamp() is a pure function of the actor, the record
label and the request metadata (IP, clock). It never writes anything;
the lifecycle managers put the result in the same UPDATE that sets the
flag.

Persisted shape (JSON column reg_excluido / reg_deletado):

    {"excluidopor": "42", "excluido_data": "2025-01-01T10:00:00+00:00",
     "tab": "clients", "nome": "Acme", "ip": "10.0.0.1"}

"motivo" is added when a reason was given.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from bizcore.core.exceptions import ActorRequired

HIDDEN_VERB = "excluido"
TRASHED_VERB = "deletado"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RequestMeta:
    """Ambient request data available to the audit recorder."""
    ip: Optional[str] = None


@dataclass(frozen=True)
class AuditRecord:
    actor: str
    timestamp: Optional[datetime]
    entity_label: Optional[str] = None
    ip: Optional[str] = None
    reason: Optional[str] = None

    def to_json(self, verb: str, table: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            f"{verb}por": self.actor,
            f"{verb}_data": self.timestamp.isoformat(),
            "tab": table,
            "nome": self.entity_label,
        }
        if self.ip:
            payload["ip"] = self.ip
        if self.reason:
            payload["motivo"] = self.reason
        return payload

    @classmethod
    def from_json(cls, verb: str, payload: Optional[Dict[str, Any]]) -> Optional["AuditRecord"]:
        if not payload:
            return None
        raw_ts = payload.get(f"{verb}_data")
        return cls(
            actor=str(payload.get(f"{verb}por", "")),
            timestamp=datetime.fromisoformat(raw_ts) if raw_ts else None,
            entity_label=payload.get("nome"),
            ip=payload.get("ip"),
            reason=payload.get("motivo"),
        )


class AuditTrailRecorder:
    """Builds audit stamps for one request."""

    def __init__(
        self,
        meta: RequestMeta,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._meta = meta
        self._clock = clock

    def stamp(
        self,
        actor: Optional[str],
        entity_label: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AuditRecord:
        """
        Raises:
            ActorRequired: actor is missing or blank. Every transition must
                be attributable, so the mutation does not happen.
        """
        if actor is None or not str(actor).strip():
            raise ActorRequired()
        return AuditRecord(
            actor=str(actor),
            timestamp=self._clock(),
            entity_label=entity_label,
            ip=self._meta.ip,
            reason=reason,
        )
