"""
pipegate/core/models.py

PipeGate Data Model

Everything here is built per validation call and thrown away afterwards.
Nothing in this module holds state across calls.

Wire shapes
    DecisionRequest   {"input": {"new": <pipeline>}}
                      {"input": {"new": <pipeline>, "current": <pipeline>}}   (delta)
    Native response   {"result": {"<decision key>": ["reason", ...]}}
    Proxy response    HTTP status is authoritative; body is the reason on non-200
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from pipegate.core.canonical import canonicalize


# ─────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────

_IDENTITY_FIELDS = ("application", "name", "stages")


@dataclass
class Pipeline:
    """
    A pipeline definition as submitted for save.

    Only application, name and stages are interpreted. Every other field
    rides along untouched in `extra` and is sent to the policy service.
    Values are kept exactly as submitted, including odd shapes; an identity
    key that was explicitly null in the source document is re-emitted as null.
    """
    application:   Any
    name:          Any
    stages:        Any = None
    extra:         Dict[str, Any] = field(default_factory=dict)
    explicit_keys: FrozenSet[str] = field(default_factory=frozenset, repr=False, compare=False)

    @property
    def is_initial_save(self) -> bool:
        """A pipeline with an empty stage list has never been saved with content."""
        return isinstance(self.stages, list) and not self.stages

    def matches_name(self, name: Any) -> bool:
        if not isinstance(self.name, str) or not isinstance(name, str):
            return False
        return self.name.casefold() == name.casefold()

    def to_dict(self) -> Dict[str, Any]:
        """Full structured document, identity fields re-emitted as given."""
        data = dict(self.extra)
        for key in _IDENTITY_FIELDS:
            value = getattr(self, key)
            if value is not None or key in self.explicit_keys:
                data[key] = value
        return data

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Pipeline":
        return Pipeline(
            application=data.get("application"),
            name=data.get("name"),
            stages=data.get("stages"),
            extra={k: v for k, v in data.items() if k not in _IDENTITY_FIELDS},
            explicit_keys=frozenset(k for k in _IDENTITY_FIELDS if k in data),
        )

    def __repr__(self) -> str:
        return f"Pipeline(application={self.application!r}, name={self.name!r})"


# ─────────────────────────────────────────────────────────────
# DecisionRequest
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class DecisionRequest:
    """The document POSTed to the policy service."""
    new:     Dict[str, Any]
    current: Optional[Dict[str, Any]] = None

    @property
    def is_delta(self) -> bool:
        return self.current is not None

    def to_dict(self) -> Dict[str, Any]:
        payload = {"new": self.new}
        if self.current is not None:
            payload["current"] = self.current
        return {"input": payload}

    def encode(self) -> bytes:
        """RFC 8785 canonical bytes. Raises SerializationError."""
        return canonicalize(self.to_dict())


# ─────────────────────────────────────────────────────────────
# Responses and outcomes
# ─────────────────────────────────────────────────────────────

class ResponseMode(Enum):
    """How a decision response is read. Fixed by configuration."""
    PROXY  = "proxy"
    NATIVE = "native"


@dataclass(frozen=True)
class RawDecisionResponse:
    status_code: int
    body:        str


class RejectionKind(Enum):
    SERIALIZATION      = "serialization"
    LOOKUP             = "lookup"
    TRANSPORT          = "transport"
    MALFORMED_RESPONSE = "malformed_response"
    POLICY_DENIED      = "policy_denied"


class GateState(Enum):
    DISABLED       = "disabled"
    BUILDING_INPUT = "building_input"
    DISPATCHING    = "dispatching"
    INTERPRETING   = "interpreting"
    ALLOWED        = "allowed"
    REJECTED       = "rejected"


@dataclass(frozen=True)
class GateOutcome:
    """
    Allow, or Reject(reason). There is no warning state.

    bool(outcome) is True iff the write may proceed.
    """
    allowed: bool
    reason:  Optional[str] = None
    kind:    Optional[RejectionKind] = None

    @classmethod
    def allow(cls) -> "GateOutcome":
        return cls(allowed=True)

    @classmethod
    def reject(cls, reason: str, kind: RejectionKind) -> "GateOutcome":
        return cls(allowed=False, reason=reason, kind=kind)

    @property
    def state(self) -> GateState:
        return GateState.ALLOWED if self.allowed else GateState.REJECTED

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason":  self.reason,
            "kind":    self.kind.value if self.kind else None,
        }

    def __repr__(self) -> str:
        if self.allowed:
            return "GateOutcome(ALLOWED)"
        return f"GateOutcome(REJECTED, kind={self.kind.value}, reason={self.reason!r})"
