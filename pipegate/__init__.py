"""
pipegate/__init__.py

PipeGate: OPA policy gate for pipeline saves.

Every create/update of a pipeline definition is submitted to an Open Policy
Agent server (or an OPA proxy) before it is written. A denial blocks the
save and surfaces the policy's reason.
"""

__version__ = "0.1.0"

from pipegate.config import GateConfig, load_config
from pipegate.core.exceptions import (
    ConfigError,
    DecisionTransportError,
    PipeGateError,
    PipelineLookupError,
    PipelineRejectedError,
    SerializationError,
)
from pipegate.core.models import (
    DecisionRequest,
    GateOutcome,
    GateState,
    Pipeline,
    RawDecisionResponse,
    RejectionKind,
    ResponseMode,
)
from pipegate.policy import DecisionClient, PipelineValidator, ValidationGate
from pipegate.store import InMemoryPipelineStore, PipelineLookup

__all__ = [
    # Gate
    "ValidationGate",
    "PipelineValidator",
    "DecisionClient",
    "GateConfig",
    "load_config",
    # Model
    "Pipeline",
    "DecisionRequest",
    "RawDecisionResponse",
    "GateOutcome",
    "GateState",
    "RejectionKind",
    "ResponseMode",
    # Store
    "PipelineLookup",
    "InMemoryPipelineStore",
    # Errors
    "PipeGateError",
    "ConfigError",
    "SerializationError",
    "PipelineLookupError",
    "DecisionTransportError",
    "PipelineRejectedError",
]
