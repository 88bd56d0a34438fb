"""
PipeGate Policy Gate

Components, leaf-first:
- build_request:  pipeline (+ stored version) -> DecisionRequest
- DecisionClient: POSTs the request to OPA / the OPA proxy
- interpret:      raw response -> GateOutcome
- ValidationGate: orchestrates the above for each save
"""

from pipegate.policy.client import DecisionClient
from pipegate.policy.gate import PipelineValidator, ValidationGate
from pipegate.policy.interpreter import interpret
from pipegate.policy.request import build_request

__all__ = [
    "DecisionClient",
    "PipelineValidator",
    "ValidationGate",
    "build_request",
    "interpret",
]
