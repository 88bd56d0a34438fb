"""
Validation gate for pipeline saves.

The gate is the single choke point between a pipeline save and the policy
service. Every evaluation walks the same states:

    DISABLED ─────────────────────────────────────────────► ALLOWED
    BUILDING_INPUT ──► DISPATCHING ──► INTERPRETING ──► ALLOWED | REJECTED
         │                  │
         └──────────────────┴──────────────────────────────► REJECTED

Whatever goes wrong along the way (missing application, no stored version
in delta mode, unreachable service, malformed answer, explicit denial)
comes out as exactly one rejection with a readable reason. Nothing is
retried.
"""

import logging
from typing import Any, Dict, Optional, Protocol, Union

from pipegate.config import GateConfig
from pipegate.core.exceptions import (
    DecisionTransportError,
    PipelineLookupError,
    PipelineRejectedError,
    SerializationError,
)
from pipegate.core.models import GateOutcome, GateState, Pipeline, RejectionKind
from pipegate.policy.client import DecisionClient
from pipegate.policy.interpreter import interpret
from pipegate.policy.request import build_request
from pipegate.store import PipelineLookup

logger = logging.getLogger(__name__)


class PipelineValidator(Protocol):
    """What the save pathway calls before persisting a pipeline."""

    def enforce(self, pipeline: Pipeline) -> None:
        ...


class ValidationGate:
    """
    Policy gate in front of pipeline writes.

    Args:
        config: immutable startup configuration, shared by reference
        client: decision client; built from config.opa_url when omitted
                and the gate is enabled
        lookup: pipeline store, consulted only for delta verification
    """

    def __init__(
        self,
        config: GateConfig,
        client: Optional[DecisionClient] = None,
        lookup: Optional[PipelineLookup] = None,
    ):
        self.config = config
        self.lookup = lookup
        self._owns_client = client is None and config.enabled
        if client is None and config.enabled:
            client = DecisionClient(config.opa_url)
        self.client = client

    def validate(self, pipeline: Union[Pipeline, Dict[str, Any]]) -> GateOutcome:
        """Evaluate `pipeline` against the policy. Never raises for policy outcomes."""
        if isinstance(pipeline, dict):
            pipeline = Pipeline.from_dict(pipeline)

        if not self.config.enabled:
            logger.debug("Gate %s: policy evaluation skipped", GateState.DISABLED.value)
            return GateOutcome.allow()

        outcome = self._evaluate(pipeline)

        if outcome.allowed:
            logger.info("Pipeline %s/%s allowed by policy", pipeline.application, pipeline.name)
        else:
            logger.info(
                "Pipeline %s/%s rejected (%s): %s",
                pipeline.application, pipeline.name, outcome.kind.value, outcome.reason,
            )
        return outcome

    def enforce(self, pipeline: Union[Pipeline, Dict[str, Any]]) -> None:
        """
        Block the save on rejection.

        Raises:
            PipelineRejectedError: carrying the rejection reason verbatim.
        """
        outcome = self.validate(pipeline)
        if not outcome.allowed:
            raise PipelineRejectedError(outcome.reason, kind=outcome.kind)

    def _evaluate(self, pipeline: Pipeline) -> GateOutcome:
        logger.debug("OPA Server: %s", self.config.opa_url)

        # BUILDING_INPUT
        try:
            request = build_request(
                pipeline,
                delta_enabled=self.config.delta_verification,
                lookup=self.lookup,
            )
            body = request.encode()
        except SerializationError as exc:
            return GateOutcome.reject(exc.message, RejectionKind.SERIALIZATION)
        except PipelineLookupError as exc:
            return GateOutcome.reject(exc.message, RejectionKind.LOOKUP)

        logger.debug("Verifying %s with OPA", body.decode("utf-8"))

        # DISPATCHING
        try:
            response = self.client.send(self.config.policy_location, body)
        except DecisionTransportError as exc:
            return GateOutcome.reject(exc.message, RejectionKind.TRANSPORT)

        # INTERPRETING
        return interpret(self.config.response_mode, self.config.result_key, response)

    def close(self) -> None:
        if self._owns_client and self.client is not None:
            self.client.close()

    def __enter__(self) -> "ValidationGate":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
