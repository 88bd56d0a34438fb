"""
Decision response interpretation.

Two wire formats, selected by configuration and never sniffed from the
payload:

    PROXY   status 200 allows; any other status rejects with the raw body
    NATIVE  {"result": {"<decision key>": [reasons...]}}; empty list allows,
            otherwise the first reason rejects
"""

from pipegate.core.document import as_text, get_field, parse_document
from pipegate.core.models import (
    GateOutcome,
    RawDecisionResponse,
    RejectionKind,
    ResponseMode,
)


def interpret(
    mode: ResponseMode,
    decision_key: str,
    response: RawDecisionResponse,
) -> GateOutcome:
    if mode is ResponseMode.PROXY:
        return _interpret_proxy(response)
    return _interpret_native(decision_key, response)


def _interpret_proxy(response: RawDecisionResponse) -> GateOutcome:
    if response.status_code == 200:
        return GateOutcome.allow()
    return GateOutcome.reject(response.body, RejectionKind.POLICY_DENIED)


def _interpret_native(decision_key: str, response: RawDecisionResponse) -> GateOutcome:
    document = parse_document(response.body)
    if document is None:
        return _malformed("the OPA response is not a JSON object")

    result = get_field(document, "result", dict)
    if result.absent:
        return _malformed("there is no 'result' field in the OPA response")
    if result.wrong_shape:
        return _malformed("the 'result' field in the OPA response is not an object")

    reasons = get_field(result.value, decision_key, list)
    if reasons.absent:
        return _malformed(f"there is no '{decision_key}' field in the OPA response")
    if reasons.wrong_shape:
        return _malformed(f"the '{decision_key}' field in the OPA response is not a list")

    if not reasons.value:
        return GateOutcome.allow()

    # Only the first reason is surfaced
    return GateOutcome.reject(as_text(reasons.value[0]), RejectionKind.POLICY_DENIED)


def _malformed(reason: str) -> GateOutcome:
    return GateOutcome.reject(reason, RejectionKind.MALFORMED_RESPONSE)
