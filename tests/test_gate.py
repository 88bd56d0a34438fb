"""
tests/test_gate.py

Validation gate end to end, with the policy service faked by
httpx.MockTransport.

  SWITCH
    GATE-01  Disabled gate allows with zero network calls
    GATE-02  Disabled gate builds no client and never touches the store

  SCENARIOS
    GATE-03  Proxy deny: 403 "not permitted" → Rejected("not permitted")
    GATE-04  Native allow: {"result":{"deny":[]}} → Allowed
    GATE-05  Native deny: first reason surfaced
    GATE-06  Delta found: request carries new + current
    GATE-07  Delta not found: rejected, no network call
    GATE-08  Malformed: {} → rejection naming 'result'
    GATE-09  First-time save in delta mode sends single-key request

  FAILURES
    GATE-10  Missing application → rejection, no network call
    GATE-11  Transport failure → rejection carrying its description
    GATE-12  Empty response body → transport rejection
    GATE-16  Non-string mapping key → serialization rejection, no network call
    GATE-17  Non-string name in delta mode → serialization rejection
    GATE-18  Store raising during delta lookup → lookup rejection

  FIDELITY
    GATE-19  Odd-shaped stages and explicit nulls reach the policy service unchanged

  ENFORCE
    GATE-13  enforce() raises PipelineRejectedError with the reason verbatim
    GATE-14  enforce() returns None on allow
    GATE-15  validate() accepts a plain pipeline document
"""

import json

import httpx
import pytest

from pipegate.config import GateConfig
from pipegate.core.exceptions import PipelineRejectedError
from pipegate.core.models import Pipeline, RejectionKind
from pipegate.policy.client import DecisionClient
from pipegate.policy.gate import ValidationGate
from pipegate.store import InMemoryPipelineStore


OPA_URL = "http://opa.test"


class FakeOPA:
    """Canned policy service. Records every request it receives."""

    def __init__(self, status: int = 200, body: str = '{"result": {"deny": []}}'):
        self.status = status
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, text=self.body)

    @property
    def last_input(self) -> dict:
        return json.loads(self.requests[-1].content)["input"]

    def client(self) -> DecisionClient:
        return DecisionClient(OPA_URL, client=httpx.Client(transport=httpx.MockTransport(self)))


def make_pipeline(name: str = "deploy", stages=None) -> Pipeline:
    if stages is None:
        stages = [{"type": "deploy", "refId": "1"}]
    return Pipeline(application="myapp", name=name, stages=stages, extra={"id": "p-1"})


def make_gate(opa: FakeOPA, lookup=None, **overrides) -> ValidationGate:
    options = dict(opa_url=OPA_URL, enabled=True, proxy=False, result_key="deny")
    options.update(overrides)
    return ValidationGate(GateConfig(**options), client=opa.client(), lookup=lookup)


class TestSwitch:

    def test_disabled_allows_without_network(self):
        opa = FakeOPA(status=403, body="not permitted")
        gate = make_gate(opa, enabled=False)
        outcome = gate.validate(make_pipeline())
        assert outcome.allowed
        assert opa.requests == []

    def test_disabled_builds_nothing(self):
        class ExplodingStore:
            def get_pipelines_by_application(self, application, force_refresh=True):
                raise AssertionError("store must not be consulted")

        gate = ValidationGate(GateConfig(enabled=False, delta_verification=True),
                              lookup=ExplodingStore())
        assert gate.client is None
        assert gate.validate(Pipeline(application=None, name=None)).allowed


class TestScenarios:

    def test_proxy_deny(self):
        opa = FakeOPA(status=403, body="not permitted")
        outcome = make_gate(opa, proxy=True).validate(make_pipeline())
        assert not outcome.allowed
        assert outcome.reason == "not permitted"
        assert outcome.kind is RejectionKind.POLICY_DENIED

    def test_native_allow(self):
        opa = FakeOPA(body='{"result": {"deny": []}}')
        outcome = make_gate(opa).validate(make_pipeline())
        assert outcome.allowed
        assert len(opa.requests) == 1
        assert str(opa.requests[0].url) == "http://opa.test/v1/staticPolicy/eval"

    def test_native_deny(self):
        opa = FakeOPA(body='{"result": {"deny": ["missing owner tag"]}}')
        outcome = make_gate(opa).validate(make_pipeline())
        assert outcome.reason == "missing owner tag"

    def test_delta_found(self):
        store = InMemoryPipelineStore([make_pipeline(stages=[{"type": "wait"}])])
        opa = FakeOPA()
        outcome = make_gate(opa, lookup=store, delta_verification=True).validate(make_pipeline())

        assert outcome.allowed
        assert set(opa.last_input) == {"new", "current"}
        assert opa.last_input["current"]["stages"] == [{"type": "wait"}]
        assert opa.last_input["new"]["stages"] == [{"type": "deploy", "refId": "1"}]

    def test_delta_not_found(self):
        store = InMemoryPipelineStore([make_pipeline(name="other")])
        opa = FakeOPA()
        outcome = make_gate(opa, lookup=store, delta_verification=True).validate(make_pipeline())

        assert not outcome.allowed
        assert outcome.reason == "there is no pipeline with name deploy"
        assert outcome.kind is RejectionKind.LOOKUP
        assert opa.requests == []

    def test_malformed(self):
        opa = FakeOPA(body="{}")
        outcome = make_gate(opa).validate(make_pipeline())
        assert not outcome.allowed
        assert outcome.kind is RejectionKind.MALFORMED_RESPONSE
        assert "'result'" in outcome.reason

    def test_first_time_save_never_delta(self):
        opa = FakeOPA()
        gate = make_gate(opa, lookup=InMemoryPipelineStore(), delta_verification=True)
        outcome = gate.validate(make_pipeline(stages=[]))
        assert outcome.allowed
        assert set(opa.last_input) == {"new"}


class TestFailures:

    def test_missing_application(self):
        opa = FakeOPA()
        outcome = make_gate(opa).validate(Pipeline(application=None, name="deploy", stages=[]))
        assert outcome.reason == "pipeline has no application field"
        assert outcome.kind is RejectionKind.SERIALIZATION
        assert opa.requests == []

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = DecisionClient(OPA_URL, client=httpx.Client(transport=httpx.MockTransport(handler)))
        gate = ValidationGate(GateConfig(opa_url=OPA_URL, enabled=True), client=client)
        outcome = gate.validate(make_pipeline())
        assert not outcome.allowed
        assert outcome.kind is RejectionKind.TRANSPORT
        assert "connection refused" in outcome.reason

    def test_empty_body(self):
        opa = FakeOPA(status=200, body="")
        outcome = make_gate(opa).validate(make_pipeline())
        assert outcome.kind is RejectionKind.TRANSPORT

    def test_non_string_key(self):
        opa = FakeOPA()
        document = {"application": "myapp", "name": "d", "stages": [], "v": {1: "a"}}
        outcome = make_gate(opa).validate(document)
        assert not outcome.allowed
        assert outcome.kind is RejectionKind.SERIALIZATION
        assert opa.requests == []

    def test_non_string_name_in_delta_mode(self):
        opa = FakeOPA()
        gate = make_gate(opa, lookup=InMemoryPipelineStore(), delta_verification=True)
        outcome = gate.validate({"application": "myapp", "name": 2024, "stages": [{"t": 1}]})
        assert outcome.kind is RejectionKind.SERIALIZATION
        assert opa.requests == []

    def test_store_failure(self):
        class BrokenStore:
            def get_pipelines_by_application(self, application, force_refresh=True):
                raise RuntimeError("store down")

        opa = FakeOPA()
        gate = make_gate(opa, lookup=BrokenStore(), delta_verification=True)
        outcome = gate.validate(make_pipeline())
        assert not outcome.allowed
        assert outcome.kind is RejectionKind.LOOKUP
        assert "store down" in outcome.reason
        assert opa.requests == []

    def test_store_failure_enforced(self):
        class BrokenStore:
            def get_pipelines_by_application(self, application, force_refresh=True):
                raise OSError("connection reset")

        gate = make_gate(FakeOPA(), lookup=BrokenStore(), delta_verification=True)
        with pytest.raises(PipelineRejectedError) as exc_info:
            gate.enforce(make_pipeline())
        assert exc_info.value.kind is RejectionKind.LOOKUP


class TestDocumentFidelity:

    def test_odd_stages_sent_unchanged(self):
        opa = FakeOPA()
        document = {"application": "myapp", "name": "deploy", "stages": {"a": 1}}
        assert make_gate(opa).validate(document).allowed
        assert opa.last_input["new"] == document

    def test_null_stages_sent_unchanged(self):
        opa = FakeOPA()
        document = {"application": "myapp", "name": "deploy", "stages": None}
        make_gate(opa).validate(document)
        assert opa.last_input["new"] == document


class TestEnforce:

    def test_enforce_raises(self):
        opa = FakeOPA(status=403, body="not permitted")
        with pytest.raises(PipelineRejectedError) as exc_info:
            make_gate(opa, proxy=True).enforce(make_pipeline())
        assert exc_info.value.reason == "not permitted"
        assert str(exc_info.value) == "not permitted"
        assert exc_info.value.kind is RejectionKind.POLICY_DENIED
        assert exc_info.value.details == {"kind": "policy_denied"}

    def test_enforce_allows(self):
        assert make_gate(FakeOPA()).enforce(make_pipeline()) is None

    def test_accepts_document(self):
        opa = FakeOPA()
        document = {"application": "myapp", "name": "deploy", "stages": [], "id": "x"}
        assert make_gate(opa).validate(document).allowed
        assert opa.last_input["new"] == document
