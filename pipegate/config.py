"""
Gate configuration.

Read once at startup, frozen afterwards. The same GateConfig instance is
shared by every concurrent validation; nothing reassigns its fields.

YAML layout (mirrors the service's property names):

    policy:
      opa:
        url: http://oes-server-svc.oes:8085
        policyLocation: /v1/staticPolicy/eval
        resultKey: deny
        enabled: true
        proxy: false
        deltaVerification: true

Environment overrides: PIPEGATE_OPA_URL, PIPEGATE_OPA_POLICY_LOCATION,
PIPEGATE_OPA_RESULT_KEY, PIPEGATE_OPA_ENABLED, PIPEGATE_OPA_PROXY,
PIPEGATE_OPA_DELTA_VERIFICATION.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from pipegate.core.exceptions import ConfigError
from pipegate.core.models import ResponseMode


DEFAULT_OPA_URL         = "http://oes-server-svc.oes:8085"
DEFAULT_POLICY_LOCATION = "/v1/staticPolicy/eval"
DEFAULT_RESULT_KEY      = "deny"

# yaml key -> (GateConfig field, env var)
_OPTIONS = {
    "url":               ("opa_url",            "PIPEGATE_OPA_URL"),
    "policyLocation":    ("policy_location",    "PIPEGATE_OPA_POLICY_LOCATION"),
    "resultKey":         ("result_key",         "PIPEGATE_OPA_RESULT_KEY"),
    "enabled":           ("enabled",            "PIPEGATE_OPA_ENABLED"),
    "proxy":             ("proxy",              "PIPEGATE_OPA_PROXY"),
    "deltaVerification": ("delta_verification", "PIPEGATE_OPA_DELTA_VERIFICATION"),
}

_BOOL_FIELDS = {"enabled", "proxy", "delta_verification"}

_TRUE  = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


@dataclass(frozen=True)
class GateConfig:
    """
    opa_url:            OPA or OPA-proxy base url
    policy_location:    path of the policy under the base url
                        (v0/location/to/policy/path for OPA, /v1/staticPolicy/eval for the proxy)
    result_key:         key read inside "result" in native mode; unused by the proxy
    enabled:            policy evaluation is skipped entirely when False
    proxy:              True if a proxy sits in front of OPA instead of the OPA server
    delta_verification: send the stored pipeline alongside the new one
    """
    opa_url:            str  = DEFAULT_OPA_URL
    policy_location:    str  = DEFAULT_POLICY_LOCATION
    result_key:         str  = DEFAULT_RESULT_KEY
    enabled:            bool = False
    proxy:              bool = True
    delta_verification: bool = False

    @property
    def response_mode(self) -> ResponseMode:
        return ResponseMode.PROXY if self.proxy else ResponseMode.NATIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy": {
                "opa": {
                    key: getattr(self, attr)
                    for key, (attr, _) in _OPTIONS.items()
                }
            }
        }

    @staticmethod
    def from_dict(data: Optional[Mapping[str, Any]]) -> "GateConfig":
        """
        Build from the nested `policy.opa` mapping or from a flat mapping of
        the same keys. Unknown keys are ignored.
        """
        if data is None:
            return GateConfig()
        if not isinstance(data, Mapping):
            raise ConfigError("configuration must be a mapping")

        section = data
        if "policy" in data:
            policy = data.get("policy") or {}
            if not isinstance(policy, Mapping):
                raise ConfigError("'policy' must be a mapping")
            section = policy.get("opa") or {}
            if not isinstance(section, Mapping):
                raise ConfigError("'policy.opa' must be a mapping")

        values = {}
        for key, (attr, _) in _OPTIONS.items():
            if key in section and section[key] is not None:
                values[attr] = _coerce(attr, section[key], source=key)
        return GateConfig(**values)

    @staticmethod
    def from_yaml(path: Path) -> "GateConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as exc:
            raise ConfigError(f"Config file not found: {path}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        return GateConfig.from_dict(data)

    @staticmethod
    def from_env(
        environ: Optional[Mapping[str, str]] = None,
        base: Optional["GateConfig"] = None,
    ) -> "GateConfig":
        """Overlay PIPEGATE_OPA_* environment variables onto `base` (or defaults)."""
        environ = os.environ if environ is None else environ
        config = base or GateConfig()

        overrides = {}
        for key, (attr, env_var) in _OPTIONS.items():
            raw = environ.get(env_var)
            if raw is not None and raw != "":
                overrides[attr] = _coerce(attr, raw, source=env_var)
        return replace(config, **overrides) if overrides else config


def load_config(path: Optional[Path] = None) -> GateConfig:
    """YAML file (if given) with environment overrides applied on top."""
    base = GateConfig.from_yaml(path) if path else GateConfig()
    return GateConfig.from_env(base=base)


def _coerce(attr: str, value: Any, source: str) -> Any:
    if attr in _BOOL_FIELDS:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE:
            return True
        if text in _FALSE:
            return False
        raise ConfigError(
            f"Invalid boolean for '{source}': {value!r}",
            details={"expected": "true/false"},
        )

    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{source}' must be a non-empty string, got {value!r}")
    return value.strip()
