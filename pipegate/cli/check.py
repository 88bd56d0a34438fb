"""
pipegate/cli/check.py

pipegate check — run a pipeline document through the policy gate
================================================================

Evaluates a pipeline exactly as the save pathway would, without saving it.
Useful in CI before pushing pipeline changes, and for debugging policies.

Usage:
    pipegate check <pipeline>                          Human output (default)
    pipegate check <pipeline> --config gate.yaml       Load gate configuration
    pipegate check <pipeline> --store pipelines.json   Stored pipelines for delta verification
    pipegate check <pipeline> --format json            Machine-readable JSON
    pipegate check <pipeline> --quiet                  Exit code only
    pipegate check <pipeline> --verbose                Log request/response bodies

Exit codes:
    0  Pipeline allowed
    1  Pipeline rejected
    2  Error  (file missing, malformed document, invalid configuration)
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from pipegate.config import GateConfig, load_config
from pipegate.core.exceptions import ConfigError
from pipegate.core.models import GateOutcome, Pipeline
from pipegate.policy.client import DecisionClient
from pipegate.policy.gate import ValidationGate
from pipegate.store import InMemoryPipelineStore, load_document


# ── ANSI color ────────────────────────────────────────────────────────────────

class _Color:
    """
    Minimal ANSI color wrapper.
    Auto-disables when not a TTY or --no-color is passed.
    """
    _on: bool = True

    @classmethod
    def configure(cls, enabled: bool) -> None:
        cls._on = enabled and sys.stdout.isatty()

    @classmethod
    def green(cls, s: str) -> str:
        return f"\033[32m{s}\033[0m" if cls._on else s

    @classmethod
    def red(cls, s: str) -> str:
        return f"\033[31m{s}\033[0m" if cls._on else s

    @classmethod
    def bold(cls, s: str) -> str:
        return f"\033[1m{s}\033[0m" if cls._on else s

    @classmethod
    def dim(cls, s: str) -> str:
        return f"\033[2m{s}\033[0m" if cls._on else s


def _row_info(label: str, value: str) -> str:
    label_col = _Color.dim(f"{label:<16}")
    return f"  {label_col}     {_Color.dim(value)}"


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _make_client(config: GateConfig) -> DecisionClient:
    return DecisionClient(config.opa_url)


# ── CLI command ───────────────────────────────────────────────────────────────

@click.command(name="check")
@click.argument("pipeline_file", type=click.Path(exists=False))
@click.option(
    "--config", "config_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Gate configuration YAML. PIPEGATE_OPA_* environment variables override it.",
)
@click.option(
    "--store", "store_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="JSON/YAML list of stored pipelines, used for delta verification.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["human", "json"], case_sensitive=False),
    default="human",
    show_default=True,
    help="Output format: human (default) or json (CI/automation).",
)
@click.option(
    "--quiet",
    is_flag=True,
    default=False,
    help="Suppress all output. Use exit code only (0=allowed, 1=rejected, 2=error).",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    default=False,
    help="Log request and response bodies (may contain sensitive pipeline content).",
)
@click.option(
    "--no-color",
    is_flag=True,
    default=False,
    help="Disable ANSI color output.",
)
def check_command(
    pipeline_file: str,
    config_path:   Optional[str],
    store_path:    Optional[str],
    fmt:           str,
    quiet:         bool,
    verbose:       bool,
    no_color:      bool,
) -> None:
    """
    Evaluate a pipeline document against the configured policy.

    PIPELINE_FILE is a JSON or YAML pipeline definition.

    \b
    Examples:
      pipegate check deploy.json --config gate.yaml
      pipegate check deploy.yaml --store pipelines.json --format json
      pipegate check deploy.json --quiet && echo "allowed"
    """
    _Color.configure(not no_color)
    configure_logging(verbose)

    # ── Load ──────────────────────────────────────────────────
    try:
        config = load_config(Path(config_path) if config_path else None)
        document = load_document(Path(pipeline_file))
        if not isinstance(document, dict):
            raise ConfigError(f"{pipeline_file} must contain a pipeline object")
        pipeline = Pipeline.from_dict(document)
        store = InMemoryPipelineStore.from_file(Path(store_path)) if store_path else None
    except ConfigError as e:
        _emit_error(str(e), fmt, quiet)
        sys.exit(2)

    # ── Evaluate ──────────────────────────────────────────────
    client = _make_client(config) if config.enabled else None
    try:
        with ValidationGate(config, client=client, lookup=store) as gate:
            outcome = gate.validate(pipeline)
    finally:
        if client is not None:
            client.close()

    # ── Output ────────────────────────────────────────────────
    if not quiet:
        if fmt == "json":
            _output_json(outcome, pipeline, config)
        else:
            _output_human(outcome, pipeline, config)

    sys.exit(0 if outcome.allowed else 1)


# ── Output ────────────────────────────────────────────────────────────────────

def _output_human(outcome: GateOutcome, pipeline: Pipeline, config: GateConfig) -> None:
    bar = "─" * 68

    click.echo()
    click.echo(_row_info("Application", str(pipeline.application)))
    click.echo(_row_info("Pipeline",    str(pipeline.name)))
    if config.enabled:
        click.echo(_row_info("Policy", f"{config.opa_url} {config.policy_location}"))
        click.echo(_row_info("Mode", config.response_mode.value
                             + ("  +delta" if config.delta_verification else "")))
    else:
        click.echo(_row_info("Policy", "disabled"))
    click.echo()

    click.echo(f"  {bar}")
    if outcome.allowed:
        click.echo(_Color.green(_Color.bold("  ✅  ALLOWED")))
    else:
        click.echo(_Color.red(_Color.bold(f"  ❌  REJECTED  ·  {outcome.kind.value}")))
        click.echo(f"      {outcome.reason}")
    click.echo(f"  {bar}")
    click.echo()


def _output_json(outcome: GateOutcome, pipeline: Pipeline, config: GateConfig) -> None:
    out = {
        "pipegate_check": {
            "application": pipeline.application,
            "pipeline":    pipeline.name,
            "enabled":     config.enabled,
            "mode":        config.response_mode.value,
            "delta":       config.delta_verification,
            **outcome.to_dict(),
        }
    }
    click.echo(json.dumps(out, indent=2))


def _emit_error(msg: str, fmt: str, quiet: bool) -> None:
    """Emit error in the correct format. Never raises."""
    if quiet:
        return
    if fmt == "json":
        click.echo(json.dumps({
            "pipegate_check": {
                "error":   msg,
                "allowed": False,
            }
        }))
    else:
        click.echo(
            _Color.red(f"\n  ❌  ERROR: {msg}\n"),
            err=True,
        )
