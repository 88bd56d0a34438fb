"""
pipegate config — print the effective gate configuration.

Shows the values the gate would run with after the YAML file and the
PIPEGATE_OPA_* environment overrides are applied.
"""

import json
import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from pipegate.config import load_config
from pipegate.core.exceptions import ConfigError


@click.command(name="config")
@click.option(
    "--config", "config_path",
    type=click.Path(),
    default=None,
    metavar="PATH",
    help="Gate configuration YAML.",
)
@click.option(
    "--format", "fmt",
    type=click.Choice(["yaml", "json"], case_sensitive=False),
    default="yaml",
    show_default=True,
)
def config_command(config_path: Optional[str], fmt: str) -> None:
    """Print the effective gate configuration."""
    try:
        config = load_config(Path(config_path) if config_path else None)
    except ConfigError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(2)

    if fmt == "json":
        click.echo(json.dumps(config.to_dict(), indent=2))
    else:
        click.echo(yaml.safe_dump(config.to_dict(), sort_keys=False), nl=False)
