"""
pipegate/cli/__init__.py

PipeGate CLI — root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    pipegate = "pipegate.cli:cli"

Adding a new command:
    1. Create pipegate/cli/your_command.py with a @click.command()
    2. Import it here
    3. cli.add_command(your_command)
"""

import click

from pipegate.cli.check import check_command
from pipegate.cli.config import config_command


@click.group()
@click.version_option(package_name="pipegate")
def cli() -> None:
    """
    PipeGate — OPA policy gate for pipeline saves.

    \b
    Commands:
      check     Evaluate a pipeline document against the policy.
      config    Print the effective gate configuration.

    \b
    Quick start:
      pipegate check deploy.json --config gate.yaml
      pipegate check deploy.json --format json
      pipegate check deploy.json --quiet && echo "allowed"
    """
    pass


cli.add_command(check_command)
cli.add_command(config_command)
