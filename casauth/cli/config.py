"""Configuration management CLI commands."""

from __future__ import annotations

import os
from pathlib import Path

import click

from casauth.cli.output import json_option, output_result
from casauth.core.config import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    get_default_config_yaml,
    load_config,
)


def _config_file() -> Path:
    return Path(os.environ.get(f"{ENV_PREFIX}CONFIG", DEFAULT_CONFIG_FILE))


@click.group()
def config() -> None:
    """Manage casauth configuration."""
    pass


@config.command("init")
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite an existing config file.",
)
@json_option
def config_init(force: bool, output_json: bool) -> None:
    """Write a commented default config.yaml.

    Examples:

        # Write ~/.casauth/config.yaml
        casauth config init

        # Replace an existing file
        casauth config init --force
    """
    path = _config_file()
    if path.exists() and not force:
        if output_json:
            output_result({"path": str(path), "created": False}, as_json=True)
            return
        click.echo(f"Config file already exists: {path}")
        click.echo("Use --force to overwrite it")
        return

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(get_default_config_yaml())

    if output_json:
        output_result({"path": str(path), "created": True}, as_json=True)
        return
    click.echo(f"Config file written to: {path}")


@config.command("show")
@json_option
def config_show(output_json: bool) -> None:
    """Show the effective configuration (file plus environment)."""
    app_config = load_config()
    data = app_config.to_dict()

    if output_json:
        output_result(data, as_json=True)
        return

    source = app_config.config_path or "(defaults)"
    click.echo(f"Config file: {source}")
    for section, values in data.items():
        click.echo("")
        click.echo(f"[{section}]")
        for key, value in values.items():
            click.echo(f"  {key}: {value}")


@config.command("path")
def config_path() -> None:
    """Print the config file location."""
    click.echo(str(_config_file()))
