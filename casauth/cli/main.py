"""CLI entry point for casauth."""

import click

from casauth import __version__
from casauth.cli import cas as cas_commands
from casauth.cli import config as config_commands
from casauth.cli import serve as serve_commands


@click.group()
@click.version_option(version=__version__, prog_name="casauth")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """casauth - CAS single sign-on client tools."""
    ctx.ensure_object(dict)


cli.add_command(cas_commands.login_url)
cli.add_command(cas_commands.validate_url)
cli.add_command(cas_commands.validate)
cli.add_command(cas_commands.decode)
cli.add_command(config_commands.config)
cli.add_command(serve_commands.serve)
