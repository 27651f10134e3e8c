#!/usr/bin/env python3
"""wattmon CLI - Command-line interface for wattmon."""

import click

from wattmon.utils.env import get_env
from wattmon.utils.logger import Logger


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML configuration file (default: $WATTMON_CONFIG)",
)
@click.pass_context
def wattmon(ctx, config_path):
    """wattmon - hardware power monitoring with energy sessions."""
    # Configure logger at startup if not already configured
    if not Logger.is_configured():
        Logger.configure(
            level=get_env("WATTMON_LOG_LEVEL", default="INFO"), timestamps=True
        )
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@wattmon.command()
@click.option(
    "--stream",
    is_flag=True,
    default=False,
    help="Print every update as a JSON line on stdout",
)
@click.option(
    "--duration",
    "-d",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Stop after this many seconds (default: until Ctrl+C)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def run(ctx, stream, duration, verbose):
    r"""Monitor power in the foreground, recording into a session.

    \b
    Examples:
      wattmon run                      # Poll until Ctrl+C
      wattmon run --duration 60        # Poll for one minute
      wattmon run --stream             # JSON lines for each update
    """
    from wattmon.commands.run_cmd import run_monitor

    if verbose:
        Logger.set_level("DEBUG")

    run_monitor(
        stream=stream,
        duration_seconds=duration,
        config_path=ctx.obj["config_path"],
    )


@wattmon.command()
@click.argument(
    "subcommand",
    type=click.Choice(["list", "current", "show", "start", "end"]),
    required=False,
)
@click.argument("session_id", required=False)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def session(ctx, subcommand, session_id, output_json):
    r"""List, inspect, start and end monitoring sessions.

    \b
    Examples:
      wattmon session                  # List sessions
      wattmon session current          # Show the open session
      wattmon session show ID          # Show one session
      wattmon session start            # Open a new session
      wattmon session end ID           # Close a session and freeze totals
    """
    from wattmon.commands.session_cmd import run_session

    run_session(
        subcommand=subcommand,
        session_id=session_id,
        output_json=output_json,
        config_path=ctx.obj["config_path"],
    )


@wattmon.command()
@click.argument(
    "subcommand",
    type=click.Choice(["current", "components", "history", "total"]),
    required=False,
)
@click.option(
    "--hours",
    type=click.FloatRange(min=0, min_open=True),
    default=24.0,
    show_default=True,
    help="History window in hours",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def power(ctx, subcommand, hours, output_json):
    r"""Show current power, components, history and energy totals.

    \b
    Examples:
      wattmon power                    # Latest recorded sample
      wattmon power components         # Read hardware now, per component
      wattmon power history --hours 6  # Samples from the last 6 hours
      wattmon power total              # Accumulated kWh and cost
    """
    from wattmon.commands.power_cmd import run_power

    run_power(
        subcommand=subcommand,
        hours=hours,
        output_json=output_json,
        config_path=ctx.obj["config_path"],
    )


@wattmon.command()
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
@click.pass_context
def config(ctx, output_json):
    """Show the effective configuration."""
    from wattmon.commands.config_cmd import run_config

    run_config(output_json=output_json, config_path=ctx.obj["config_path"])


@wattmon.command()
def version():
    """Display wattmon version information."""
    from wattmon import __version__

    print(f"wattmon {__version__}")


if __name__ == "__main__":
    wattmon()
