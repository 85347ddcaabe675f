from __future__ import annotations

import logging
import os
import sys

import click

from cde_cli.config import default_config_path
from cde_cli.host import HostEnvironment
from cde_cli.launcher import launch
from cde_cli.prompts import ClickPrompter
from cde_cli.reconcile import reconcile_config


LOG_LEVEL_ENV = "CDE_LOG_LEVEL"
LOG_LEVEL_CHOICES = ("debug", "info", "warning", "error")
DEFAULT_LOG_LEVEL = "warning"
SIGNAL_EXIT_BASE = 128

LOGGER = logging.getLogger("cde_cli")
LOGGER.addHandler(logging.NullHandler())


def _normalize_log_level(value: object) -> str:
    normalized = str(value or "").strip().lower()
    if normalized in LOG_LEVEL_CHOICES:
        return normalized
    return DEFAULT_LOG_LEVEL


def _configure_logging(level: str) -> None:
    normalized = _normalize_log_level(level)
    handler = logging.StreamHandler(sys.__stderr__)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    LOGGER.handlers.clear()
    LOGGER.addHandler(handler)
    LOGGER.setLevel(getattr(logging, normalized.upper(), logging.WARNING))
    LOGGER.propagate = False


@click.command(help="Launch the Dexilion Expo & Supabase development container")
def main() -> None:
    _configure_logging(os.environ.get(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL))
    click.echo("Welcome to the Dexilion Expo & Supabase Development Environment\n")

    host = HostEnvironment.current()
    LOGGER.debug("Host platform=%s home=%s uid=%s", host.platform, host.home, host.uid)
    config = reconcile_config(host, ClickPrompter(), default_config_path(host))

    click.echo(f"  Docker Socket: {config.docker_socket}")
    click.echo(f"  SSH Directory: {config.ssh_keys_dir or '(none)'}")
    click.echo(f"  External IP: {config.external_ip}")

    exit_code = launch(config)
    if exit_code < 0:
        # Killed by a signal; report it the way a shell does.
        exit_code = SIGNAL_EXIT_BASE - exit_code
    if exit_code != 0:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
