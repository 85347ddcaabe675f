from __future__ import annotations

import logging
from pathlib import Path

import click

from cde_cli.config import HostConfiguration, load_config, save_config
from cde_cli.credentials import discover_ssh_dir
from cde_cli.host import HostEnvironment
from cde_cli.network import discover_external_ip, is_ip_available, is_valid_ipv4
from cde_cli.prompts import Prompter
from cde_cli.runtime import discover_socket_path


LOGGER = logging.getLogger("cde_cli.reconcile")
LOGGER.addHandler(logging.NullHandler())


class MissingInputError(click.ClickException):
    pass


def _require_address(value: str) -> str:
    address = str(value or "").strip()
    if not address:
        raise MissingInputError("IP address is required")
    if not is_valid_ipv4(address):
        raise MissingInputError(f"Invalid IP address: {address} (expected four dot-separated octets 0-255)")
    return address


def _gather_ssh_dir(host: HostEnvironment, prompter: Prompter) -> str | None:
    discovered = discover_ssh_dir(host)
    if discovered is not None:
        return str(discovered)

    click.echo("No SSH keys directory found, provide one if needed or leave empty to skip\n", err=True)
    answer = prompter.ask("SSH Keys directory (leave empty to skip)", "")
    if not answer:
        return None
    candidate = Path(answer).expanduser()
    if not candidate.is_dir():
        click.echo(f"SSH keys directory {candidate} does not exist, skipping", err=True)
        return None
    return str(candidate)


def gather_missing(config: HostConfiguration, host: HostEnvironment, prompter: Prompter) -> None:
    """Fill in missing fields, offering discovered values as prompt defaults."""
    if not config.docker_socket:
        config.docker_socket = prompter.ask("Docker Socket path", discover_socket_path(host) or "")
        if not config.docker_socket:
            raise MissingInputError("Docker socket is required")

    if not config.external_ip:
        config.external_ip = _require_address(
            prompter.ask("IP address for React Native packager", discover_external_ip(host) or "")
        )

    if not config.ssh_keys_dir:
        config.ssh_keys_dir = _gather_ssh_dir(host, prompter)


def revalidate_address(
    config: HostConfiguration,
    host: HostEnvironment,
    prompter: Prompter,
    config_path: Path,
) -> None:
    if is_ip_available(config.external_ip, host):
        return

    click.echo(f"The IP address {config.external_ip} doesn't seem to be available.")
    replacement = _require_address(
        prompter.ask(
            "Please provide an available IP address",
            discover_external_ip(host) or config.external_ip,
        )
    )
    if replacement == config.external_ip:
        return

    LOGGER.info("External address changed from %s to %s", config.external_ip, replacement)
    config.external_ip = replacement
    if prompter.confirm(f"Save {replacement} to {config_path}?", default=True):
        save_config(config_path, config)
        click.echo(f"Configuration saved to {config_path}")


def reconcile_config(host: HostEnvironment, prompter: Prompter, config_path: Path) -> HostConfiguration:
    config = load_config(config_path) or HostConfiguration()

    if config.is_complete():
        click.echo(f"Found existing configuration file at {config_path}")
    else:
        click.echo("No complete configuration found, gathering required information...\n")
        gather_missing(config, host, prompter)
        save_config(config_path, config)
        click.echo(f"\nConfiguration saved to {config_path}")

    revalidate_address(config, host, prompter, config_path)
    return config
