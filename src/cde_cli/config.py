from __future__ import annotations

import json
import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click

from cde_cli.host import HostEnvironment


CONFIG_FILE_NAME = ".dexilion.cde.conf"
CONFIG_FILE_ENV = "CDE_CONFIG_FILE"
KEY_DOCKER_SOCKET = "dockerSocket"
KEY_SSH_KEYS_DIR = "sshKeysDir"
KEY_EXTERNAL_IP = "externalIP"

LOGGER = logging.getLogger("cde_cli.config")
LOGGER.addHandler(logging.NullHandler())


class ConfigError(click.ClickException):
    pass


@dataclass
class HostConfiguration:
    docker_socket: str = ""
    ssh_keys_dir: str | None = None
    external_ip: str = ""

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> HostConfiguration:
        # Unknown keys are ignored and wrongly typed values count as missing,
        # so those fields are gathered again.
        return cls(
            docker_socket=_string_value(payload.get(KEY_DOCKER_SOCKET)),
            ssh_keys_dir=_string_value(payload.get(KEY_SSH_KEYS_DIR)) or None,
            external_ip=_string_value(payload.get(KEY_EXTERNAL_IP)),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            KEY_DOCKER_SOCKET: self.docker_socket,
            KEY_SSH_KEYS_DIR: self.ssh_keys_dir,
            KEY_EXTERNAL_IP: self.external_ip,
        }

    def is_complete(self) -> bool:
        return bool(self.docker_socket) and bool(self.external_ip)


def _string_value(value: object) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip()


def default_config_path(host: HostEnvironment) -> Path:
    override = str(host.env.get(CONFIG_FILE_ENV, "")).strip()
    if override:
        return Path(override).expanduser()
    return host.home / CONFIG_FILE_NAME


def load_config(path: Path) -> HostConfiguration | None:
    """Read the persisted configuration.

    Returns ``None`` when the file does not exist. A file that cannot be read,
    is not valid JSON, or holds anything other than a JSON object raises
    ``ConfigError``.
    """
    if not path.exists():
        return None
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        raise ConfigError(f"Unable to read configuration file {path}: {exc}") from exc
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in configuration file: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigError(f"Configuration file must contain a JSON object: {path}")
    LOGGER.debug("Loaded configuration keys %s from %s", sorted(payload), path)
    return HostConfiguration.from_payload(payload)


def save_config(path: Path, config: HostConfiguration) -> None:
    content = json.dumps(config.to_payload(), indent=2) + "\n"
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.parent / f".{path.name}.{uuid.uuid4().hex}.tmp"
    try:
        tmp_path.write_text(content, encoding="utf-8")
        os.replace(tmp_path, path)
    except OSError as exc:
        raise ConfigError(f"Unable to write configuration file {path}: {exc}") from exc
    finally:
        if tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass
    LOGGER.debug("Wrote configuration to %s", path)
