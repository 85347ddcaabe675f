from __future__ import annotations

import logging
from pathlib import Path

from cde_cli.host import HostEnvironment


SSH_DIR_NAME = ".ssh"
WINDOWS_FALLBACK_DRIVE = "C:"

LOGGER = logging.getLogger("cde_cli.credentials")
LOGGER.addHandler(logging.NullHandler())


def ssh_dir_candidates(host: HostEnvironment) -> list[Path]:
    candidates = [host.home / SSH_DIR_NAME]
    if not host.is_windows:
        return candidates

    env = host.env
    username = env.get("USERNAME") or "user"
    profile = env.get("USERPROFILE") or str(host.home)
    home_drive = env.get("HOMEDRIVE") or WINDOWS_FALLBACK_DRIVE
    home_path = env.get("HOMEPATH") or f"\\Users\\{env.get('USERNAME', '')}"
    candidates.extend(
        [
            Path(profile) / SSH_DIR_NAME,
            Path(home_drive + home_path) / SSH_DIR_NAME,
            Path(WINDOWS_FALLBACK_DRIVE + "\\") / "Users" / username / SSH_DIR_NAME,
        ]
    )
    return candidates


def discover_ssh_dir(host: HostEnvironment) -> Path | None:
    for candidate in ssh_dir_candidates(host):
        if candidate.is_dir():
            LOGGER.debug("Using SSH directory %s", candidate)
            return candidate
    return None
