from __future__ import annotations

import logging
import os
import subprocess
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Sequence


PLATFORM_WINDOWS = "windows"
PLATFORM_DARWIN = "darwin"
PLATFORM_LINUX = "linux"
WINDOWS_PLATFORM_IDS = frozenset({"win32", "cygwin", "msys"})
TOOL_LOOKUP_TIMEOUT_SECONDS = 3.0

LOGGER = logging.getLogger("cde_cli.host")
LOGGER.addHandler(logging.NullHandler())


def classify_platform(identifier: str) -> str:
    """Map a ``sys.platform`` style identifier to the platform category used by discovery."""
    if identifier in WINDOWS_PLATFORM_IDS:
        return PLATFORM_WINDOWS
    return identifier


def _current_uid() -> int | None:
    getuid = getattr(os, "getuid", None)
    if getuid is None:
        return None
    return int(getuid())


@dataclass(frozen=True)
class HostEnvironment:
    platform: str
    home: Path
    env: Mapping[str, str] = field(default_factory=dict)
    uid: int | None = None

    @classmethod
    def current(cls) -> HostEnvironment:
        return cls(
            platform=classify_platform(sys.platform),
            home=Path.home(),
            env=dict(os.environ),
            uid=_current_uid(),
        )

    @property
    def is_windows(self) -> bool:
        return self.platform == PLATFORM_WINDOWS

    @property
    def is_darwin(self) -> bool:
        return self.platform == PLATFORM_DARWIN


def run_probe(cmd: Sequence[str], *, timeout: float) -> subprocess.CompletedProcess[str] | None:
    """Run a short-lived probe command.

    Returns the completed process, or ``None`` when the executable could not be
    spawned or did not finish within ``timeout`` seconds. Never raises for either.
    """
    args = [str(part) for part in cmd]
    try:
        return subprocess.run(
            args,
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        LOGGER.debug("Probe timed out after %ss: %s", timeout, " ".join(args))
    except OSError as exc:
        LOGGER.debug("Probe could not be started: %s (%s)", " ".join(args), exc)
    return None


def command_exists(command: str, host: HostEnvironment) -> bool:
    lookup = "where" if host.is_windows else "which"
    result = run_probe([lookup, command], timeout=TOOL_LOOKUP_TIMEOUT_SECONDS)
    found = result is not None and result.returncode == 0
    LOGGER.debug("Tool lookup %s %s -> %s", lookup, command, "found" if found else "missing")
    return found
