from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from cde_cli.host import HostEnvironment


def _tool_available(name: str) -> bool:
    return shutil.which(name) is not None


@pytest.fixture(scope="session")
def host_environment() -> HostEnvironment:
    return HostEnvironment.current()


@pytest.fixture(scope="session")
def posix_host(host_environment: HostEnvironment) -> HostEnvironment:
    if host_environment.is_windows:
        pytest.skip("POSIX-only probe")
    return host_environment


@pytest.fixture(scope="session")
def ping_available() -> bool:
    return _tool_available("ping")


@pytest.fixture(scope="session")
def lookup_tool_available(host_environment: HostEnvironment) -> bool:
    return _tool_available("where" if host_environment.is_windows else "which")
