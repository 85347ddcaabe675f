from __future__ import annotations

import logging

from cde_cli.host import HostEnvironment, command_exists, run_probe


PRIMARY_RUNTIME = "docker"
SECONDARY_RUNTIME = "podman"
RUNTIME_COMMANDS = (PRIMARY_RUNTIME, SECONDARY_RUNTIME)
CONTAINER_SOCKET_PATH = "/var/run/docker.sock"
SOCKET_PROBE_IMAGE = "alpinelinux/docker-cli"
SOCKET_PROBE_TIMEOUT_SECONDS = 3.0

LOGGER = logging.getLogger("cde_cli.runtime")
LOGGER.addHandler(logging.NullHandler())


def select_runtime_command(host: HostEnvironment) -> str | None:
    for runtime in RUNTIME_COMMANDS:
        if command_exists(runtime, host):
            return runtime
    return None


def socket_candidates(host: HostEnvironment) -> list[str]:
    """Well-known runtime socket locations, most likely first."""
    candidates = [
        "/var/run/docker.sock",
        "/run/docker.sock",
        str(host.home / ".docker" / "desktop" / "docker.sock"),
        "/usr/local/var/run/docker.sock",
    ]
    if not host.is_windows and host.uid is not None:
        candidates.extend(
            [
                f"/run/user/{host.uid}/docker.sock",
                f"/run/user/{host.uid}/podman/podman.sock",
            ]
        )
    return candidates


def socket_probe_command(runtime: str, socket_path: str) -> list[str]:
    return [
        runtime,
        "run",
        "--rm",
        "-v",
        f"{socket_path}:{CONTAINER_SOCKET_PATH}",
        SOCKET_PROBE_IMAGE,
        "docker",
        "version",
        "--format",
        "json",
    ]


def check_socket_access(runtime: str, socket_path: str) -> bool:
    # A stale socket file from a stopped daemon exists on disk, so only a full
    # round-trip through the socket counts.
    result = run_probe(socket_probe_command(runtime, socket_path), timeout=SOCKET_PROBE_TIMEOUT_SECONDS)
    return result is not None and result.returncode == 0


def discover_socket_path(host: HostEnvironment) -> str | None:
    runtime = select_runtime_command(host)
    if runtime is None:
        LOGGER.debug("Neither %s nor %s found in PATH; skipping socket discovery", *RUNTIME_COMMANDS)
        return None

    for socket_path in socket_candidates(host):
        LOGGER.debug("Checking runtime socket %s via %s", socket_path, runtime)
        if check_socket_access(runtime, socket_path):
            LOGGER.info("Runtime socket %s answered through %s", socket_path, runtime)
            return socket_path
    LOGGER.debug("No runtime socket candidate answered")
    return None
