from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path

import click

from cde_cli.config import HostConfiguration
from cde_cli.host import run_probe
from cde_cli.runtime import CONTAINER_SOCKET_PATH, RUNTIME_COMMANDS


IMAGE_NAME = "dexilion-cde"
BUILD_DESCRIPTOR = "Dockerfile"
IMAGE_INSPECT_TIMEOUT_SECONDS = 5.0
ROOT_VOLUME = "dexilion-cde-root:/root"
YARN_CACHE_VOLUME = "dexilion-cde-yarn-cache:/usr/local/share/.cache/yarn"
PUBLISHED_PORTS = ("8081:8081", "3000:3000")
PACKAGER_HOSTNAME_ENV = "REACT_NATIVE_PACKAGER_HOSTNAME"
LOCAL_ENV_FILE = ".env.local"
CONTAINER_SSH_DIR = "/root/.ssh"

LOGGER = logging.getLogger("cde_cli.launcher")
LOGGER.addHandler(logging.NullHandler())


class BuildError(click.ClickException):
    pass


class LaunchError(click.ClickException):
    pass


@dataclass
class BuildAttempt:
    runtime: str
    returncode: int | None
    stdout: str = ""
    stderr: str = ""
    error: str = ""

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    def describe(self) -> str:
        if self.returncode is None:
            return f"{self.runtime}: {self.error or 'not available'}"
        return f"{self.runtime}: {self.returncode}"


def find_build_directory(start: Path | None = None) -> Path | None:
    """Walk up from ``start`` to the filesystem root and return the first directory holding a Dockerfile."""
    current = (start or Path(__file__).parent).resolve()
    for directory in (current, *current.parents):
        if (directory / BUILD_DESCRIPTOR).is_file():
            return directory
    return None


def image_exists(image: str = IMAGE_NAME) -> str | None:
    """Return the runtime whose local store holds ``image``, or ``None``."""
    for runtime in RUNTIME_COMMANDS:
        result = run_probe([runtime, "image", "inspect", image], timeout=IMAGE_INSPECT_TIMEOUT_SECONDS)
        if result is not None and result.returncode == 0:
            return runtime
    return None


def _build_with(runtime: str, build_dir: Path, image: str) -> BuildAttempt:
    cmd = [runtime, "build", "--no-cache", "-t", image, "-f", BUILD_DESCRIPTOR, "."]
    LOGGER.debug("Running %s in %s", " ".join(cmd), build_dir)
    try:
        result = subprocess.run(
            cmd,
            cwd=str(build_dir),
            check=False,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except OSError as exc:
        return BuildAttempt(runtime=runtime, returncode=None, error=str(exc))
    return BuildAttempt(runtime=runtime, returncode=result.returncode, stdout=result.stdout, stderr=result.stderr)


def _report_failed_builds(attempts: list[BuildAttempt]) -> None:
    for attempt in attempts:
        if attempt.stdout:
            click.echo(f"{attempt.runtime} build output:")
            click.echo(attempt.stdout)
        if attempt.stderr:
            click.echo(f"{attempt.runtime} build errors:", err=True)
            click.echo(attempt.stderr, err=True)
    click.echo("Exit codes - " + ", ".join(attempt.describe() for attempt in attempts), err=True)


def build_image(image: str = IMAGE_NAME, build_dir: Path | None = None) -> str:
    """Build ``image`` with the first runtime that succeeds and return that runtime's name."""
    context = build_dir or find_build_directory()
    if context is None:
        raise BuildError(f"{BUILD_DESCRIPTOR} not found in the package directory or any parent directory")

    attempts: list[BuildAttempt] = []
    for runtime in RUNTIME_COMMANDS:
        click.echo(f"Building image '{image}' with {runtime} from {context}")
        attempt = _build_with(runtime, context, image)
        attempts.append(attempt)
        if attempt.succeeded:
            click.echo(f"Image '{image}' built successfully with {runtime}")
            return runtime
        LOGGER.info("Image build failed: %s", attempt.describe())

    click.echo(f"Both {' and '.join(RUNTIME_COMMANDS)} builds failed\n", err=True)
    _report_failed_builds(attempts)
    raise BuildError("Build failed - " + ", ".join(attempt.describe() for attempt in attempts))


def container_run_args(config: HostConfiguration, cwd: Path, image: str = IMAGE_NAME) -> list[str]:
    args = [
        "run",
        "--rm",
        "-it",
        "-v",
        ROOT_VOLUME,
        "-v",
        YARN_CACHE_VOLUME,
        "--network=bridge",
    ]
    for port in PUBLISHED_PORTS:
        args.extend(["-p", port])
    args.extend(["-e", f"{PACKAGER_HOSTNAME_ENV}={config.external_ip}"])

    if (cwd / LOCAL_ENV_FILE).is_file():
        args.extend(["--env-file", LOCAL_ENV_FILE])
    if config.ssh_keys_dir:
        args.extend(["--mount", f"type=bind,src={config.ssh_keys_dir},dst={CONTAINER_SSH_DIR}"])
    args.extend(["--mount", f"type=bind,src={config.docker_socket},dst={CONTAINER_SOCKET_PATH}"])
    args.append(image)
    return args


def _runtime_order(preferred: str | None) -> list[str]:
    if preferred is None:
        return list(RUNTIME_COMMANDS)
    return [preferred, *(runtime for runtime in RUNTIME_COMMANDS if runtime != preferred)]


def run_container(args: list[str], cwd: Path | None = None, runtime: str | None = None) -> int:
    # Images live in per-runtime stores, so the runtime holding the image goes first.
    errors: list[str] = []
    for candidate in _runtime_order(runtime):
        try:
            result = subprocess.run([candidate, *args], cwd=str(cwd) if cwd else None, check=False)
        except OSError as exc:
            LOGGER.debug("Unable to start %s: %s", candidate, exc)
            errors.append(f"{candidate}: {exc}")
            continue
        return result.returncode
    raise LaunchError("Unable to start a container runtime (" + "; ".join(errors) + ")")


def launch(config: HostConfiguration, cwd: Path | None = None) -> int:
    """Ensure the image exists, then run the interactive container and return its exit code.

    The container runs with the runtime that holds the image, falling back to the others
    only if that runtime cannot be started.
    """
    working_dir = cwd or Path.cwd()
    click.echo("\nStarting container...\n")
    runtime = image_exists()
    if runtime is None:
        click.echo("Image not found, building...\n")
        runtime = build_image()
        click.echo("")
    return run_container(container_run_args(config, working_dir), cwd=working_dir, runtime=runtime)
