#!/usr/bin/env python3

from __future__ import annotations

import glob
import os
import subprocess
import sys
from pathlib import Path


DOCKER_SOCKET_PATH = "/var/run/docker.sock"
BREW_BIN_DIR = "/home/linuxbrew/.linuxbrew/bin"
FORWARDED_PORTS = (5432, 54321, 54322, 54323, 54324)


def _run(command: list[str], check: bool = True) -> subprocess.CompletedProcess[str]:
    return subprocess.run(command, check=check, text=True, capture_output=True)


def _run_quietly(command: list[str]) -> None:
    try:
        _run(command, check=False)
    except OSError:
        pass


def _load_ssh_keys(ssh_dir: Path) -> None:
    if not ssh_dir.is_dir():
        print("No SSH directory is mounted from the host, not loading SSH keys...")
        return
    key_files = sorted(glob.glob(str(ssh_dir / "*")))
    for key_file in key_files:
        try:
            os.chmod(key_file, 0o600)
        except OSError:
            continue
    try:
        os.chmod(ssh_dir, 0o700)
    except OSError:
        pass
    if key_files:
        _run_quietly(["ssh-add", *key_files])


def _update_homebrew() -> None:
    env_path = os.environ.get("PATH", "")
    os.environ["PATH"] = f"{BREW_BIN_DIR}:{env_path}" if env_path else BREW_BIN_DIR
    os.environ["HOMEBREW_NO_ENV_HINTS"] = "true"
    _run_quietly(["brew", "update"])
    _run_quietly(["brew", "upgrade"])


def _start_port_forwarders(target_host: str) -> None:
    for port in FORWARDED_PORTS:
        subprocess.Popen(
            ["socat", f"tcp-l:{port},fork,reuseaddr", f"tcp:{target_host}:{port}"],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


def main() -> None:
    home = Path(os.environ.get("HOME", "/root"))
    _load_ssh_keys(home / ".ssh")

    if not os.path.exists(DOCKER_SOCKET_PATH):
        print(
            f"You need to bind mount your Docker socket to {DOCKER_SOCKET_PATH}. For example: "
            f"docker run -it --mount type=bind,src={DOCKER_SOCKET_PATH},dst={DOCKER_SOCKET_PATH}",
            file=sys.stderr,
        )
        sys.exit(1)

    _update_homebrew()

    target_host = os.environ.get("REACT_NATIVE_PACKAGER_HOSTNAME", "").strip()
    if target_host:
        _start_port_forwarders(target_host)
    else:
        print("REACT_NATIVE_PACKAGER_HOSTNAME is not set, skipping Supabase port forwarding", file=sys.stderr)

    os.chdir(home)
    command = list(sys.argv[1:]) or ["/bin/bash"]
    os.execvp(command[0], command)


if __name__ == "__main__":
    main()
