from __future__ import annotations

import subprocess
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from helpers import completed, make_host

import cde_cli.host as host_mod


class PlatformClassifierTests(unittest.TestCase):
    def test_windows_family_identifiers_map_to_windows(self) -> None:
        for identifier in ("win32", "cygwin", "msys"):
            self.assertEqual(host_mod.classify_platform(identifier), host_mod.PLATFORM_WINDOWS)

    def test_other_identifiers_pass_through(self) -> None:
        for identifier in ("linux", "darwin", "freebsd14", "aix"):
            self.assertEqual(host_mod.classify_platform(identifier), identifier)

    def test_current_environment_is_classified_once(self) -> None:
        with patch.object(sys, "platform", "cygwin"):
            host = host_mod.HostEnvironment.current()
        self.assertEqual(host.platform, host_mod.PLATFORM_WINDOWS)
        self.assertTrue(host.is_windows)
        self.assertFalse(host.is_darwin)


class RunProbeTests(unittest.TestCase):
    def test_missing_executable_returns_none(self) -> None:
        with patch("cde_cli.host.subprocess.run", side_effect=FileNotFoundError("nope")):
            self.assertIsNone(host_mod.run_probe(["missing-tool"], timeout=1))

    def test_timeout_returns_none(self) -> None:
        with patch(
            "cde_cli.host.subprocess.run",
            side_effect=subprocess.TimeoutExpired(cmd=["sleep"], timeout=1),
        ):
            self.assertIsNone(host_mod.run_probe(["sleep", "10"], timeout=1))

    def test_passes_timeout_and_captures_output(self) -> None:
        with patch("cde_cli.host.subprocess.run", return_value=completed(0, "ok")) as run_call:
            result = host_mod.run_probe(["echo", "ok"], timeout=2.5)
        self.assertIsNotNone(result)
        kwargs = run_call.call_args.kwargs
        self.assertEqual(kwargs["timeout"], 2.5)
        self.assertTrue(kwargs["capture_output"])
        self.assertFalse(kwargs["check"])


class CommandExistsTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.home = Path(self.tmp.name)

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_uses_which_on_posix(self) -> None:
        with patch("cde_cli.host.run_probe", return_value=completed(0)) as probe:
            self.assertTrue(host_mod.command_exists("docker", make_host(self.home)))
        self.assertEqual(probe.call_args.args[0], ["which", "docker"])
        self.assertEqual(probe.call_args.kwargs["timeout"], host_mod.TOOL_LOOKUP_TIMEOUT_SECONDS)

    def test_uses_where_on_windows(self) -> None:
        with patch("cde_cli.host.run_probe", return_value=completed(0)) as probe:
            self.assertTrue(host_mod.command_exists("podman", make_host(self.home, platform="windows")))
        self.assertEqual(probe.call_args.args[0], ["where", "podman"])

    def test_non_zero_exit_means_absent(self) -> None:
        with patch("cde_cli.host.run_probe", return_value=completed(1)):
            self.assertFalse(host_mod.command_exists("docker", make_host(self.home)))

    def test_failed_lookup_means_absent(self) -> None:
        with patch("cde_cli.host.subprocess.run", side_effect=PermissionError("denied")):
            self.assertFalse(host_mod.command_exists("docker", make_host(self.home)))
