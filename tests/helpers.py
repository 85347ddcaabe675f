from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Iterable, Mapping

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from cde_cli.host import HostEnvironment
from cde_cli.prompts import Prompter


def make_host(
    home: Path,
    *,
    platform: str = "linux",
    env: Mapping[str, str] | None = None,
    uid: int | None = 1000,
) -> HostEnvironment:
    return HostEnvironment(platform=platform, home=home, env=dict(env or {}), uid=uid)


def completed(returncode: int = 0, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class ScriptedPrompter(Prompter):
    """Answers prompts from a fixed script; an exhausted script accepts the default."""

    def __init__(self, answers: Iterable[str] = (), confirmations: Iterable[bool] = ()) -> None:
        self.answers = list(answers)
        self.confirmations = list(confirmations)
        self.questions: list[tuple[str, str]] = []
        self.confirm_questions: list[str] = []

    def ask(self, question: str, default: str = "") -> str:
        self.questions.append((question, default))
        answer = self.answers.pop(0) if self.answers else ""
        return answer.strip() or default

    def confirm(self, question: str, default: bool = True) -> bool:
        self.confirm_questions.append(question)
        if self.confirmations:
            return self.confirmations.pop(0)
        return default
