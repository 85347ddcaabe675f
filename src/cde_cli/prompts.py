from __future__ import annotations

import abc

import click


class Prompter(abc.ABC):
    @abc.abstractmethod
    def ask(self, question: str, default: str = "") -> str:
        """Ask for a line of input; empty input yields ``default``."""
        pass

    @abc.abstractmethod
    def confirm(self, question: str, default: bool = True) -> bool:
        """Ask a yes/no question; empty input yields ``default``."""
        pass


class ClickPrompter(Prompter):
    def ask(self, question: str, default: str = "") -> str:
        answer = click.prompt(question, default=default, show_default=bool(default))
        return str(answer or "").strip() or default

    def confirm(self, question: str, default: bool = True) -> bool:
        return click.confirm(question, default=default)
