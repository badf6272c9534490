"""Interactive prompt helpers built on InquirerPy."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Any, Generic, Sequence, TypeVar

from InquirerPy import inquirer
from InquirerPy.base.control import Choice

from .exceptions import UserAbort, ValidationError

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Option(Generic[T]):
    value: T
    label: str
    hint: str | None = None

    @property
    def display(self) -> str:
        return f"{self.label} · {self.hint}" if self.hint else self.label


def _ensure_tty() -> None:
    if not sys.stdin.isatty():
        raise ValidationError(
            "Interactive mode requires a TTY. Provide the missing arguments to run non-interactively."
        )


class Prompter:
    """Selection, text and confirmation prompts.

    Cancelling any prompt (Ctrl-C) raises :class:`UserAbort`.
    """

    def select(self, message: str, options: Sequence[Option[T]]) -> T:
        if not options:
            raise UserAbort("No options available for selection.")
        _ensure_tty()
        choices = [Choice(value=index, name=option.display) for index, option in enumerate(options)]
        index = self._execute(inquirer.fuzzy(message=message, choices=choices, max_height="60%"))
        return options[int(index)].value

    def text(self, message: str, *, default: str = "", placeholder: str | None = None) -> str:
        _ensure_tty()
        kwargs: dict[str, Any] = {"message": message, "default": default}
        if placeholder:
            kwargs["long_instruction"] = f"e.g. {placeholder}"
        return str(self._execute(inquirer.text(**kwargs))).strip()

    def confirm(self, message: str, *, default: bool = False) -> bool:
        _ensure_tty()
        return bool(self._execute(inquirer.confirm(message=message, default=default)))

    @staticmethod
    def _execute(prompt: Any) -> Any:
        try:
            result = prompt.execute()
        except KeyboardInterrupt as exc:
            raise UserAbort("User cancelled the prompt.") from exc
        if result is None:
            raise UserAbort("User cancelled the prompt.")
        return result


__all__ = ["Option", "Prompter"]
