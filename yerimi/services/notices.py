from __future__ import annotations

from typing import Protocol

from flask import flash


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class FlashNotifier:
    def success(self, message: str) -> None:
        flash(message, "success")

    def error(self, message: str) -> None:
        flash(message, "error")


class CollectingNotifier:
    def __init__(self):
        self.notices: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.notices.append(("success", message))

    def error(self, message: str) -> None:
        self.notices.append(("error", message))

    @property
    def errors(self) -> list[str]:
        return [message for category, message in self.notices if category == "error"]

    @property
    def successes(self) -> list[str]:
        return [message for category, message in self.notices if category == "success"]
