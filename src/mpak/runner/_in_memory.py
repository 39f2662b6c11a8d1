"""In-memory adapters for testing (no disk or terminal I/O)."""

from __future__ import annotations


class InMemoryConfigStore:
    def __init__(self, packages: dict[str, dict[str, str]] | None = None) -> None:
        self._packages = {k: dict(v) for k, v in (packages or {}).items()}

    def get_package_config(self, package: str) -> dict[str, str] | None:
        values = self._packages.get(package)
        return dict(values) if values is not None else None

    def set_package_config_value(self, package: str, key: str, value: str) -> None:
        self._packages.setdefault(package, {})[key] = value


class ScriptedPrompter:
    """Answers prompts from a fixed list and records everything shown."""

    def __init__(self, answers: list[str] | None = None) -> None:
        self._answers = list(answers or [])
        self.prompts: list[str] = []
        self.hidden: list[bool] = []
        self.messages: list[str] = []

    def say(self, message: str) -> None:
        self.messages.append(message)

    def ask(self, prompt: str, *, hide_input: bool = False) -> str:
        self.prompts.append(prompt)
        self.hidden.append(hide_input)
        if not self._answers:
            raise AssertionError(f"Unexpected prompt: {prompt!r}")
        return self._answers.pop(0)
