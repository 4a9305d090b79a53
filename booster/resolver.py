"""Variable resolution: environment first, then stored values, then prompts."""

from __future__ import annotations

import os
from typing import Callable, Mapping, Optional, Protocol, Sequence

from booster.variable import Definition, FileStore


class PromptCollector(Protocol):
    """Asks the user for values of the given variables."""

    def collect(self, definitions: Sequence[Definition]) -> Mapping[str, str]:
        """Return the values entered, keyed by variable name."""
        ...


def _environment_lookup(name: str) -> str:
    return os.environ.get(name, "")


class Resolver:
    """Resolves variables from the environment, the store or a prompt."""

    def __init__(
        self,
        store: FileStore,
        collector: Optional[PromptCollector] = None,
        env_lookup: Optional[Callable[[str], Optional[str]]] = None,
    ) -> None:
        self.store = store
        self.collector = collector
        self.env_lookup = env_lookup or _environment_lookup

    def resolve(self, definitions: Optional[Sequence[Definition]]) -> dict[str, str]:
        """Return a mapping of variable name to resolved value.

        Newly prompted values are saved to the store; environment values are not.
        """
        if not definitions:
            return {}

        stored = self.store.load()
        result: dict[str, str] = {}
        needs_prompt: list[Definition] = []

        for definition in definitions:
            env_value = self.env_lookup(definition.name)
            if env_value:
                result[definition.name] = env_value
            elif definition.name in stored:
                result[definition.name] = stored[definition.name]
            else:
                needs_prompt.append(definition)

        if needs_prompt and self.collector is not None:
            prompted = self.collector.collect(needs_prompt)
            for definition in needs_prompt:
                value = prompted.get(definition.name, "") or definition.default
                result[definition.name] = value
                stored[definition.name] = value
            self.store.save(stored)

        return result