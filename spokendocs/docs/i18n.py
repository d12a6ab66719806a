"""Localised sentences used in command documentation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional

from ..logging import get_logger

Formatter = Callable[[str], str]


@dataclass(frozen=True)
class Localization:
    """Sentences introducing the automaton image and the phrase list."""

    automaton: Formatter
    phrases: Formatter

    @classmethod
    def from_strings(cls, automaton: str, phrases: str) -> "Localization":
        """Build from format strings using a ``{command}`` field."""
        return cls(
            automaton=lambda command: automaton.format(command=command),
            phrases=lambda command: phrases.format(command=command),
        )


DEFAULT_LOCALIZATIONS: Dict[str, Localization] = {
    "en-US": Localization.from_strings(
        "The following automata is responsible for recognizing the command `{command}` in english:",
        "The following are some examples of phrases, in english, used to trigger the command `{command}`:",
    ),
    "pt-BR": Localization.from_strings(
        "O automata seguinte é reponsável por reconhecer o comando `{command}` em português:",
        "Os seguintes exemplos de frases, em português, podem ser usadas para ativar o comando `{command}`:",
    ),
}


class LocalizationProvider:
    """Maps locale codes to localised sentence builders.

    Unknown locales fall back to `fallback` so a new language never breaks a
    build; a warning is logged once per locale.
    """

    def __init__(
        self,
        localizations: Optional[Mapping[str, Localization]] = None,
        *,
        fallback: str = "en-US",
    ) -> None:
        self._localizations: Dict[str, Localization] = dict(
            DEFAULT_LOCALIZATIONS if localizations is None else localizations
        )
        self.fallback = fallback
        self._warned: set[str] = set()
        self.logger = get_logger("docs.i18n")

    def with_strings(self, strings: Mapping[str, Mapping[str, str]]) -> "LocalizationProvider":
        """Return a provider extended with ``{lang: {automaton, phrases}}`` strings."""
        merged = dict(self._localizations)
        for lang, entry in strings.items():
            merged[lang] = Localization.from_strings(entry["automaton"], entry["phrases"])
        return LocalizationProvider(merged, fallback=self.fallback)

    def __contains__(self, lang: object) -> bool:
        return lang in self._localizations

    def for_lang(self, lang: str) -> Localization:
        localization = self._localizations.get(lang)
        if localization is not None:
            return localization
        if lang not in self._warned:
            self._warned.add(lang)
            self.logger.warning("No localisation for %s; using %s sentences", lang, self.fallback)
        fallback = self._localizations.get(self.fallback)
        if fallback is None:
            raise KeyError(f"No localisation for {lang} and no fallback {self.fallback}")
        return fallback


__all__ = ["DEFAULT_LOCALIZATIONS", "Localization", "LocalizationProvider"]
