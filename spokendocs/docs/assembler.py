"""Markdown assembly for command and module READMEs."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, FileSystemLoader

from ..models import AutomatonDoc, CommandDoc, ModuleDoc
from .i18n import LocalizationProvider
from .lint import MarkdownLinter

DEFAULT_EXCERPT_LENGTH = 300

_FENCE_LANGUAGES: Dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".py": "python",
    ".java": "java",
    ".kt": "kotlin",
}


@dataclass(frozen=True)
class _AutomatonView:
    lang_name: str
    intro: str
    image: str
    phrases_intro: str
    phrases: Tuple[str, ...]


class DocumentAssembler:
    """Turns analysed commands and modules into README Markdown.

    All decisions about content are made upstream; this class only lays the
    data out through the ``command.md.j2`` and ``module.md.j2`` templates.
    """

    def __init__(
        self,
        localizations: LocalizationProvider | None = None,
        *,
        primary_language: str = "en-US",
        excerpt_length: int = DEFAULT_EXCERPT_LENGTH,
        templates_dir: Path | None = None,
        linter: MarkdownLinter | None = None,
    ) -> None:
        self.localizations = localizations or LocalizationProvider(fallback=primary_language)
        self.primary_language = primary_language
        self.excerpt_length = excerpt_length
        self.linter = linter or MarkdownLinter()
        self._env = self._create_env(templates_dir)

    def command_markdown(self, doc: CommandDoc, *, image_prefix: str = "") -> str:
        """Render a command README; `image_prefix` relocates relative links."""
        command = doc.command
        primary = doc.primary(self.primary_language)
        excerpt, truncated = self.excerpt(command.source)
        source_name = command.source_path.name
        template = self._env.get_template("command.md.j2")
        rendered = template.render(
            primary=primary,
            automata=[self._automaton_view(automaton, image_prefix) for automaton in doc.automata],
            source_name=source_name,
            source_link=f"{image_prefix}{source_name}",
            fence_lang=_FENCE_LANGUAGES.get(command.source_path.suffix.lower(), ""),
            excerpt=excerpt,
            truncated=truncated,
        )
        return self.linter.lint(rendered)

    def module_markdown(
        self,
        doc: ModuleDoc,
        command_sections: Optional[Sequence[str]] = None,
    ) -> str:
        """Render a module README from its commands' Markdown, in command order.

        When `command_sections` is omitted each command is rendered with image
        links relative to the module directory.
        """
        if command_sections is None:
            command_sections = [
                self.command_markdown(command, image_prefix=f"{command.command.name}/")
                for command in doc.commands
            ]
        template = self._env.get_template("module.md.j2")
        rendered = template.render(
            title=doc.title,
            desc=doc.desc,
            name=doc.module.name,
            image=doc.module.image.name,
            commands=[section.strip() for section in command_sections],
        )
        return self.linter.lint(rendered)

    def excerpt(self, source: str) -> Tuple[str, bool]:
        """Return the source prefix shown in docs and whether it was cut."""
        truncated = len(source) > self.excerpt_length
        prefix = source[: self.excerpt_length] if truncated else source
        return prefix.rstrip("\n"), truncated

    def _automaton_view(self, automaton: AutomatonDoc, image_prefix: str) -> _AutomatonView:
        localization = self.localizations.for_lang(automaton.lang)
        return _AutomatonView(
            lang_name=automaton.lang_name,
            intro=localization.automaton(automaton.title),
            image=f"{image_prefix}{automaton.ref.image_name}",
            phrases_intro=localization.phrases(automaton.title),
            phrases=automaton.phrases,
        )

    @staticmethod
    def _create_env(templates_dir: Path | None) -> Environment:
        directories: List[str] = []
        if templates_dir:
            directories.append(str(templates_dir))
        directories.append(str(Path(__file__).with_name("templates")))
        loader = FileSystemLoader(directories)
        return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


__all__ = ["DEFAULT_EXCERPT_LENGTH", "DocumentAssembler"]
