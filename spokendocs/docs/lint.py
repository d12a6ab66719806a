"""Whitespace normalisation for generated README files."""

from __future__ import annotations

from typing import List

_RULES = {"---", "***", "___"}


class MarkdownLinter:
    """Normalises line endings, blank runs and spacing around headings and rules.

    Code fences are copied through untouched apart from trailing whitespace,
    so source excerpts keep their layout.
    """

    def lint(self, markdown: str) -> str:
        normalized = markdown.replace("\r\n", "\n").replace("\r", "\n")
        cleaned: List[str] = []
        in_code = False

        for line in normalized.split("\n"):
            stripped = line.rstrip()
            if stripped.startswith("```"):
                if not in_code and cleaned and cleaned[-1] != "":
                    cleaned.append("")
                in_code = not in_code
                cleaned.append(stripped)
                continue

            if in_code:
                cleaned.append(stripped)
                continue

            if not stripped:
                if cleaned and cleaned[-1] != "":
                    cleaned.append("")
                continue

            # A rule directly under text would turn that text into a heading.
            needs_gap = stripped.startswith("#") or stripped in _RULES
            if needs_gap and cleaned and cleaned[-1] != "":
                cleaned.append("")
            if cleaned and cleaned[-1] in _RULES:
                cleaned.append("")
            cleaned.append(stripped)

        while cleaned and cleaned[0] == "":
            cleaned.pop(0)
        while cleaned and cleaned[-1] == "":
            cleaned.pop()

        return "\n".join(cleaned) + "\n"


__all__ = ["MarkdownLinter"]
