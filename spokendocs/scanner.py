"""Discovery of modules, commands and automaton files under a modules root."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from .errors import DiscoveryError
from .logging import get_logger
from .models import AutomatonRef, Command, Module

AUTOMATON_PREFIX = "phrase_"
AUTOMATON_SUFFIX = ".dot"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".venv",
    "node_modules",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".idea",
}


@dataclass(frozen=True)
class ModuleScan:
    """A discovered module plus the commands that could not be loaded."""

    module: Module
    errors: Tuple[DiscoveryError, ...] = field(default_factory=tuple)


class ModuleScanner:
    """Walks `<root>/<module>/<command>/` and builds discovery records.

    Directories whose name starts with ``_`` or ``.`` hold shared assets
    (``__meta``) and are never treated as modules or commands.
    """

    def __init__(
        self,
        *,
        source_file: str = "impl.ts",
        image_format: str = "png",
        exclude: Iterable[str] = (),
    ) -> None:
        self.source_file = source_file
        self.image_format = image_format.lstrip(".")
        self._excluded: Set[str] = set(_EXCLUDED_DIRS) | set(exclude)
        self.logger = get_logger("scanner")

    def list_modules(self, root: Path, only: Optional[Sequence[str]] = None) -> List[str]:
        """Return module directory names in sorted order."""
        if not root.is_dir():
            raise FileNotFoundError(f"Modules root not found: {root}")
        names = self._subdirectories(root)
        if only:
            wanted = list(dict.fromkeys(only))
            missing = [name for name in wanted if name not in names]
            if missing:
                raise FileNotFoundError(
                    f"Unknown module(s) under {root}: {', '.join(missing)}"
                )
            names = [name for name in names if name in wanted]
        return names

    def scan_module(self, root: Path, name: str) -> ModuleScan:
        module_root = root / name
        command_names = self._subdirectories(module_root)
        commands: List[Command] = []
        errors: List[DiscoveryError] = []
        for command_name in command_names:
            try:
                commands.append(self.scan_command(module_root / command_name))
            except DiscoveryError as exc:
                exc.with_context(module=name, command=command_name)
                errors.append(exc)
        module = Module(
            name=name,
            root=module_root,
            commands=tuple(commands),
            command_dirs=tuple(command_names),
            automaton=module_root / f"{name}{AUTOMATON_SUFFIX}",
            image=module_root / f"{name}.{self.image_format}",
        )
        self.logger.debug(
            "Module %s: %d command(s), %d discovery error(s)", name, len(commands), len(errors)
        )
        return ModuleScan(module=module, errors=tuple(errors))

    def scan_command(self, command_root: Path) -> Command:
        name = command_root.name
        automata = tuple(self._automata(command_root))
        if not automata:
            raise DiscoveryError(
                f"No {AUTOMATON_PREFIX}<lang>{AUTOMATON_SUFFIX} automata in {command_root}",
                command=name,
            )
        source_path = command_root / self.source_file
        try:
            source = source_path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise DiscoveryError(
                f"Command source {self.source_file} not found in {command_root}", command=name
            ) from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise DiscoveryError(
                f"Command source {source_path} is unreadable: {exc}", command=name
            ) from exc
        return Command(
            name=name,
            root=command_root,
            automata=automata,
            source_path=source_path,
            source=source,
        )

    def _automata(self, command_root: Path) -> Iterable[AutomatonRef]:
        for path in sorted(command_root.iterdir()):
            if not path.is_file():
                continue
            if not (path.name.startswith(AUTOMATON_PREFIX) and path.name.endswith(AUTOMATON_SUFFIX)):
                continue
            lang = path.name[len(AUTOMATON_PREFIX) : -len(AUTOMATON_SUFFIX)]
            if not lang:
                continue
            yield AutomatonRef(
                lang=lang,
                path=path,
                image=path.with_suffix(f".{self.image_format}"),
            )

    def _subdirectories(self, directory: Path) -> List[str]:
        names: List[str] = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_dir():
                continue
            if entry.name in self._excluded or entry.name.startswith(("_", ".")):
                continue
            names.append(entry.name)
        return names


__all__ = ["AUTOMATON_PREFIX", "AUTOMATON_SUFFIX", "ModuleScan", "ModuleScanner"]
