"""Records passed between documentation build stages.

Discovery produces `Module`/`Command`/`AutomatonRef`; analysis turns them into
`AutomatonDoc`/`CommandDoc`/`ModuleDoc`. Every record is frozen: a stage never
adds fields to the output of an earlier one.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class AutomatonRef:
    """A per-language automaton file of a command."""

    lang: str
    path: Path
    image: Path

    @property
    def image_name(self) -> str:
        return self.image.name


@dataclass(frozen=True)
class Command:
    """A recognizable action with one automaton per supported language."""

    name: str
    root: Path
    automata: Tuple[AutomatonRef, ...]
    source_path: Path
    source: str

    @property
    def readme(self) -> Path:
        return self.root / "README.md"


@dataclass(frozen=True)
class Module:
    """A group of commands sharing a dispatch automaton."""

    name: str
    root: Path
    commands: Tuple[Command, ...]
    command_dirs: Tuple[str, ...]
    automaton: Path
    image: Path

    @property
    def readme(self) -> Path:
        return self.root / "README.md"


@dataclass(frozen=True)
class AutomatonDoc:
    """Analysed automaton: metadata read from the graph plus example phrases."""

    ref: AutomatonRef
    lang: str
    title: str
    desc: str
    lang_name: str
    phrases: Tuple[str, ...]


@dataclass(frozen=True)
class CommandDoc:
    """A command with every language analysed."""

    command: Command
    automata: Tuple[AutomatonDoc, ...]

    def primary(self, lang: str) -> AutomatonDoc:
        """Return the automaton used for the command heading.

        Falls back to the first language when `lang` is not available.
        """
        for automaton in self.automata:
            if automaton.lang == lang:
                return automaton
        return self.automata[0]


@dataclass(frozen=True)
class ModuleDoc:
    """A module's composed automaton metadata and its documented commands."""

    module: Module
    title: str
    desc: str
    commands: Tuple[CommandDoc, ...]


@dataclass(frozen=True)
class UnitResult:
    """Outcome of one unit of work in a build."""

    stage: str
    status: str
    module: str
    command: Optional[str] = None
    lang: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class BuildReport:
    """Aggregated results of a documentation build."""

    root: Path
    results: List[UnitResult] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)
    dry_run: bool = False

    def record(self, result: UnitResult) -> None:
        self.results.append(result)

    @property
    def failures(self) -> List[UnitResult]:
        return [result for result in self.results if result.status == "failed"]

    @property
    def warnings(self) -> List[UnitResult]:
        return [result for result in self.results if result.status == "warning"]

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": str(self.root),
            "ok": self.ok,
            "dry_run": self.dry_run,
            "written": [str(path) for path in self.written],
            "results": [asdict(result) for result in self.results],
        }
