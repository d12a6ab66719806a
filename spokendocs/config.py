"""Configuration loading for spokendocs (.spokendocs.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .phrases.enumerator import DEFAULT_LIMIT, DEFAULT_MAX_DEPTH, DEFAULT_MAX_STEPS, EnumerationLimits
from .render.renderer import DEFAULT_TIMEOUT

CONFIG_FILENAME = ".spokendocs.yml"
DEFAULT_TEMPLATES = "__meta/default-templates.json"


@dataclass
class EnumerationConfig:
    """Bounds for phrase enumeration."""

    limit: int = DEFAULT_LIMIT
    max_depth: int = DEFAULT_MAX_DEPTH
    max_steps: int = DEFAULT_MAX_STEPS

    def to_limits(self) -> EnumerationLimits:
        return EnumerationLimits(limit=self.limit, max_depth=self.max_depth, max_steps=self.max_steps)


@dataclass
class RenderConfig:
    """Graphviz invocation settings."""

    enabled: bool = True
    engine: str = "dot"
    format: str = "png"
    timeout: Optional[float] = DEFAULT_TIMEOUT


@dataclass
class MarkerConfig:
    """Sentinel lines delimiting the generated region of module automata."""

    begin: str = "// START GENERATED"
    end: str = "// END GENERATED"


@dataclass
class DocsConfig:
    """README assembly settings."""

    primary_language: str = "en-US"
    source_file: str = "impl.ts"
    excerpt_length: int = 300
    templates_dir: Optional[Path] = None


@dataclass
class SpokenDocsConfig:
    """Represents the settings defined in .spokendocs.yml."""

    root: Path
    templates: List[Path] = field(default_factory=list)
    templates_explicit: bool = False
    enumeration: EnumerationConfig = field(default_factory=EnumerationConfig)
    render: RenderConfig = field(default_factory=RenderConfig)
    markers: MarkerConfig = field(default_factory=MarkerConfig)
    docs: DocsConfig = field(default_factory=DocsConfig)
    locales: Dict[str, Dict[str, str]] = field(default_factory=dict)
    exclude: List[str] = field(default_factory=list)
    concurrency: int = 4


def load_config(config_path: Path) -> SpokenDocsConfig:
    """Load configuration from disk, falling back to defaults when absent."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return SpokenDocsConfig(root=root, templates=[root / DEFAULT_TEMPLATES])

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    template_names = _as_str_list(data.get("templates"))
    templates = [root / name for name in template_names] or [root / DEFAULT_TEMPLATES]

    enumeration = EnumerationConfig()
    enumeration_data = _as_dict(data.get("enumeration"))
    if enumeration_data:
        enumeration.limit = _as_int(enumeration_data.get("limit"), "enumeration.limit", DEFAULT_LIMIT)
        enumeration.max_depth = _as_int(
            enumeration_data.get("max_depth"), "enumeration.max_depth", DEFAULT_MAX_DEPTH
        )
        enumeration.max_steps = _as_int(
            enumeration_data.get("max_steps"), "enumeration.max_steps", DEFAULT_MAX_STEPS
        )

    render = RenderConfig()
    render_data = _as_dict(data.get("render"))
    if render_data:
        enabled = _as_bool(render_data.get("enabled"))
        render.enabled = True if enabled is None else enabled
        render.engine = _as_str(render_data.get("engine")) or render.engine
        render.format = (_as_str(render_data.get("format")) or render.format).lstrip(".")
        if "timeout" in render_data:
            render.timeout = _as_float(render_data.get("timeout"), "render.timeout")

    markers = MarkerConfig()
    marker_data = _as_dict(data.get("markers"))
    if marker_data:
        markers.begin = _as_str(marker_data.get("begin")) or markers.begin
        markers.end = _as_str(marker_data.get("end")) or markers.end

    docs = DocsConfig()
    docs_data = _as_dict(data.get("docs"))
    if docs_data:
        docs.primary_language = _as_str(docs_data.get("primary_language")) or docs.primary_language
        docs.source_file = _as_str(docs_data.get("source_file")) or docs.source_file
        docs.excerpt_length = _as_int(
            docs_data.get("excerpt_length"), "docs.excerpt_length", docs.excerpt_length
        )
        templates_dir = _as_str(docs_data.get("templates_dir"))
        docs.templates_dir = root / templates_dir if templates_dir else None

    locales: Dict[str, Dict[str, str]] = {}
    for lang, strings in _as_dict(data.get("locales")).items():
        strings_map = _as_dict(strings)
        automaton = _as_str(strings_map.get("automaton"))
        phrases = _as_str(strings_map.get("phrases"))
        if not automaton or not phrases:
            raise ConfigError(f"locales.{lang} requires both 'automaton' and 'phrases' strings")
        locales[str(lang)] = {
            "automaton": _as_command_format(automaton, f"locales.{lang}.automaton"),
            "phrases": _as_command_format(phrases, f"locales.{lang}.phrases"),
        }

    concurrency = _as_int(data.get("concurrency"), "concurrency", 4)
    if concurrency < 1:
        raise ConfigError("concurrency must be at least 1")

    return SpokenDocsConfig(
        root=root,
        templates=templates,
        templates_explicit=bool(template_names),
        enumeration=enumeration,
        render=render,
        markers=markers,
        docs=docs,
        locales=locales,
        exclude=_as_str_list(data.get("exclude")),
        concurrency=concurrency,
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_command_format(value: str, key: str) -> str:
    try:
        value.format(command="command")
    except (AttributeError, IndexError, KeyError, ValueError) as exc:
        raise ConfigError(f"{key} may only use the {{command}} placeholder: {exc}") from exc
    return value


def _as_float(value: Any, key: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            pass
    raise ConfigError(f"{key} must be a number")


def _as_int(value: Any, key: str, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            pass
    raise ConfigError(f"{key} must be an integer")


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "DocsConfig",
    "EnumerationConfig",
    "MarkerConfig",
    "RenderConfig",
    "SpokenDocsConfig",
    "load_config",
]
