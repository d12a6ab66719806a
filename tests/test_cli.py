"""CLI behaviour tests."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest

from spokendocs.cli import _build_parser, main
from tests._fixtures.modules_builder import ModulesBuilder, command_dot, module_dot


@pytest.fixture(autouse=True)
def _reset_logging() -> Iterator[None]:
    yield
    logger = logging.getLogger("spokendocs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


def test_cli_accepts_verbose_before_and_after_command() -> None:
    parser = _build_parser()
    assert parser.parse_args(["--verbose", "build"]).verbose is True
    assert parser.parse_args(["build", "--verbose"]).verbose is True
    assert parser.parse_args(["build"]).verbose is False


def test_cli_parses_build_options() -> None:
    args = _build_parser().parse_args(
        ["build", "modules", "-m", "files", "--module", "apps", "--no-render", "--dry-run", "--strict"]
    )
    assert args.command == "build"
    assert args.root == "modules"
    assert args.modules == ["files", "apps"]
    assert args.no_render is True
    assert args.dry_run is True
    assert args.strict is True


def test_cli_root_defaults_to_current_directory() -> None:
    args = _build_parser().parse_args(["build"])
    assert args.root == "."
    assert args.modules is None


def test_cli_compose_requires_module() -> None:
    with pytest.raises(SystemExit):
        _build_parser().parse_args(["compose"])


def test_build_command_prints_summary(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()

    main(["build", str(modules_builder.root), "--no-render"])

    out = capsys.readouterr().out
    assert "Built modules: 4 file(s) written, 0 failure(s)" in out
    assert modules_builder.path("files", "README.md").exists()


def test_build_command_lists_failures_and_honours_strict(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()
    modules_builder.command("files", "broken", {"en-US": command_dot(accepting=())})

    main(["build", str(modules_builder.root), "--no-render"])
    out = capsys.readouterr().out
    assert "FAILED   load       files/broken@en-US: " in out
    assert "2 failure(s)" in out

    with pytest.raises(SystemExit) as excinfo:
        main(["build", str(modules_builder.root), "--no-render", "--strict"])
    assert excinfo.value.code == 1


def test_build_command_dry_run_writes_nothing(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()

    main(["build", str(modules_builder.root), "--dry-run"])

    assert "0 file(s) written" in capsys.readouterr().out
    assert not modules_builder.path("files", "README.md").exists()


def test_build_command_rejects_unknown_module(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()
    with pytest.raises(SystemExit) as excinfo:
        main(["build", str(modules_builder.root), "-m", "ghost"])
    assert excinfo.value.code == 1
    assert "ghost" in capsys.readouterr().err


def test_phrases_command_prints_numbered_phrases(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()
    automaton = modules_builder.path("files", "create", "phrase_en-US.dot")

    main(["phrases", str(automaton), "--root", str(modules_builder.root)])

    assert capsys.readouterr().out == "1. create file\n2. create folder\n"


def test_phrases_command_accepts_template_files(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    automaton = tmp_path / "phrase_en-US.dot"
    automaton.write_text(command_dot(edges=(("0", "1", "open {app}"),)), encoding="utf-8")
    templates = tmp_path / "apps.json"
    templates.write_text(json.dumps({"app": ["mail", "music"]}), encoding="utf-8")

    main(["phrases", str(automaton), "-t", str(templates)])

    assert capsys.readouterr().out == "1. open mail\n2. open music\n"


def test_phrases_command_reports_unknown_placeholder(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    automaton = tmp_path / "phrase_en-US.dot"
    automaton.write_text(command_dot(edges=(("0", "1", "open {app}"),)), encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["phrases", str(automaton)])

    assert excinfo.value.code == 1
    assert "Unknown placeholder '{app}'" in capsys.readouterr().err


def test_compose_command_mounts_commands(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()

    main(["compose", str(modules_builder.root), "-m", "files"])
    assert capsys.readouterr().out == "Mounted 2 command(s) into module files\n"

    main(["compose", str(modules_builder.root), "-m", "files"])
    assert capsys.readouterr().out == "Module files already up to date\n"


def test_compose_command_dry_run_prints_automaton(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()
    original = modules_builder.path("files", "files.dot").read_text(encoding="utf-8")

    main(["compose", str(modules_builder.root), "-m", "files", "--dry-run"])

    assert '0 -> 2 [label="(delete)"];' in capsys.readouterr().out
    assert modules_builder.path("files", "files.dot").read_text(encoding="utf-8") == original


@pytest.mark.filterwarnings("ignore::spokendocs.errors.CompositionWarning")
def test_compose_command_fails_without_markers(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()
    modules_builder.module("files", module_dot(markers=False))

    with pytest.raises(SystemExit) as excinfo:
        main(["compose", str(modules_builder.root), "-m", "files"])

    assert excinfo.value.code == 1
    assert "Could not mount module documentation" in capsys.readouterr().err


def test_phrases_command_honours_limit(
    modules_builder: ModulesBuilder, capsys: pytest.CaptureFixture[str]
) -> None:
    modules_builder.sample()
    automaton = modules_builder.path("files", "create", "phrase_en-US.dot")

    main(["phrases", str(automaton), "--root", str(modules_builder.root), "--limit", "1"])

    assert capsys.readouterr().out == "1. create file\n"
