"""CLI entrypoints for spokendocs commands."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .errors import ConfigError, GraphLoadError, TemplateError
from .logging import configure_logging, unit_label
from .models import BuildReport
from .orchestrator import BuildOrchestrator
from .phrases.templates import TemplateResolver


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_root_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "root",
        nargs="?",
        default=".",
        help="Path to the modules root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spokendocs",
        description="Generate voice command documentation from phrase automata.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Build READMEs, images and composed module automata.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_root_argument(build_parser)
    build_parser.add_argument(
        "-m",
        "--module",
        action="append",
        dest="modules",
        default=None,
        help="Only build this module (repeatable).",
    )
    build_parser.add_argument(
        "--no-render",
        action="store_true",
        help="Skip Graphviz image rendering.",
    )
    build_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute documentation without writing any file.",
    )
    build_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any unit of work failed.",
    )

    phrases_parser = subparsers.add_parser(
        "phrases",
        help="Print the example phrases of a single automaton file.",
    )
    _add_verbose_option(phrases_parser, suppress_default=True)
    phrases_parser.add_argument("file", type=Path, help="Automaton (.dot) file.")
    phrases_parser.add_argument(
        "-t",
        "--templates",
        action="append",
        type=Path,
        default=None,
        help="Template dictionary file (repeatable, later files win).",
    )
    phrases_parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Modules root used to locate .spokendocs.yml and default templates.",
    )
    phrases_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Maximum number of phrases to print (defaults to the configured limit).",
    )

    compose_parser = subparsers.add_parser(
        "compose",
        help="Re-wire a module automaton with its current commands.",
    )
    _add_verbose_option(compose_parser, suppress_default=True)
    _add_root_argument(compose_parser)
    compose_parser.add_argument("-m", "--module", required=True, help="Module to compose.")
    compose_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the composed automaton instead of writing it.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for spokendocs commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    if args.command == "build":
        orchestrator = BuildOrchestrator()
        try:
            report = orchestrator.run_build(
                args.root,
                modules=args.modules,
                render=False if args.no_render else None,
                dry_run=bool(args.dry_run),
            )
        except (FileNotFoundError, ConfigError) as exc:
            parser.exit(1, f"{exc}\n")
        _print_report(report)
        if args.strict and not report.ok:
            parser.exit(1)
    elif args.command == "phrases":
        templates = TemplateResolver.from_files(args.templates) if args.templates else None
        orchestrator = BuildOrchestrator(templates=templates)
        try:
            phrases = orchestrator.enumerate_file(args.file, root=args.root, limit=args.limit)
        except (GraphLoadError, TemplateError, ConfigError, ValueError) as exc:
            parser.exit(1, f"{exc}\n")
        if not phrases:
            print("(no phrases)")
        for index, phrase in enumerate(phrases, start=1):
            print(f"{index}. {phrase}")
    elif args.command == "compose":
        orchestrator = BuildOrchestrator()
        try:
            result = asyncio.run(
                orchestrator.compose_module(args.root, args.module, dry_run=bool(args.dry_run))
            )
        except (FileNotFoundError, ConfigError, GraphLoadError) as exc:
            parser.exit(1, f"{exc}\n")
        if result.warning is not None:
            parser.exit(1, f"{result.warning}\n")
        if args.dry_run:
            print(result.text)
        elif result.changed:
            print(f"Mounted {len(result.transitions)} command(s) into module {args.module}")
        else:
            print(f"Module {args.module} already up to date")
    elif args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _print_report(report: BuildReport) -> None:
    for result in report.failures + report.warnings:
        label = unit_label(result.module, result.command, result.lang)
        print(f"{result.status.upper():8} {result.stage:10} {label}: {result.detail or ''}".rstrip())
    suffix = " (dry-run)" if report.dry_run else ""
    print(
        f"Built {report.root.name or report.root}: {len(report.written)} file(s) written, "
        f"{len(report.failures)} failure(s), {len(report.warnings)} warning(s){suffix}"
    )


if __name__ == "__main__":
    main(sys.argv[1:])
