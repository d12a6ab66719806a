"""Pipeline orchestration for documentation builds."""

from __future__ import annotations

import asyncio
import functools
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from .compose.composer import CompositionResult, ModuleGraphComposer
from .config import SpokenDocsConfig, load_config
from .docs.assembler import DocumentAssembler
from .docs.i18n import LocalizationProvider
from .docs.links import LinkValidator
from .errors import ConfigError, GraphLoadError, RenderError, SpokenDocsError
from .graph.dot import load_graph, parse_dot
from .logging import get_logger, get_unit_logger
from .models import AutomatonDoc, AutomatonRef, BuildReport, Command, CommandDoc, Module, ModuleDoc, UnitResult
from .phrases.enumerator import PhraseEnumerator
from .phrases.templates import TemplateResolver
from .render.renderer import ImageRenderer, create_renderer
from .scanner import ModuleScanner


@dataclass
class _ModuleRun:
    """Results collected while one module builds; merged in module order."""

    results: List[UnitResult] = field(default_factory=list)
    written: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class _BuildContext:
    config: SpokenDocsConfig
    scanner: ModuleScanner
    composer: ModuleGraphComposer
    assembler: DocumentAssembler
    enumerator: PhraseEnumerator
    renderer: ImageRenderer
    render: bool
    dry_run: bool


class BuildOrchestrator:
    """Coordinates discovery, enumeration, composition, rendering and assembly.

    Modules build concurrently (bounded by ``concurrency``); inside a module
    every command is finished before the module automaton is composed and its
    README assembled. A failure is recorded against the smallest unit it
    affects and never stops sibling units.

    Collaborators passed to the constructor are shared by every call. The
    rest are derived from the configuration of each call's root, so one
    orchestrator can serve builds of different roots and render settings.
    """

    def __init__(
        self,
        *,
        config: SpokenDocsConfig | None = None,
        scanner: ModuleScanner | None = None,
        renderer: ImageRenderer | None = None,
        composer: ModuleGraphComposer | None = None,
        assembler: DocumentAssembler | None = None,
        link_validator: LinkValidator | None = None,
        templates: TemplateResolver | None = None,
    ) -> None:
        self._config = config
        self._scanner = scanner
        self._renderer = renderer
        self._composer = composer
        self._assembler = assembler
        self.link_validator = link_validator or LinkValidator()
        self._templates = templates
        self.logger = get_logger("orchestrator")

    # ------------------------------------------------------------------
    # Public entrypoints

    def run_build(
        self,
        path: str | Path,
        *,
        modules: Optional[Sequence[str]] = None,
        render: Optional[bool] = None,
        dry_run: bool = False,
    ) -> BuildReport:
        """Synchronous wrapper around `build` for CLI use."""
        return asyncio.run(self.build(path, modules=modules, render=render, dry_run=dry_run))

    async def build(
        self,
        path: str | Path,
        *,
        modules: Optional[Sequence[str]] = None,
        render: Optional[bool] = None,
        dry_run: bool = False,
    ) -> BuildReport:
        """Build READMEs, images and composed automata for every module."""
        root = Path(path).expanduser().resolve()
        self.logger.info("Starting documentation build for %s", root)
        config = self._load_config(root)
        scanner = self.scanner(config)
        names = scanner.list_modules(root, modules)
        self.logger.debug("Discovered %d module(s)", len(names))

        effective_render = config.render.enabled if render is None else render
        context = _BuildContext(
            config=config,
            scanner=scanner,
            composer=self.composer(config),
            assembler=self.assembler(config),
            enumerator=PhraseEnumerator(self.templates(config), config.enumeration.to_limits()),
            renderer=self._resolve_renderer(config, enabled=effective_render),
            render=effective_render and not dry_run,
            dry_run=dry_run,
        )

        semaphore = asyncio.Semaphore(config.concurrency)

        async def _guarded(name: str) -> _ModuleRun:
            async with semaphore:
                return await self._build_module(root, name, context)

        outcomes = await asyncio.gather(*(_guarded(name) for name in names), return_exceptions=True)

        report = BuildReport(root=root, dry_run=dry_run)
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self._log_exception(f"Unexpected failure while building module {name}", outcome)
                report.record(UnitResult(stage="module", status="failed", module=name, detail=str(outcome)))
                continue
            report.results.extend(outcome.results)
            report.written.extend(outcome.written)

        self.logger.info(
            "Build finished: %d file(s) written, %d failure(s), %d warning(s)",
            len(report.written),
            len(report.failures),
            len(report.warnings),
        )
        return report

    async def compose_module(self, path: str | Path, module: str, *, dry_run: bool = False) -> CompositionResult:
        """Re-wire one module automaton without building documentation."""
        root = Path(path).expanduser().resolve()
        config = self._load_config(root)
        scanner = self.scanner(config)
        scanner.list_modules(root, [module])
        scan = scanner.scan_module(root, module)
        return await self._compose(scan.module, self.composer(config), dry_run=dry_run)

    def enumerate_file(
        self, path: Path, *, root: Path | None = None, limit: int | None = None
    ) -> Tuple[str, ...]:
        """Return the example phrases of a single automaton file."""
        config = self._load_config((root or path.parent).expanduser().resolve())
        limits = config.enumeration.to_limits()
        if limit is not None:
            limits = replace(limits, limit=limit)
        enumerator = PhraseEnumerator(self.templates(config), limits)
        return enumerator.enumerate(load_graph(path))

    # ------------------------------------------------------------------
    # Collaborators

    def scanner(self, config: SpokenDocsConfig) -> ModuleScanner:
        if self._scanner is not None:
            return self._scanner
        return ModuleScanner(
            source_file=config.docs.source_file,
            image_format=config.render.format,
            exclude=config.exclude,
        )

    def templates(self, config: SpokenDocsConfig) -> TemplateResolver:
        """Load the template dictionary; it is read-only for the rest of the call."""
        if self._templates is not None:
            return self._templates
        paths: List[Path] = []
        for candidate in config.templates:
            if candidate.is_file():
                paths.append(candidate)
            elif config.templates_explicit:
                raise ConfigError(f"Template dictionary not found: {candidate}")
            else:
                self.logger.debug("No template dictionary at %s; using an empty one", candidate)
        resolver = TemplateResolver.from_files(paths)
        self.logger.debug("Loaded %d template(s) from %d file(s)", len(resolver), len(paths))
        return resolver

    def composer(self, config: SpokenDocsConfig) -> ModuleGraphComposer:
        if self._composer is not None:
            return self._composer
        return ModuleGraphComposer(begin_marker=config.markers.begin, end_marker=config.markers.end)

    def assembler(self, config: SpokenDocsConfig) -> DocumentAssembler:
        if self._assembler is not None:
            return self._assembler
        localizations = LocalizationProvider(fallback=config.docs.primary_language)
        if config.locales:
            localizations = localizations.with_strings(config.locales)
        return DocumentAssembler(
            localizations,
            primary_language=config.docs.primary_language,
            excerpt_length=config.docs.excerpt_length,
            templates_dir=config.docs.templates_dir,
        )

    def _resolve_renderer(self, config: SpokenDocsConfig, *, enabled: bool) -> ImageRenderer:
        if self._renderer is not None:
            return self._renderer
        return create_renderer(
            enabled=enabled,
            engine=config.render.engine,
            image_format=config.render.format,
            timeout=config.render.timeout,
        )

    def _load_config(self, root: Path) -> SpokenDocsConfig:
        if self._config is not None:
            return self._config
        return load_config(root)

    # ------------------------------------------------------------------
    # Module stage

    async def _build_module(self, root: Path, name: str, context: _BuildContext) -> _ModuleRun:
        run = _ModuleRun()
        logger = get_unit_logger("orchestrator", module=name)
        scan = context.scanner.scan_module(root, name)
        module = scan.module
        for error in scan.errors:
            logger.error("%s", error.message)
            run.results.append(
                UnitResult(
                    stage="discover",
                    status="failed",
                    module=name,
                    command=error.command,
                    detail=error.message,
                )
            )

        command_docs: List[CommandDoc] = []
        for command in module.commands:
            doc = await self._build_command(module, command, context, run)
            if doc is not None:
                command_docs.append(doc)

        try:
            composition = await self._compose(module, context.composer, dry_run=context.dry_run)
            if composition.warning is not None:
                run.results.append(
                    UnitResult(
                        stage="compose",
                        status="warning",
                        module=name,
                        detail=composition.warning.message,
                    )
                )
            elif composition.changed and not context.dry_run:
                run.written.append(module.automaton)

            graph = parse_dot(composition.text, source=str(module.automaton), strict=False)
            if context.render:
                await self._render(module.automaton, module.image, context, run, module=name)

            module_doc = ModuleDoc(
                module=module,
                title=graph.title or name,
                desc=graph.desc or "",
                commands=tuple(command_docs),
            )
            markdown = context.assembler.module_markdown(module_doc)
            self._check_links(markdown, module.root, run, module=name)
            await self._write(module.readme, markdown, context, run)
        except SpokenDocsError as exc:
            exc.with_context(module=name)
            logger.error("Module documentation failed: %s", exc.message)
            self._log_traceback(exc)
            run.results.append(UnitResult(stage="module", status="failed", module=name, detail=str(exc)))
            return run
        except OSError as exc:
            logger.error("Module documentation failed: %s", exc)
            self._log_traceback(exc)
            run.results.append(UnitResult(stage="module", status="failed", module=name, detail=str(exc)))
            return run

        run.results.append(UnitResult(stage="module", status="ok", module=name))
        logger.info("Module documented with %d command(s)", len(command_docs))
        return run

    async def _compose(
        self, module: Module, composer: ModuleGraphComposer, *, dry_run: bool
    ) -> CompositionResult:
        loop = asyncio.get_running_loop()
        call = functools.partial(
            composer.compose_file,
            module.automaton,
            module.command_dirs,
            module=module.name,
            dry_run=dry_run,
        )
        return await loop.run_in_executor(None, call)

    # ------------------------------------------------------------------
    # Command stage

    async def _build_command(
        self,
        module: Module,
        command: Command,
        context: _BuildContext,
        run: _ModuleRun,
    ) -> Optional[CommandDoc]:
        logger = get_unit_logger("orchestrator", module=module.name, command=command.name)
        outcomes = await asyncio.gather(
            *(self._analyse_automaton(module, command, ref, context, run) for ref in command.automata),
            return_exceptions=True,
        )

        automata: List[AutomatonDoc] = []
        failed = False
        for ref, outcome in zip(command.automata, outcomes):
            if isinstance(outcome, SpokenDocsError):
                outcome.with_context(module=module.name, command=command.name, lang=ref.lang)
                stage = "load" if isinstance(outcome, GraphLoadError) else "enumerate"
                get_unit_logger(
                    "orchestrator", module=module.name, command=command.name, lang=ref.lang
                ).error("%s", outcome)
                run.results.append(
                    UnitResult(
                        stage=stage,
                        status="failed",
                        module=module.name,
                        command=command.name,
                        lang=ref.lang,
                        detail=str(outcome),
                    )
                )
                failed = True
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                automata.append(outcome)

        if failed:
            logger.error("Command documentation skipped: not every language could be analysed")
            run.results.append(
                UnitResult(stage="command", status="failed", module=module.name, command=command.name)
            )
            return None

        doc = CommandDoc(command=command, automata=tuple(automata))
        try:
            markdown = context.assembler.command_markdown(doc)
            self._check_links(markdown, command.root, run, module=module.name, command=command.name)
            await self._write(command.readme, markdown, context, run)
        except OSError as exc:
            logger.error("Command README not written: %s", exc)
            self._log_traceback(exc)
            run.results.append(
                UnitResult(
                    stage="command",
                    status="failed",
                    module=module.name,
                    command=command.name,
                    detail=str(exc),
                )
            )
            return None
        run.results.append(
            UnitResult(stage="command", status="ok", module=module.name, command=command.name)
        )
        logger.debug("Documented %d language(s)", len(automata))
        return doc

    async def _analyse_automaton(
        self,
        module: Module,
        command: Command,
        ref: AutomatonRef,
        context: _BuildContext,
        run: _ModuleRun,
    ) -> AutomatonDoc:
        if context.render:
            await self._render(
                ref.path, ref.image, context, run, module=module.name, command=command.name, lang=ref.lang
            )
        loop = asyncio.get_running_loop()
        call = functools.partial(self._automaton_doc, command, ref, context.enumerator)
        return await loop.run_in_executor(None, call)

    def _automaton_doc(
        self, command: Command, ref: AutomatonRef, enumerator: PhraseEnumerator
    ) -> AutomatonDoc:
        """Load and enumerate one automaton; runs in an executor thread."""
        graph = load_graph(ref.path)
        phrases = enumerator.enumerate(graph)
        lang = graph.lang or ref.lang
        if graph.lang and graph.lang != ref.lang:
            self.logger.warning(
                "%s declares lang=%s but is named for %s; using %s",
                ref.path.name,
                graph.lang,
                ref.lang,
                graph.lang,
            )
        return AutomatonDoc(
            ref=ref,
            lang=lang,
            title=graph.title or command.name,
            desc=graph.desc or "",
            lang_name=graph.lang_name or lang,
            phrases=phrases,
        )

    # ------------------------------------------------------------------
    # Shared helpers

    async def _render(
        self,
        source: Path,
        target: Path,
        context: _BuildContext,
        run: _ModuleRun,
        *,
        module: str,
        command: str | None = None,
        lang: str | None = None,
    ) -> None:
        """Render an image; failures are recorded and the README still gets written."""
        try:
            await context.renderer.render(source, target, timeout=context.config.render.timeout)
        except RenderError as exc:
            exc.with_context(module=module, command=command, lang=lang)
            get_unit_logger("render", module=module, command=command, lang=lang).error(
                "Image not rendered (%s): %s", exc.kind, exc.message
            )
            run.results.append(
                UnitResult(
                    stage="render",
                    status="failed",
                    module=module,
                    command=command,
                    lang=lang,
                    detail=f"{exc.kind}: {exc.message}",
                )
            )
            return
        run.written.append(target)

    def _check_links(
        self,
        markdown: str,
        root: Path,
        run: _ModuleRun,
        *,
        module: str,
        command: str | None = None,
    ) -> None:
        for issue in self.link_validator.validate(markdown, root=root):
            get_unit_logger("docs", module=module, command=command).warning("%s", issue)
            run.results.append(
                UnitResult(stage="links", status="warning", module=module, command=command, detail=issue)
            )

    async def _write(self, path: Path, content: str, context: _BuildContext, run: _ModuleRun) -> None:
        if context.dry_run:
            self.logger.debug("Dry run: skipping write of %s", path)
            return
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, functools.partial(path.write_text, content, encoding="utf-8"))
        run.written.append(path)

    def _log_exception(self, message: str, exc: Exception) -> None:
        self.logger.error("%s: %s", message, exc)
        self._log_traceback(exc)

    def _log_traceback(self, exc: BaseException) -> None:
        if self.logger.isEnabledFor(logging.DEBUG):
            self.logger.debug("Traceback", exc_info=exc)


__all__ = ["BuildOrchestrator"]
