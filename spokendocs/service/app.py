"""FastAPI application entrypoint for spokendocs service mode."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import ConfigError, GraphLoadError, SpokenDocsError, TemplateError
from ..graph.dot import parse_dot
from ..orchestrator import BuildOrchestrator
from ..phrases.enumerator import DEFAULT_LIMIT, EnumerationLimits, PhraseEnumerator
from ..phrases.templates import TemplateResolver, flatten_templates


class BuildRequest(BaseModel):
    root: str
    modules: Optional[List[str]] = None
    render: Optional[bool] = None
    dry_run: bool = False


class UnitResultModel(BaseModel):
    stage: str
    status: str
    module: str
    command: Optional[str] = None
    lang: Optional[str] = None
    detail: Optional[str] = None


class BuildResponse(BaseModel):
    root: str
    ok: bool
    dry_run: bool
    written: List[str]
    results: List[UnitResultModel]


class PhrasesRequest(BaseModel):
    automaton: str
    templates: Dict[str, Any] = Field(default_factory=dict)
    limit: int = Field(default=DEFAULT_LIMIT, ge=0)


class PhrasesResponse(BaseModel):
    title: Optional[str] = None
    lang: Optional[str] = None
    phrases: List[str]


class HealthResponse(BaseModel):
    status: str


def _default_orchestrator() -> BuildOrchestrator:
    return BuildOrchestrator()


def create_app(
    orchestrator_factory: Callable[[], BuildOrchestrator] = _default_orchestrator,
) -> FastAPI:
    """Create the FastAPI application exposing spokendocs operations."""

    app = FastAPI(title="spokendocs", version="1.0.0")

    async def get_orchestrator() -> BuildOrchestrator:
        # One orchestrator per request: templates and config load fresh per build.
        return orchestrator_factory()

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.post("/build", response_model=BuildResponse)
    async def build(
        payload: BuildRequest,
        orchestrator: BuildOrchestrator = Depends(get_orchestrator),
    ) -> BuildResponse:
        report = await orchestrator.build(
            payload.root,
            modules=payload.modules,
            render=payload.render,
            dry_run=payload.dry_run,
        )
        return BuildResponse(**report.to_dict())

    @app.post("/phrases", response_model=PhrasesResponse)
    async def phrases(payload: PhrasesRequest) -> PhrasesResponse:
        def _run_phrases() -> PhrasesResponse:
            graph = parse_dot(payload.automaton, source="<request>")
            resolver = TemplateResolver(flatten_templates(payload.templates, source="request"))
            enumerator = PhraseEnumerator(resolver, EnumerationLimits(limit=payload.limit))
            return PhrasesResponse(
                title=graph.title,
                lang=graph.lang,
                phrases=list(enumerator.enumerate(graph)),
            )

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, _run_phrases)

    @app.exception_handler(FileNotFoundError)
    async def file_not_found_handler(
        _: Any, exc: FileNotFoundError
    ) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(SpokenDocsError)
    async def domain_error_handler(_: Any, exc: SpokenDocsError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc), "error": _error_kind(exc)},
        )

    return app


def _error_kind(exc: SpokenDocsError) -> str:
    if isinstance(exc, GraphLoadError):
        return "graph_load"
    if isinstance(exc, TemplateError):
        return "template"
    if isinstance(exc, ConfigError):
        return "config"
    return "build"


def run_service(
    host: str = "127.0.0.1", port: int = 8000
) -> None:  # pragma: no cover - integration path
    import uvicorn

    app = create_app()
    uvicorn.run(app, host=host, port=port)
