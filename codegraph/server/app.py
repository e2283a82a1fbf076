# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""HTTP API for codegraph.

Thin FastAPI layer over the graph builder and query engine. Every route
lives under ``/api/v1``. Errors are returned as
``{"error": <kind>, "message": ...}`` with a status code chosen by kind;
queries that match nothing return 200 with an empty result.

Run with:
    codegraph start --host 127.0.0.1 --port 8080
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from codegraph import __version__
from codegraph.codebase.graph import GraphBuilder, create_graph_store
from codegraph.codebase.graph.protocol import GraphStoreProtocol, ProjectRecord, ProjectStatus
from codegraph.codebase.indexer import ParseStats, parse_project
from codegraph.codebase.query import (
    CallGraphResult,
    DefinitionResult,
    QueryEngine,
    ReferencesResult,
    SymbolSearchResult,
)
from codegraph.config import Settings, load_settings
from codegraph.errors import CodeGraphError, InvalidQueryError, ProjectNotFoundError
from codegraph.languages.registry import ExtractionRegistry, create_default_registry

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"

STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "invalid_query": status.HTTP_400_BAD_REQUEST,
    "unsupported": status.HTTP_400_BAD_REQUEST,
    "io": status.HTTP_400_BAD_REQUEST,
}


class CreateProjectRequest(BaseModel):
    name: str
    root_path: str


class ParseRequest(BaseModel):
    languages: Optional[List[str]] = None


class HealthResponse(BaseModel):
    status: str
    version: str


class LanguageInfo(BaseModel):
    id: str
    name: str
    extensions: List[str]


class CodeGraphService:
    """Shared state behind the routes: store, registry, builder, engine."""

    def __init__(self, settings: Settings, store: GraphStoreProtocol, registry: ExtractionRegistry):
        self.settings = settings
        self.store = store
        self.registry = registry
        self.builder = GraphBuilder(store)
        self.engine = QueryEngine(store)

    def require_project(self, project_id: int) -> ProjectRecord:
        project = self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {project_id}", {"project_id": project_id})
        return project


def _service(request: Request) -> CodeGraphService:
    return request.app.state.service


router = APIRouter(prefix=API_PREFIX)


@router.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


@router.get("/languages", response_model=List[LanguageInfo])
def list_languages(request: Request):
    return _service(request).registry.list_languages()


@router.get("/projects", response_model=List[ProjectRecord])
def list_projects(request: Request):
    return _service(request).store.list_projects()


@router.post("/projects", response_model=ProjectRecord, status_code=status.HTTP_201_CREATED)
def create_project(body: CreateProjectRequest, request: Request):
    root = str(Path(body.root_path).resolve())
    return _service(request).builder.create_or_get_project(body.name, root)


@router.get("/projects/{project_id}", response_model=ProjectRecord)
def get_project(project_id: int, request: Request):
    return _service(request).require_project(project_id)


@router.get("/projects/{project_id}/status", response_model=ProjectStatus)
def get_project_status(project_id: int, request: Request):
    service = _service(request)
    service.require_project(project_id)
    return service.store.get_project_status(project_id)


@router.post("/projects/{project_id}/parse", response_model=ParseStats)
def parse(project_id: int, request: Request, body: Optional[ParseRequest] = None):
    service = _service(request)
    project = service.require_project(project_id)
    indexing = service.settings.indexing
    return parse_project(
        service.store,
        service.registry,
        project.root_path,
        name=project.name,
        languages=body.languages if body else None,
        workers=indexing.workers,
        parallel_threshold=indexing.parallel_threshold,
        skip_dirs=indexing.exclude_dirs,
        builder=service.builder,
    )


@router.get("/projects/{project_id}/definition", response_model=DefinitionResult)
def definition(
    project_id: int,
    request: Request,
    file: Optional[str] = None,
    line: Optional[int] = Query(default=None, ge=1),
    column: Optional[int] = Query(default=None, ge=1),
    symbol: Optional[str] = None,
):
    engine = _service(request).engine
    if symbol is not None:
        return engine.find_definition_by_symbol(project_id, symbol)
    if file is None or line is None or column is None:
        raise InvalidQueryError("Provide either file, line and column, or symbol")
    return engine.find_definition(project_id, file, line, column)


@router.get("/projects/{project_id}/references", response_model=ReferencesResult)
def references(
    project_id: int,
    request: Request,
    file: Optional[str] = None,
    line: Optional[int] = Query(default=None, ge=1),
    column: Optional[int] = Query(default=None, ge=1),
    symbol: Optional[str] = None,
    limit: int = Query(default=100, ge=0),
):
    engine = _service(request).engine
    if symbol is not None:
        return engine.find_references_by_symbol(project_id, symbol, limit=limit)
    if file is None or line is None or column is None:
        raise InvalidQueryError("Provide either file, line and column, or symbol")
    return engine.find_references(project_id, file, line, column)


@router.get("/projects/{project_id}/callgraph", response_model=CallGraphResult)
def callgraph(
    project_id: int,
    request: Request,
    symbol: str,
    depth: int = Query(default=1, ge=0),
    direction: str = "both",
):
    return _service(request).engine.get_callgraph(project_id, symbol, depth=depth, direction=direction)


@router.get("/projects/{project_id}/symbols", response_model=SymbolSearchResult)
def symbols(
    project_id: int,
    request: Request,
    query: str,
    symbol_type: Optional[str] = Query(default=None, alias="type"),
    limit: int = Query(default=50, ge=0),
):
    return _service(request).engine.search_symbols(
        project_id, query, symbol_type=symbol_type, limit=limit
    )


async def codegraph_error_handler(request: Request, exc: CodeGraphError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[GraphStoreProtocol] = None,
    registry: Optional[ExtractionRegistry] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings (loaded from the environment if omitted)
        store: Graph store (opened from ``settings.database.path`` if omitted)
        registry: Extraction registry (built-in extractors if omitted)
    """
    settings = settings or load_settings()
    owns_store = store is None
    if store is None:
        store = create_graph_store(settings.database.path)
    service = CodeGraphService(settings, store, registry or create_default_registry())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"codegraph API ready (database: {settings.database.path})")
        yield
        if owns_store:
            service.store.close()
        logger.info("codegraph API shut down")

    app = FastAPI(title="codegraph", version=__version__, lifespan=lifespan)
    app.state.service = service
    app.add_exception_handler(CodeGraphError, codegraph_error_handler)
    if settings.server.cors_enabled:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.server.cors_origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.include_router(router)
    return app
