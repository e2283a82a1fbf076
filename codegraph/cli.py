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

"""Command-line interface for codegraph.

Commands:
    codegraph start       Run the HTTP API server
    codegraph parse       Index a project directory
    codegraph query       Query an indexed project (JSON output)
    codegraph projects    List indexed projects
    codegraph languages   List supported languages
    codegraph status      Check a running server

Errors are printed to stderr as {"error": <kind>, "message": ...} with
exit code 1. A query that matches nothing prints an empty result and
exits 0.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.console import Console
from rich.table import Table

from codegraph import __version__
from codegraph.codebase.graph import create_graph_store
from codegraph.codebase.graph.protocol import GraphStoreProtocol, ProjectRecord
from codegraph.codebase.indexer import parse_project
from codegraph.codebase.query import QueryEngine
from codegraph.config import Settings, load_settings
from codegraph.errors import CodeGraphError, InvalidQueryError, ProjectNotFoundError
from codegraph.languages.registry import create_default_registry
from codegraph.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codegraph", description="Multi-language code graph indexer"
    )
    parser.add_argument("--version", action="version", version=f"codegraph {__version__}")
    parser.add_argument("--config", "-c", metavar="FILE", help="YAML config file")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    start_p = sub.add_parser("start", help="Run the HTTP API server")
    start_p.add_argument("--host", help="Bind address (default from config)")
    start_p.add_argument("--port", type=int, help="Port (default from config)")
    start_p.add_argument("--database", "-d", metavar="PATH", help="Database file")

    parse_p = sub.add_parser("parse", help="Index a project directory")
    parse_p.add_argument("--path", "-p", default=".", help="Project root (default: .)")
    parse_p.add_argument("--name", "-n", help="Project name (default: directory name)")
    parse_p.add_argument(
        "--languages", "-l", metavar="IDS", help="Comma-separated language ids (default: all)"
    )
    parse_p.add_argument("--database", "-d", metavar="PATH", help="Database file")
    parse_p.add_argument(
        "--workers", "-w", type=int, help="Extraction processes (0 = auto, 1 = sequential)"
    )

    query_p = sub.add_parser("query", help="Query an indexed project")
    query_p.add_argument("--database", "-d", metavar="PATH", help="Database file")
    query_p.add_argument("--project", "-P", help="Project id or name (default: the only project)")
    query_sub = query_p.add_subparsers(dest="query_type", required=True)

    def_p = query_sub.add_parser("definition", help="Find a symbol's definition")
    _add_target_args(def_p)

    refs_p = query_sub.add_parser("references", help="Find references to a symbol")
    _add_target_args(refs_p)
    refs_p.add_argument("--limit", type=int, default=100, help="Max results (name queries)")

    cg_p = query_sub.add_parser("callgraph", help="Show callers and callees of a symbol")
    cg_p.add_argument("symbol", help="Symbol name or qualified name")
    cg_p.add_argument("--depth", type=int, default=1, help="Traversal depth (default: 1)")
    cg_p.add_argument(
        "--direction",
        choices=["callers", "callees", "both"],
        default="both",
        help="Edges to follow (default: both)",
    )

    sym_p = query_sub.add_parser("symbols", help="Search symbols by substring")
    sym_p.add_argument("query", help="Case-sensitive substring")
    sym_p.add_argument("--type", "-t", dest="symbol_type", help="Exact node kind filter")
    sym_p.add_argument("--limit", type=int, default=50, help="Max results (default: 50)")

    projects_p = sub.add_parser("projects", help="List indexed projects")
    projects_p.add_argument("--database", "-d", metavar="PATH", help="Database file")

    sub.add_parser("languages", help="List supported languages")

    status_p = sub.add_parser("status", help="Check a running server")
    status_p.add_argument("--host", help="Server address (default from config)")
    status_p.add_argument("--port", type=int, help="Server port (default from config)")

    return parser


def _add_target_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("symbol", nargs="?", help="Symbol name (instead of a position)")
    parser.add_argument("--file", "-f", help="File path (relative to the project root)")
    parser.add_argument("--line", type=int, help="1-based line")
    parser.add_argument("--column", type=int, help="1-based column")


def resolve_project(store: GraphStoreProtocol, ref: Optional[str]) -> ProjectRecord:
    """Resolve a project by numeric id, then name; default to the only project.

    Raises:
        ProjectNotFoundError: If nothing matches, or no projects exist
        InvalidQueryError: If no reference is given and several projects exist
    """
    if ref:
        project = store.get_project(int(ref)) if ref.isdigit() else None
        if project is None:
            project = store.get_project_by_name(ref)
        if project is None:
            raise ProjectNotFoundError(f"Project not found: {ref}", {"project": ref})
        return project

    projects = store.list_projects()
    if not projects:
        raise ProjectNotFoundError("No projects found. Run 'codegraph parse' first.")
    if len(projects) > 1:
        names = ", ".join(f"{p.id}:{p.name}" for p in projects)
        raise InvalidQueryError(f"Multiple projects found ({names}); use --project")
    return projects[0]


def _print_json(data: Any) -> None:
    sys.stdout.write(json.dumps(data, indent=2, default=str) + "\n")


def _database_path(settings: Settings, args: argparse.Namespace) -> str:
    return getattr(args, "database", None) or settings.database.path


def cmd_start(settings: Settings, args: argparse.Namespace) -> int:
    import uvicorn

    from codegraph.server.app import create_app

    if args.database:
        settings.database.path = args.database
    host = args.host or settings.server.host
    port = args.port or settings.server.port
    level = settings.logging.level
    log_level = {"warn": "warning"}.get(level, level)

    Console(stderr=True).print(f"[bold cyan]codegraph[/] API on http://{host}:{port}/api/v1")
    uvicorn.run(create_app(settings), host=host, port=port, log_level=log_level)
    return 0


def cmd_parse(settings: Settings, args: argparse.Namespace) -> int:
    root = Path(args.path).resolve()
    languages: Optional[List[str]] = None
    if args.languages:
        languages = [lang.strip() for lang in args.languages.split(",") if lang.strip()]
    workers = args.workers if args.workers is not None else settings.indexing.workers

    store = create_graph_store(_database_path(settings, args))
    try:
        stats = parse_project(
            store,
            create_default_registry(),
            root,
            name=args.name,
            languages=languages,
            workers=workers,
            parallel_threshold=settings.indexing.parallel_threshold,
            skip_dirs=settings.indexing.exclude_dirs,
        )
    finally:
        store.close()

    console = Console()
    console.print(
        f"[green]Parsed[/] project [bold]{stats.project_name}[/] (id {stats.project_id}): "
        f"{stats.files_stored} stored, {stats.files_unchanged} unchanged, "
        f"{stats.files_removed} removed, {stats.references_resolved} references resolved "
        f"in {stats.elapsed_seconds:.2f}s"
    )
    if stats.files_failed:
        console.print(f"[yellow]{stats.files_failed} file(s) failed:[/]")
        for path, kind, message in stats.errors[:10]:
            console.print(f"  {path}: {kind}: {message}")
    return 0


def cmd_query(settings: Settings, args: argparse.Namespace) -> int:
    store = create_graph_store(_database_path(settings, args))
    try:
        project = resolve_project(store, args.project)
        engine = QueryEngine(store)
        result = _run_query(engine, project.id, args)
    finally:
        store.close()
    _print_json(result.model_dump(mode="json"))
    return 0


def _run_query(engine: QueryEngine, project_id: int, args: argparse.Namespace):
    if args.query_type in ("definition", "references"):
        by_position = args.file is not None and args.line is not None and args.column is not None
        if not by_position and not args.symbol:
            raise InvalidQueryError("Provide a symbol, or --file, --line and --column")
        if args.query_type == "definition":
            if by_position:
                return engine.find_definition(project_id, args.file, args.line, args.column)
            return engine.find_definition_by_symbol(project_id, args.symbol)
        if by_position:
            return engine.find_references(project_id, args.file, args.line, args.column)
        return engine.find_references_by_symbol(project_id, args.symbol, limit=args.limit)

    if args.query_type == "callgraph":
        return engine.get_callgraph(
            project_id, args.symbol, depth=args.depth, direction=args.direction
        )
    return engine.search_symbols(project_id, args.query, symbol_type=args.symbol_type, limit=args.limit)


def cmd_projects(settings: Settings, args: argparse.Namespace) -> int:
    store = create_graph_store(_database_path(settings, args))
    try:
        projects = store.list_projects()
    finally:
        store.close()

    console = Console()
    if not projects:
        console.print("No projects indexed.")
        return 0

    table = Table(title="Projects")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Root")
    table.add_column("Updated")
    for project in projects:
        table.add_row(
            str(project.id),
            project.name,
            project.root_path,
            project.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)
    return 0


def cmd_languages(settings: Settings, args: argparse.Namespace) -> int:
    table = Table(title="Supported languages")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Extensions")
    for language in create_default_registry().list_languages():
        table.add_row(language["id"], language["name"], ", ".join(language["extensions"]))
    Console().print(table)
    return 0


def cmd_status(settings: Settings, args: argparse.Namespace) -> int:
    import httpx

    host = args.host or settings.server.host
    port = args.port or settings.server.port
    url = f"http://{host}:{port}/api/v1/health"
    console = Console()
    try:
        response = httpx.get(url, timeout=5.0)
        response.raise_for_status()
    except httpx.HTTPError as e:
        console.print(f"[red]Server not reachable[/] at {url}: {e}")
        return 1

    data = response.json()
    console.print(f"[green]Server is {data.get('status', 'unknown')}[/] at {url}")
    if "version" in data:
        console.print(f"Version: {data['version']}")
    return 0


COMMANDS = {
    "start": cmd_start,
    "parse": cmd_parse,
    "query": cmd_query,
    "projects": cmd_projects,
    "languages": cmd_languages,
    "status": cmd_status,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config)
        setup_logging(
            level="debug" if args.verbose else settings.logging.level,
            fmt=settings.logging.format,
        )
        return COMMANDS[args.command](settings, args)
    except CodeGraphError as e:
        logger.debug(f"Command {args.command} failed: {e.kind}: {e.message}")
        sys.stderr.write(json.dumps(e.to_dict()) + "\n")
        return 1


if __name__ == "__main__":
    sys.exit(main())
