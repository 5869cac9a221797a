"""repodex - rebuild artifact repository search indexes."""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

load_dotenv()

_HELP = """\
Usage: repodex load <storage:repository> <listing-file> [--replace] [--dir <path>]
       repodex rebuild <storage:repository>... [--dir <path>]
       repodex stats <storage:repository> [--dir <path>]

Commands:
  load      Import artifact paths (one Maven layout path per line) into the
            metadata store
  rebuild   Purge and rebuild the search index of one or more repositories
  stats     Show statistics of a repository's built index

Options:
  --dir <path>   Project directory holding .repodex/ (default: cwd)
  --replace      (load) Drop the repository's groups before importing
  --help, -h     Show this help message and exit
"""

console = Console()


def main() -> None:
    """Entry point for the repodex CLI."""
    args = sys.argv[1:]

    if not args or "--help" in args or "-h" in args:
        console.print(_HELP, markup=False, highlight=False)
        sys.exit(0)

    command, rest = args[0], args[1:]
    if command == "load":
        _run_load(rest)
    elif command == "rebuild":
        _run_rebuild(rest)
    elif command == "stats":
        _run_stats(rest)
    else:
        console.print(f"Unknown command: {command}", markup=False)
        console.print("Run 'repodex --help' for usage.")
        sys.exit(1)


def _split_dir(args: list[str]) -> tuple[list[str], Path]:
    """Pull ``--dir <path>`` out of *args*; reject other flags."""
    positional: list[str] = []
    project_dir = Path.cwd()
    i = 0
    while i < len(args):
        if args[i] == "--dir" and i + 1 < len(args):
            project_dir = Path(args[i + 1])
            i += 2
        elif args[i].startswith("-"):
            console.print(f"Unknown argument: {args[i]}", markup=False)
            sys.exit(1)
        else:
            positional.append(args[i])
            i += 1
    return positional, project_dir


def _parse_repositories(values: list[str]):
    from repodex.index.schema import RepositoryIdentity

    try:
        return [RepositoryIdentity.parse(v) for v in values]
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        sys.exit(1)


def _setup(project_dir: Path):
    from repodex.core.config import EnvSettings, load_config

    logging.basicConfig(
        level=EnvSettings().log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    return load_config(project_dir)


def _run_load(args: list[str]) -> None:
    """Import a path listing into the metadata store."""
    replace = "--replace" in args
    positional, project_dir = _split_dir([a for a in args if a != "--replace"])
    if len(positional) != 2:
        console.print("Usage: repodex load <storage:repository> <listing-file>")
        sys.exit(1)
    (repository,) = _parse_repositories(positional[:1])
    listing = Path(positional[1])

    config = _setup(project_dir)

    from repodex.index.loader import load_listing
    from repodex.index.store import MetadataStore

    with MetadataStore(config.store.db_path) as store:
        if replace:
            removed = store.delete_repository(repository.storage_id, repository.repository_id)
            console.print(f"Removed {removed} groups of {repository}")
        result = load_listing(store, repository, listing)

    console.print(
        f"Loaded {result.artifacts} artifacts into {result.groups} groups "
        f"of {repository} ({result.rejected} rejected)"
    )


def _run_rebuild(args: list[str]) -> None:
    """Rebuild the index of each named repository; exit 1 if any fails."""
    positional, project_dir = _split_dir(args)
    if not positional:
        console.print("Usage: repodex rebuild <storage:repository>...")
        sys.exit(1)
    repositories = _parse_repositories(positional)

    config = _setup(project_dir)

    from repodex.index.fetcher import GroupPageFetcher
    from repodex.index.orchestrator import RebuildOrchestrator
    from repodex.index.store import MetadataStore
    from repodex.index.writer import SqliteIndexWriter
    from repodex.plugins.manager import PluginManager

    plugins = PluginManager()
    plugins.load_entrypoints()
    if config.plugins.directory is not None:
        plugins.load_from_directory(config.plugins.directory)
    if plugins.plugin_names():
        console.print(f"Plugins: {', '.join(plugins.plugin_names())}", markup=False)

    with MetadataStore(config.store.db_path) as store:
        orchestrator = RebuildOrchestrator(
            fetcher=GroupPageFetcher(store),
            writer=SqliteIndexWriter(config.index.index_root),
            page_size=config.rebuild.page_size,
            hooks=plugins.hooks,
        )
        outcomes = orchestrator.rebuild_many(repositories, max_workers=config.rebuild.max_workers)

    table = Table(title="Rebuild results")
    table.add_column("Repository")
    table.add_column("State")
    table.add_column("Pages", justify="right")
    table.add_column("Entries", justify="right")
    table.add_column("Error")
    for outcome in outcomes:
        table.add_row(
            str(outcome.repository),
            outcome.state.value,
            str(outcome.pages_fetched),
            str(outcome.entries_submitted),
            "" if outcome.ok else f"{outcome.stage.value if outcome.stage else ''}: {outcome.error}",
        )
    console.print(table)

    if not all(o.ok for o in outcomes):
        sys.exit(1)


def _run_stats(args: list[str]) -> None:
    """Print statistics of a repository's built index."""
    positional, project_dir = _split_dir(args)
    if len(positional) != 1:
        console.print("Usage: repodex stats <storage:repository>")
        sys.exit(1)
    (repository,) = _parse_repositories(positional)

    config = _setup(project_dir)

    from repodex.index.writer import SqliteIndexWriter

    writer = SqliteIndexWriter(config.index.index_root)
    s = writer.stats(writer.location_for(repository))

    packed = "never" if s.packed_at is None else f"{s.packed_at:.0f}"
    console.print(f"{repository}: {s.total_entries} entries · packed at {packed}")
    if s.entries_by_extension:
        ext_str = ", ".join(
            f"{cnt} {ext}"
            for ext, cnt in sorted(s.entries_by_extension.items(), key=lambda x: -x[1])
        )
        console.print(f"Extensions: {ext_str}")


if __name__ == "__main__":
    main()
