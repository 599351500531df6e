"""Command-line one-shot sync of the tracked repositories."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import typing as typ

import msgspec

from runwatch.errors import ConfigurationError, PersistenceError

if typ.TYPE_CHECKING:
    from runwatch.models import SourceState

_DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///runwatch.db"


async def _sync_once(
    database_url: str, repositories: list[str] | None
) -> list[SourceState]:
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from runwatch.config import RunwatchConfig
    from runwatch.factory import build_sync_components
    from runwatch.github import GitHubRestClient, GitHubRestConfig
    from runwatch.store import init_storage

    config = RunwatchConfig.from_env()
    sources = repositories or config.require_repositories()
    client = GitHubRestClient(GitHubRestConfig.from_env())
    engine = create_async_engine(database_url)
    try:
        await init_storage(engine)
        session_factory = async_sessionmaker(engine, expire_on_commit=False)
        components = build_sync_components(session_factory, config, client)
        return await components.cycle.run_cycle(sources)
    finally:
        await client.aclose()
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Run one sync cycle and print every source's state as JSON.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 on a configuration or persistence fault.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--repo",
        action="append",
        dest="repositories",
        default=None,
        help="Repository to sync as owner/name; repeat to sync several "
        "(defaults to RUNWATCH_GITHUB_REPOSITORIES)",
    )
    parser.add_argument(
        "--database-url",
        default=os.environ.get("RUNWATCH_DATABASE_URL", _DEFAULT_DATABASE_URL),
        help="SQLAlchemy async database URL",
    )
    args = parser.parse_args(argv)

    try:
        states = asyncio.run(_sync_once(args.database_url, args.repositories))
    except ConfigurationError as exc:
        print(f"Sync is not configured: {exc}", file=sys.stderr)
        return 1
    except PersistenceError as exc:
        print(f"Workflow run store unavailable: {exc}", file=sys.stderr)
        return 1

    print(msgspec.json.encode(states).decode())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
