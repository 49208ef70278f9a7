# /// script
# requires-python = ">=3.13"
# dependencies = [
#     "httpx",
#     "pydantic",
#     "python-dotenv",
#     "structlog",
# ]
# ///
#  -*- coding: utf-8 -*-
"""
repo_context: assemble a selection of repository files into one LLM context document.

Overview
--------
The repository is listed through the GitHub contents API (or read from a
local directory with `--local`) down to a depth cap. Every entry gets a
default selection:

- entries matching the ignore patterns (binaries, lockfiles, build output,
  editor/VCS folders, ...) are shown but never selected,
- files larger than `--auto-select-limit` bytes start unchecked,
- everything else starts checked.

The selection can then be adjusted with `--expand`, `--select-all`,
`--deselect-all`, `--toggle` and `--toggle-ext`, applied in that order,
and the selected files are written as an XML-like document:

    <repository>
      <file_tree>
        path/one
      </file_tree>

      <file path="path/one">
    ...escaped content...
      </file>
    </repository>

Usage
-----
Run `python -m repo_context.cli --help` for full options. Common examples:
    - Default selection of a GitHub repository:
        uv run python -m repo_context.cli octocat/Hello-World --output context.xml

    - Only Python files, with the tree and extension summary:
        uv run python -m repo_context.cli owner/repo --deselect-all --toggle-ext .py --tree --stats -o out.xml

    - A local checkout:
        uv run python -m repo_context.cli --local . --toggle tests --output out.xml
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from repo_context import __version__
from repo_context.exceptions import InvalidRepositoryError, RateLimitError
from repo_context.logging import logger, setup_logging
from repo_context.output_construction import build_stats_lines, format_bytes, render_tree_lines
from repo_context.session import RepoSession
from repo_context.settings import Settings, parse_repository
from repo_context.sources import GitHubSource, LocalSource

if TYPE_CHECKING:
    from collections.abc import Sequence
    from typing import TextIO

    from repo_context.sources import ContentSource


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    p = argparse.ArgumentParser(
        prog="repo-context",
        description="Assemble selected repository files into one context document.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("repository", nargs="?", default="", help="GitHub repository (owner/repo or URL).")
    p.add_argument("--local", type=Path, default=None, help="Read a local directory instead of GitHub.")
    p.add_argument("--token", type=str, default=None, help="GitHub token (defaults to $GITHUB_TOKEN).")
    p.add_argument("--api-url", type=str, default=None, help="GitHub API base URL.")
    p.add_argument("--ref", type=str, default="", help="Branch, tag or commit to read.")
    p.add_argument("-o", "--output", type=Path, default=None, help="Output file (default: stdout).")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")

    p.add_argument("--depth-cap", type=int, default=None, help="Depth listed eagerly.")
    p.add_argument(
        "--auto-select-limit",
        dest="auto_select_size_limit",
        type=int,
        default=None,
        help="Files above this many bytes start unchecked.",
    )

    p.add_argument("--expand", action="append", default=[], help="Expand a directory (repeatable).")
    bulk = p.add_mutually_exclusive_group()
    bulk.add_argument("--select-all", action="store_true", help="Select every non-ignored file.")
    bulk.add_argument("--deselect-all", action="store_true", help="Clear the selection.")
    p.add_argument("--toggle", action="append", default=[], help="Toggle a file or directory (repeatable).")
    p.add_argument(
        "--toggle-ext",
        action="append",
        default=[],
        help="Toggle all visible files of an extension, e.g. '.py' (repeatable).",
    )

    p.add_argument("--tree", action="store_true", help="Print the selection tree.")
    p.add_argument("--stats", action="store_true", help="Print the top extensions by size.")
    p.add_argument("--rate-limit", action="store_true", help="Print the GitHub rate limit.")
    args = p.parse_args(argv)
    if not args.repository and args.local is None:
        p.error("a repository or --local directory is required")
    values = {k: v for k, v in vars(args).items() if v is not None}
    return Settings(**values)


def build_source(settings: Settings) -> ContentSource:
    """Create the content source described by the settings.

    Raises:
        InvalidRepositoryError: if the repository reference is malformed.
    """
    if settings.local is not None:
        return LocalSource(settings.local)
    owner, repo = parse_repository(settings.repository)
    return GitHubSource(
        owner,
        repo,
        token=settings.token or None,
        api_url=settings.api_url,
        ref=settings.ref or None,
    )


async def print_rate_limit(source: GitHubSource, out: TextIO) -> None:
    try:
        rate = await source.get_rate_limit()
    except RateLimitError as e:
        logger.warning("Failed to fetch rate limit", reason=e.reason)
        return
    resets_at = datetime.fromtimestamp(rate.reset, UTC).astimezone().isoformat(timespec="seconds")
    print(
        f"rate limit: {rate.remaining}/{rate.limit} remaining ({rate.remaining_ratio:.0%}), resets at {resets_at}",
        file=out,
    )


async def run(settings: Settings, source: ContentSource) -> int:
    """Load the tree, apply the requested selection changes and write the document."""
    display = sys.stdout if settings.output is not None else sys.stderr
    session = RepoSession(
        source,
        depth_cap=settings.depth_cap,
        auto_select_size_limit=settings.auto_select_size_limit,
        auto_refresh=False,
    )
    try:
        if settings.rate_limit and isinstance(source, GitHubSource):
            await print_rate_limit(source, display)

        await session.load()
        if session.error:
            logger.warning("Nothing to export", error=session.error)
        for path in settings.expand:
            await session.toggle_directory(path)
        if settings.select_all:
            await session.select_all()
        if settings.deselect_all:
            await session.deselect_all()
        for path in settings.toggle:
            await session.toggle_checkbox(path)
        for ext in settings.toggle_ext:
            await session.toggle_extension_selection(ext)
        await session.refresh()
    finally:
        if isinstance(source, GitHubSource):
            await source.aclose()

    if settings.tree:
        root_name = settings.repository or (settings.local.resolve().name if settings.local else "")
        print("\n".join(render_tree_lines(root_name, session.tree)), file=display)
    if settings.stats:
        print("\n".join(build_stats_lines(session.extension_stats)), file=display)

    document = session.context_document
    if settings.output is not None:
        settings.output.write_text(document, encoding="utf-8")
        print(f"Wrote {settings.output} selected={format_bytes(session.selected_bytes)}", file=display)
    else:
        sys.stdout.write(document)
        if document:
            sys.stdout.write("\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    try:
        source = build_source(settings)
    except InvalidRepositoryError as e:
        print(f"error: {e.message} Got {e.value!r}.", file=sys.stderr)
        return 2
    return asyncio.run(run(settings, source))


if __name__ == "__main__":
    raise SystemExit(main())
