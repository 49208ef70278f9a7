from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from repo_context.config import AUTO_SELECT_SIZE_LIMIT, DEPTH_CAP
from repo_context.exceptions import InvalidRepositoryError
from repo_context.sources import GITHUB_API_URL

ENV_FILE = find_dotenv(usecwd=True)
load_dotenv(ENV_FILE)

_REPOSITORY = re.compile(
    r"^(?:https?://github\.com/)?(?P<owner>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+?)(?:\.git)?/?$",
)


def parse_repository(value: str) -> tuple[str, str]:
    """Split `owner/repo` (or a github.com URL) into its two parts.

    Args:
        value (str): repository reference

    Raises:
        InvalidRepositoryError: if the reference is not recognised.

    Returns:
        tuple[str, str]: owner and repository name
    """
    match = _REPOSITORY.match(value.strip())
    if match is None:
        raise InvalidRepositoryError(value=value)
    return match["owner"], match["repo"]


class Settings(BaseModel):
    """Configuration settings for the repo_context command line."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    repository: str = Field(default="", description="GitHub repository as owner/repo.")
    local: Path | None = Field(default=None, description="Read a local directory instead of GitHub.")
    token: str = Field(
        default_factory=lambda: os.environ.get("GITHUB_TOKEN", ""),
        description="GitHub token (defaults to $GITHUB_TOKEN).",
    )
    api_url: str = Field(default=GITHUB_API_URL, description="GitHub API base URL.")
    ref: str = Field(default="", description="Branch, tag or commit to read.")
    output: Path | None = Field(default=None, description="Output file; stdout when unset.")
    log_file: str = Field(default="", description="Log file path.")

    depth_cap: int = Field(default=DEPTH_CAP, ge=0, description="Depth listed eagerly.")
    auto_select_size_limit: int = Field(
        default=AUTO_SELECT_SIZE_LIMIT,
        ge=0,
        description="Files above this many bytes start unchecked.",
    )

    expand: list[str] = Field(default_factory=list, description="Directories to expand.")
    select_all: bool = Field(default=False, description="Select every non-ignored file.")
    deselect_all: bool = Field(default=False, description="Clear the selection.")
    toggle: list[str] = Field(default_factory=list, description="Paths to toggle.")
    toggle_ext: list[str] = Field(default_factory=list, description="Extensions to toggle.")

    tree: bool = Field(default=False, description="Print the selection tree.")
    stats: bool = Field(default=False, description="Print the top extensions.")
    rate_limit: bool = Field(default=False, description="Print the GitHub rate limit.")
