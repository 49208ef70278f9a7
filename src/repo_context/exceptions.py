from dataclasses import dataclass


@dataclass(frozen=True)
class RepoContextError(Exception):
    """Base exception for errors in the repo_context package."""


@dataclass(frozen=True)
class ListingError(RepoContextError):
    """Raised when a directory listing cannot be fetched or is malformed."""

    path: str
    reason: str = "The directory listing could not be retrieved."


@dataclass(frozen=True)
class ContentFetchError(RepoContextError):
    """Raised when the content of a file cannot be fetched or decoded."""

    path: str
    reason: str = "The file content could not be retrieved."


@dataclass(frozen=True)
class RateLimitError(RepoContextError):
    """Raised when the remote rate limit status cannot be queried."""

    reason: str


@dataclass(frozen=True)
class InvalidRepositoryError(RepoContextError):
    """Raised when a repository reference is not of the form `owner/repo`."""

    value: str
    message: str = "Repository must be given as 'owner/repo'."
