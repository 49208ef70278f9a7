from __future__ import annotations

import re

IGNORE_PATTERNS: tuple[str, ...] = (
    # Binary and media files
    r"\.(png|jpe?g|gif|webp|svg|ico|bmp|tiff|pdf)$",
    r"\.(mp4|mov|avi|mkv|webm|flv|wmv)$",
    r"\.(mp3|wav|flac|aac|ogg|m4a)$",
    r"\.(zip|tar|gz|rar|7z|bz2|xz)$",
    r"\.(exe|dll|so|dylib|app|dmg|msi)$",
    r"\.(doc|docx|xls|xlsx|ppt|pptx)$",
    # Lock files and transient files
    r"(package-lock\.json|yarn\.lock|pnpm-lock\.yaml|bun\.lockb?|Cargo\.lock|Pipfile\.lock|poetry\.lock|composer\.lock)$",
    r"\.(log|tmp|temp|pid|cache|swp|swo|orig|rej)$",
    r"~$",
    # Build, cache and dependency directories
    r"(^|/)(\.next|\.nuxt|dist|build|out|target|coverage|\.coverage)(/|$)",
    r"(^|/)(node_modules|vendor|venv|\.venv|__pycache__|\.pytest_cache)(/|$)",
    # Editor, VCS and OS metadata
    r"(^|/)(\.vscode|\.idea|\.git|\.svn|\.hg)(/|$)",
    r"(^|/|\.)(DS_Store|Thumbs\.db)$",
    # Minified assets and source maps
    r"\.min\.(js|css)$",
    r"\.map$",
    # Local environment overrides (.env.example is kept)
    r"(^|/)\.env(\.[^/]+)?\.local$",
)

IGNORE_REGEX = re.compile("|".join(IGNORE_PATTERNS), re.IGNORECASE)


def classify(path: str, name: str) -> bool:
    """Tell whether a repository entry should be ignored for context purposes.

    Ignored entries stay visible in the tree but can never be selected.
    Both the full path and the bare name are matched, so a pattern anchored
    on a path segment also catches the directory entry itself.

    Args:
        path (str): full path of the entry from the repository root
        name (str): leaf segment of the path

    Returns:
        bool: True if any ignore pattern matches
    """
    return bool(IGNORE_REGEX.search(path) or IGNORE_REGEX.search(name))
