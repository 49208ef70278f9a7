from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

import pytest

from repo_context import logging as repo_logging

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.unit
def test_setup_logging_with_file_replaces_stderr(tmp_path: Path) -> None:
    package_logger = logging.getLogger("repo_context")
    before = list(package_logger.handlers)
    log_file = tmp_path / "run.log"

    try:
        log = repo_logging.setup_logging(log_file)
        log.info("written to file", path="a.py")

        assert repo_logging._STDERR_HANDLER not in package_logger.handlers  # noqa: SLF001
        (record,) = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert record["event"] == "written to file"
        assert record["path"] == "a.py"
        assert record["level"] == "info"
    finally:
        for handler in list(package_logger.handlers):
            if handler not in before:
                package_logger.removeHandler(handler)
                handler.close()
        for handler in before:
            package_logger.addHandler(handler)
