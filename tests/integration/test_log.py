# [TESTER] v1

from __future__ import annotations

import logging
from typing import Iterator

import pytest

from arbordex.integration.api_server import _parse_args
from arbordex.integration.log import setup_logging


@pytest.fixture
def root_logger() -> Iterator[logging.Logger]:
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield root
    root.setLevel(level)
    root.handlers[:] = handlers


def test_setup_logging_accepts_level_names(root_logger: logging.Logger) -> None:
    setup_logging("debug")
    assert root_logger.level == logging.DEBUG
    setup_logging(logging.WARNING)
    assert root_logger.level == logging.WARNING


def test_setup_logging_unknown_name_falls_back_to_info(root_logger: logging.Logger) -> None:
    setup_logging("chatty")
    assert root_logger.level == logging.INFO


def test_setup_logging_installs_one_handler(root_logger: logging.Logger) -> None:
    root_logger.handlers[:] = []
    setup_logging()
    setup_logging()
    assert len(root_logger.handlers) == 1


def test_cli_flags() -> None:
    args = _parse_args(["--port", "0", "--host", "localhost", "--config", "cfg.yaml"])
    assert args.port == 0
    assert args.host == "localhost"
    assert args.config == "cfg.yaml"
    assert _parse_args([]).port is None
