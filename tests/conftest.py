"""Shared pytest fixtures for the jdmtranslate test suite."""

from __future__ import annotations

import sys
from typing import Iterator

import pytest
from loguru import logger


@pytest.fixture(autouse=True)
def _reset_loguru_handlers() -> Iterator[None]:
    """Keep CLI-installed log sinks from leaking into later tests."""

    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
