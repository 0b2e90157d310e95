import json
from typing import Any, Callable, Dict, List, Tuple

import pytest
import structlog
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

Record = Dict[str, Any]


def parse_lines(raw: str) -> List[Record]:
    """Every non-empty line must be a complete JSON object."""
    return [json.loads(line) for line in raw.splitlines() if line.strip()]


@pytest.fixture
def read_channels(capsys) -> Callable[[], Tuple[List[Record], List[Record]]]:
    """Returns (stdout records, stderr records) written since the last call."""

    def _read() -> Tuple[List[Record], List[Record]]:
        captured = capsys.readouterr()
        return parse_lines(captured.out), parse_lines(captured.err)

    return _read


@pytest.fixture
def client_for() -> Callable[..., AsyncClient]:
    def _client(app: FastAPI, raise_app_exceptions: bool = True) -> AsyncClient:
        transport = ASGITransport(app=app, raise_app_exceptions=raise_app_exceptions)
        return AsyncClient(transport=transport, base_url="http://test")

    return _client


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
