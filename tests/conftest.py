"""
This file configures pytest.

Run from the repository root:
uv sync --extra test
uv run pytest -q tests
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_ROOT = PROJECT_ROOT / "src"

if str(SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(SRC_ROOT))


class StubOpenSearchClient:
    def __init__(self, responses: list[dict[str, Any] | Exception] | None = None) -> None:
        self._responses = list(responses or [])
        self.bodies: list[list[dict[str, Any]]] = []

    def bulk(self, *, body: list[dict[str, Any]]) -> dict[str, Any]:
        self.bodies.append(body)
        if not self._responses:
            return {"took": 1, "errors": False, "items": []}

        response = self._responses[min(len(self.bodies), len(self._responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def stub_client() -> StubOpenSearchClient:
    return StubOpenSearchClient()


@pytest.fixture()
def stub_client_factory() -> type[StubOpenSearchClient]:
    return StubOpenSearchClient
