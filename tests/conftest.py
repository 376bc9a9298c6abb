from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

import pytest

from social_scanner.result import ScanResult
from social_scanner.rules import Rule, RuleCatalog
from social_scanner.utils import configure_logging

SAMPLE_CATALOG = [
    {"name": "github", "url": "https://github.com/{username}", "category": ["tech"]},
    {"name": "twitter", "url": "https://twitter.com/{username}", "category": ["social"]},
]


class FakeScanner:
    """Scanner double that records calls and replays canned results."""

    def __init__(
        self,
        outcomes: Optional[Dict[str, Dict[str, Any]]] = None,
        exc: Optional[BaseException] = None,
    ) -> None:
        self.outcomes = outcomes or {}
        self.exc = exc
        self.calls: List[Dict[str, Any]] = []

    async def scan(
        self,
        username: str,
        rules: Sequence[Rule],
        *,
        timeout_ms: int,
        screenshot: Optional[Mapping[str, Any]] = None,
    ) -> List[ScanResult]:
        self.calls.append(
            {
                "username": username,
                "rules": [rule.name for rule in rules],
                "timeout_ms": timeout_ms,
                "screenshot": screenshot,
            }
        )
        if self.exc is not None:
            raise self.exc
        results = []
        for rule in reversed(list(rules)):
            outcome = self.outcomes.get(rule.name, {"error": "HTTP 404", "address": None})
            results.append(
                ScanResult(
                    name=rule.name,
                    address=outcome.get("address"),
                    error=outcome.get("error"),
                    category=rule.category,
                )
            )
        return results


class StaticCatalog(RuleCatalog):
    def __init__(self, raw: Any) -> None:
        super().__init__()
        self._raw = raw

    def _load_raw(self) -> Any:
        return self._raw


@pytest.fixture(autouse=True)
def quiet_logging() -> None:
    configure_logging("WARNING")


@pytest.fixture
def sample_catalog() -> StaticCatalog:
    return StaticCatalog(SAMPLE_CATALOG)


@pytest.fixture
def scenario_scanner() -> FakeScanner:
    return FakeScanner(
        {
            "github": {"error": None, "address": "https://github.com/alice"},
            "twitter": {"error": "404", "address": None},
        }
    )
