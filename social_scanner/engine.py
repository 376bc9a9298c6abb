"""Scanner engines that probe sites for a username.

The session only depends on the :class:`Scanner` protocol. :class:`HttpScanner`
is the default engine: a rule matches when its resolved address answers 2xx.
"""

from __future__ import annotations

import asyncio
from typing import Any, List, Mapping, Optional, Protocol, Sequence

import httpx

from .result import ScanResult
from .rules import Rule
from .utils import get_logger

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 10
USER_AGENT = "social-scanner-cli"


class Scanner(Protocol):
    """Protocol implemented by all scanner engines."""

    async def scan(
        self,
        username: str,
        rules: Sequence[Rule],
        *,
        timeout_ms: int,
        screenshot: Optional[Mapping[str, Any]] = None,
    ) -> List[ScanResult]:
        """Return exactly one result per rule, in any order."""


class HttpScanner:
    """Probe every rule address concurrently with httpx."""

    def __init__(
        self,
        concurrency: int = DEFAULT_CONCURRENCY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._concurrency = max(1, concurrency)
        self._transport = transport

    async def scan(
        self,
        username: str,
        rules: Sequence[Rule],
        *,
        timeout_ms: int,
        screenshot: Optional[Mapping[str, Any]] = None,
    ) -> List[ScanResult]:
        if screenshot is not None:
            logger.warning("screenshot_capture_unsupported", engine="http")

        timeout = httpx.Timeout(timeout_ms / 1000) if timeout_ms else httpx.Timeout(None)
        semaphore = asyncio.Semaphore(self._concurrency)

        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=self._transport,
        ) as client:
            tasks = [
                asyncio.ensure_future(self._probe(client, semaphore, rule, username)) for rule in rules
            ]
            try:
                return list(await asyncio.gather(*tasks))
            except Exception:
                for task in tasks:
                    task.cancel()
                raise

    async def _probe(
        self,
        client: httpx.AsyncClient,
        semaphore: asyncio.Semaphore,
        rule: Rule,
        username: str,
    ) -> ScanResult:
        address = rule.resolve(username)
        async with semaphore:
            try:
                response = await client.get(address)
            except httpx.TimeoutException:
                error = "timeout"
            except httpx.InvalidURL as exc:
                error = f"InvalidURL: {exc}"
            except httpx.HTTPError as exc:
                error = f"{type(exc).__name__}: {exc}"
            else:
                if response.is_success:
                    return ScanResult(name=rule.name, address=address, category=rule.category)
                error = f"HTTP {response.status_code}"

        logger.debug("probe_failed", rule=rule.name, address=address, error=error)
        return ScanResult(name=rule.name, address=None, error=error, category=rule.category)
