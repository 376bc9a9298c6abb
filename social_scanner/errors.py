"""Error taxonomy for the social scanner CLI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class SocialScannerError(Exception):
    """Base class for all errors raised by the CLI core."""

    exit_code = 1


class ConfigError(SocialScannerError):
    """A CLI option is malformed or semantically invalid."""

    exit_code = 2

    def __init__(self, message: str, option: Optional[str] = None) -> None:
        super().__init__(message)
        self.option = option


class CatalogError(SocialScannerError):
    """The rule catalog contains malformed data."""

    exit_code = 3


class ScanError(SocialScannerError):
    """The scanner invocation failed as a whole."""

    exit_code = 4


class OutputError(SocialScannerError):
    """Persisting the scan results failed."""


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a value or the error that prevented producing it."""

    value: Optional[T] = None
    error: Optional[SocialScannerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
