"""Scan session orchestration: option validation, rule resolution, engine call."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence

from .engine import Scanner
from .errors import ConfigError, Outcome, ScanError
from .result import ScanReport, ScanResult
from .rules import Rule
from .rules.filters import filter_by_category, filter_by_name, merge_unique
from .utils import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_MS = 2000


@dataclass(frozen=True)
class ScanOptions:
    """Validated options for one scan invocation."""

    timeout: int = DEFAULT_TIMEOUT_MS
    restrict_categories: FrozenSet[str] = frozenset()
    restrict_rules: FrozenSet[str] = frozenset()
    capture: bool = False
    screenshot_options: Mapping[str, Any] = field(default_factory=dict)
    output: Optional[str] = None
    sort: bool = False


def parse_csv(value: Any, option: str) -> FrozenSet[str]:
    """Turn a raw ``a,b,c`` value into a set of names.

    ``None`` is the malformed sentinel produced when the value could not be
    read, e.g. a list separated by spaces instead of commas.
    """

    if value is None:
        raise ConfigError(
            f"invalid restrict value for {option}: be sure there are no spaces between values",
            option=option,
        )
    if value == "":
        return frozenset()
    items = value.split(",") if isinstance(value, str) else value
    if not isinstance(items, (list, tuple, set, frozenset)):
        raise ConfigError(f"invalid restrict value for {option}: {value!r}", option=option)
    for item in items:
        if not isinstance(item, str) or not item or any(ch.isspace() for ch in item):
            raise ConfigError(
                f"invalid restrict value for {option}: {value!r} "
                "(be sure there are no spaces or empty entries between values)",
                option=option,
            )
    return frozenset(items)


def parse_timeout(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"invalid timeout for --timeout: {value!r}", option="--timeout")
    if isinstance(value, int):
        parsed = value
    elif isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
    else:
        raise ConfigError(f"invalid timeout for --timeout: {value!r}", option="--timeout")
    if parsed < 0:
        raise ConfigError(f"invalid timeout for --timeout: {value!r}", option="--timeout")
    return parsed


def parse_screenshot_options(value: Any) -> Dict[str, str]:
    """Accept a mapping or a list of ``KEY=VALUE`` strings."""

    if not value:
        return {}
    if isinstance(value, Mapping):
        return {str(key): str(item) for key, item in value.items()}
    parsed: Dict[str, str] = {}
    for entry in value:
        key, sep, item = str(entry).partition("=")
        if not sep or not key.strip():
            raise ConfigError(
                f"invalid screenshot option {entry!r}, expected KEY=VALUE",
                option="--screenshot-option",
            )
        parsed[key.strip()] = item.strip()
    return parsed


def validate_options(raw: Mapping[str, Any]) -> Outcome[ScanOptions]:
    """Build :class:`ScanOptions` from raw CLI values without raising.

    Missing keys fall back to defaults; a missing restrict key means "no
    restriction", while an explicit ``None`` is reported as malformed.
    """

    try:
        timeout = parse_timeout(raw.get("timeout", DEFAULT_TIMEOUT_MS))
        categories = parse_csv(raw.get("restrict_categories", ""), "--restrict-categories")
        names = parse_csv(raw.get("restrict_rules", ""), "--restrict-rules")
        screenshot = parse_screenshot_options(raw.get("screenshot_options"))
    except ConfigError as exc:
        return Outcome(error=exc)

    return Outcome(
        value=ScanOptions(
            timeout=timeout,
            restrict_categories=categories,
            restrict_rules=names,
            capture=bool(raw.get("capture", False)),
            screenshot_options=screenshot,
            output=raw.get("output") or None,
            sort=bool(raw.get("sort", False)),
        )
    )


def resolve_rules(catalog: Sequence[Rule], options: ScanOptions) -> List[Rule]:
    """Return the rules a session should scan.

    Name and category restrictions are each applied to the full catalog and
    the matches are unioned, keeping catalog order.
    """

    names, categories = options.restrict_rules, options.restrict_categories
    if not names and not categories:
        return list(catalog)

    unknown = sorted(names - {rule.name for rule in catalog})
    if unknown:
        logger.warning("unknown_restrict_rules", rules=unknown)

    by_name = filter_by_name(catalog, names) if names else []
    by_category = filter_by_category(catalog, categories) if categories else []
    selected = {rule.name for rule in merge_unique(by_name, by_category)}
    effective = [rule for rule in catalog if rule.name in selected]
    if not effective:
        option = "--restrict-rules" if names else "--restrict-categories"
        raise ConfigError("restrict values matched no rules in the catalog", option=option)
    return effective


class ScanSession:
    """Drive one scan of ``username`` against the effective rule set."""

    def __init__(self, scanner: Scanner, catalog: Sequence[Rule]) -> None:
        self._scanner = scanner
        self._catalog = catalog

    def resolve(self, options: ScanOptions) -> List[Rule]:
        return resolve_rules(self._catalog, options)

    async def run(
        self,
        username: str,
        options: ScanOptions,
        rules: Optional[Sequence[Rule]] = None,
    ) -> ScanReport:
        if rules is None:
            rules = self.resolve(options)
        screenshot = dict(options.screenshot_options) if options.capture else None

        logger.info("scan_started", username=username, rules=len(rules), timeout_ms=options.timeout)
        started = time.perf_counter()
        try:
            results = await self._scanner.scan(
                username,
                rules,
                timeout_ms=options.timeout,
                screenshot=screenshot,
            )
        except Exception as exc:
            raise ScanError(f"Scanner failed: {exc}") from exc

        self._check_complete(rules, results)
        report = ScanReport.from_results(results, sort=options.sort)
        summary = report.summary
        logger.info(
            "scan_finished",
            username=username,
            total=summary.total,
            successes=summary.success_count,
            failures=summary.failure_count,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return report

    @staticmethod
    def _check_complete(rules: Sequence[Rule], results: Sequence[ScanResult]) -> None:
        expected = sorted(rule.name for rule in rules)
        received = sorted(result.name for result in results)
        if expected != received:
            missing = sorted(set(expected) - set(received))
            extra = sorted(set(received) - set(expected))
            raise ScanError(
                f"Scanner returned an incomplete result set (missing={missing}, unexpected={extra})"
            )
