"""Rule catalog for the scanner."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any, FrozenSet, Iterable, List, Optional, Tuple

import yaml

from social_scanner.errors import CatalogError
from social_scanner.utils import get_logger, read_yaml_file, read_yaml_text

logger = get_logger(__name__)

BUNDLED_CATALOG = "catalog.yaml"
USERNAME_PLACEHOLDER = "{username}"


@dataclass(frozen=True)
class Rule:
    """A checkable site: its name, URL template and category tags."""

    name: str
    url: str
    category: FrozenSet[str]

    def resolve(self, username: str) -> str:
        return self.url.replace(USERNAME_PLACEHOLDER, username)


class RuleCatalog:
    """Read-only view over the rules declared in a YAML catalog."""

    def __init__(self, path: Optional[str] = None) -> None:
        self._path = Path(path) if path else None
        self._rules: Optional[Tuple[Rule, ...]] = None

    @property
    def source(self) -> str:
        return str(self._path) if self._path else f"<bundled {BUNDLED_CATALOG}>"

    def get_rules(self) -> Tuple[Rule, ...]:
        """Return the rules in declaration order."""

        if self._rules is None:
            self._rules = parse_rules(self._load_raw())
            logger.info("catalog_loaded", source=self.source, rules=len(self._rules))
        return self._rules

    def _load_raw(self) -> Any:
        try:
            if self._path is None:
                text = resources.files(__package__).joinpath(BUNDLED_CATALOG).read_text(encoding="utf-8")
                return read_yaml_text(text)
            if not self._path.exists():
                raise CatalogError(f"Catalog file not found: {self._path}")
            return read_yaml_file(self._path)
        except yaml.YAMLError as exc:
            raise CatalogError(f"Catalog {self.source} is not valid YAML: {exc}") from exc
        except OSError as exc:
            raise CatalogError(f"Cannot read catalog {self.source}: {exc}") from exc


def parse_rules(raw: Any) -> Tuple[Rule, ...]:
    """Build rules from parsed YAML, failing on the first malformed entry."""

    if isinstance(raw, dict):
        raw = raw.get("rules")
    if not isinstance(raw, list):
        raise CatalogError("Catalog must be a list of rules")

    rules: List[Rule] = []
    seen: set[str] = set()
    for index, item in enumerate(raw):
        rule = _parse_rule(index, item)
        if rule.name in seen:
            raise CatalogError(f"Duplicate rule name at index {index}: {rule.name!r}")
        seen.add(rule.name)
        rules.append(rule)
    return tuple(rules)


def _parse_rule(index: int, item: Any) -> Rule:
    if not isinstance(item, dict):
        raise CatalogError(f"Rule at index {index} is not a mapping")
    for key in ("name", "url", "category"):
        if key not in item or item[key] in (None, ""):
            raise CatalogError(f"Rule at index {index} is missing {key!r}")

    name, url = item["name"], item["url"]
    if not isinstance(name, str) or not isinstance(url, str):
        raise CatalogError(f"Rule at index {index} has a non-string name or url")

    category = _parse_category(index, item["category"])
    return Rule(name=name, url=url, category=category)


def _parse_category(index: int, value: Any) -> FrozenSet[str]:
    tags: Iterable[Any] = [value] if isinstance(value, str) else value
    if not isinstance(tags, (list, tuple)) or not tags:
        raise CatalogError(f"Rule at index {index} has an empty or invalid category")
    if not all(isinstance(tag, str) and tag for tag in tags):
        raise CatalogError(f"Rule at index {index} has a non-string category tag")
    return frozenset(tags)


__all__ = ["Rule", "RuleCatalog", "parse_rules"]
