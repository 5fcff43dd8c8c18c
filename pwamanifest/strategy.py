"""Cache strategy resolution.

Strategies come from several sources applied in order of precedence. Each
source may only classify paths no earlier source has classified, so adding a
new detection source never changes the outcome of the existing ones.
"""

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from fnmatch import fnmatchcase
from types import MappingProxyType

from .models import CacheStrategy

logger = logging.getLogger(__name__)


class StrategyTable:
    """Path to strategy table, mutable until frozen. First assignment wins."""

    def __init__(self) -> None:
        self._strategies: dict[str, CacheStrategy] = {}
        self._sources: dict[str, str] = {}
        self._frozen = False

    def assign(self, path: str, strategy: CacheStrategy, source: str) -> bool:
        """Classify a path unless it is already classified.

        Returns:
            True if the path was assigned, False if an earlier source won.

        Raises:
            RuntimeError: If the table has been frozen.
        """
        if self._frozen:
            raise RuntimeError("Strategy table is frozen")
        if path in self._strategies:
            return False
        self._strategies[path] = strategy
        self._sources[path] = source
        return True

    def __contains__(self, path: object) -> bool:
        return path in self._strategies

    def __len__(self) -> int:
        return len(self._strategies)

    def get(self, path: str) -> CacheStrategy | None:
        return self._strategies.get(path)

    def source_of(self, path: str) -> str | None:
        """Name of the source that classified a path."""
        return self._sources.get(path)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> Mapping[str, CacheStrategy]:
        """Stop accepting assignments and return a read-only view."""
        self._frozen = True
        return MappingProxyType(self._strategies)


# A source receives the table and the root-relative paths of scanned assets.
StrategySource = Callable[[StrategyTable, Sequence[str]], None]


def declared_source(declared: Mapping[str, CacheStrategy]) -> StrategySource:
    """Source for strategies declared in project configuration."""

    def resolve(table: StrategyTable, paths: Sequence[str]) -> None:
        for path, strategy in declared.items():
            table.assign(path, strategy, "declared")

    return resolve


def referenced_source(references: Iterable[str]) -> StrategySource:
    """Source marking entry-document references as CRITICAL."""
    references = list(references)

    def resolve(table: StrategyTable, paths: Sequence[str]) -> None:
        for reference in references:
            if not table.assign(reference, CacheStrategy.CRITICAL, "referenced"):
                logger.debug("Keeping declared strategy for referenced asset %s", reference)

    return resolve


def pattern_source(patterns: Iterable[str]) -> StrategySource:
    """Source marking bootstrap scripts (by file-name pattern) as CRITICAL."""
    patterns = tuple(patterns)

    def resolve(table: StrategyTable, paths: Sequence[str]) -> None:
        for path in paths:
            name = path.rsplit("/", 1)[-1]
            if any(fnmatchcase(name, pattern) for pattern in patterns):
                table.assign(path, CacheStrategy.CRITICAL, "pattern")

    return resolve


def resolve_strategies(paths: Sequence[str], sources: Sequence[StrategySource]) -> Mapping[str, CacheStrategy]:
    """Resolve one strategy per path from sources in precedence order.

    Args:
        paths: Root-relative paths of the scanned assets.
        sources: Strategy sources, highest precedence first.

    Returns:
        Read-only mapping of root-relative path to strategy. Paths without a
        strategy are absent.
    """
    table = StrategyTable()
    for source in sources:
        source(table, paths)
    strategies = table.freeze()
    logger.debug("Resolved strategies for %d paths", len(strategies))
    return strategies
