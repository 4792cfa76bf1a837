"""Aggregation pipelines as ordered, named stages.

A pipeline is a tuple of Stage objects applied left to right; each stage
takes the rows produced by the previous one.
"""

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
import logging
from typing import Any

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class Stage:
    """One pipeline step (e.g. "lookup", "match", "sort")."""

    name: str
    apply: Callable[[list[Any]], list[Any]]

    def __call__(self, rows: list[Any]) -> list[Any]:
        return self.apply(rows)


def run_pipeline(rows: Iterable[Any], stages: Sequence[Stage]) -> list[Any]:
    """Run `rows` through `stages` in order."""
    current = list(rows)
    for stage in stages:
        current = stage(current)
        logger.debug(f"pipeline stage {stage.name}: {len(current)} rows")
    return current


def limit(n: int) -> Stage:
    """Keep the first `n` rows."""
    return Stage("limit", lambda rows: rows[:n])
