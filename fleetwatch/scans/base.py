"""Scan job base class — batched, fault-isolated iteration over an entity population."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from fleetwatch.core.config import ScanConfig
from fleetwatch.core.exceptions import ScanError
from fleetwatch.core.types import ScanReport

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Per-entity check: returns the number of alerts it raised.
EntityCheck = Callable[[T], Awaitable[int]]


class ScanJob(abc.ABC):
    """A periodic routine scanning one entity population.

    Subclasses implement :meth:`run`; most delegate the iteration to
    :meth:`scan_batched`, which processes entities in fixed-size batches
    (checks inside a batch run concurrently) and pauses between batches.
    A failing entity check is logged and counted, never propagated.
    """

    name: str = "scan"

    def __init__(self, config: ScanConfig | None = None) -> None:
        self._config = config or ScanConfig()

    @abc.abstractmethod
    async def run(self) -> ScanReport:
        """Scan the population once."""

    async def scan_batched(
        self,
        entities: Sequence[T],
        check: EntityCheck[T],
        entity_id: Callable[[T], str],
    ) -> ScanReport:
        report = ScanReport(job=self.name)
        batch_size = max(1, self._config.batch_size)

        for start in range(0, len(entities), batch_size):
            batch = entities[start : start + batch_size]
            results = await asyncio.gather(
                *(check(entity) for entity in batch),
                return_exceptions=True,
            )
            for entity, result in zip(batch, results, strict=True):
                report.scanned += 1
                if isinstance(result, BaseException):
                    if isinstance(result, asyncio.CancelledError):
                        raise result
                    report.failures += 1
                    err = ScanError(self.name, entity_id(entity), result)
                    logger.error(
                        "scan_entity_failed",
                        job=self.name,
                        entity_id=err.entity_id,
                        error=repr(result),
                        exc_info=result,
                    )
                else:
                    report.alerts_raised += result

            if start + batch_size < len(entities):
                await asyncio.sleep(self._config.batch_pause_secs)

        return report
