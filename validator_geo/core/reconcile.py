"""Incremental merge of discovered validators against the persisted dataset.

Each run only spends lookups on validators that are not located yet, up to a
per-run budget. Everything the budget does not cover is written back as a bare
record so the next run can pick it up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence

from validator_geo.models import CandidateEntity, EnrichedRecord, LocationInfo, bare_record, enrich

logger = logging.getLogger(__name__)

Locator = Callable[[str], Optional[LocationInfo]]


@dataclass
class CallBudget:
    """Lookup allowance for one run. `used` counts attempts, not successes."""

    limit: int
    used: int = 0

    @property
    def exhausted(self) -> bool:
        return self.used >= self.limit

    @property
    def remaining(self) -> int:
        return max(self.limit - self.used, 0)

    def consume(self) -> None:
        self.used += 1


@dataclass
class ReconcileResult:
    records: List[EnrichedRecord] = field(default_factory=list)
    reused: int = 0
    located: int = 0
    missed: int = 0
    deferred: int = 0
    calls_made: int = 0


def reconcile(
    candidates: Sequence[CandidateEntity],
    prior: Mapping[str, EnrichedRecord],
    budget: CallBudget,
    *,
    locate: Locator,
    delay_seconds: float = 0.0,
    sleep: Optional[Callable[[float], None]] = None,
) -> ReconcileResult:
    """Produce one record per candidate, in candidate order.

    Prior records that are already located win outright. Otherwise a lookup is
    attempted while the budget allows, pausing `delay_seconds` between
    consecutive attempts. Prior records for nodes no longer among the
    candidates are dropped.
    """
    pause = sleep or time.sleep
    result = ReconcileResult()
    attempted = False
    budget_logged = False

    for candidate in candidates:
        cached = prior.get(candidate.node_identity)
        if cached is not None and cached.is_located:
            result.records.append(cached)
            result.reused += 1
            continue

        if budget.exhausted:
            if not budget_logged:
                logger.info("Rate limit reached, skipping remaining new validators")
                budget_logged = True
            result.records.append(bare_record(candidate))
            result.deferred += 1
            continue

        if attempted and delay_seconds > 0:
            pause(delay_seconds)
        attempted = True

        logger.info("Geolocating %s...", candidate.address)
        budget.consume()
        result.calls_made += 1
        try:
            location = locate(candidate.address)
        except Exception as exc:  # noqa: BLE001
            logger.error("Lookup for %s raised: %s", candidate.node_identity, exc)
            location = None

        record = enrich(candidate, location)
        result.records.append(record)
        if record.is_located:
            result.located += 1
        else:
            result.missed += 1

    return result
