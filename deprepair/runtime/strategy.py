"""Bulk-then-per-item retry strategy for expensive, verifiable batch edits.

The strategy only owns control flow. The ``apply_batch`` and ``apply_item``
callables are complete transactions: they either succeed (including their own
verification) or roll back and raise. ``verify`` is the final re-check run
once every item has been attempted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar

from deprepair.errors import RepairError

logger = logging.getLogger("deprepair.runtime.strategy")

T = TypeVar("T")


class Tier(Enum):
    """Which level of the strategy produced the outcome."""

    BULK = "bulk"
    PER_ITEM = "per-item"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


def describe_failure(exc: BaseException) -> str:
    """Diagnostic text for a failed attempt."""
    if isinstance(exc, RepairError):
        return exc.diagnostics
    return f"{type(exc).__name__}: {exc}"


@dataclass
class TierOutcome(Generic[T]):
    """Result of running the strategy over a batch of items.

    Attributes:
        tier: Tier that completed the batch.
        succeeded: Items applied, in attempt order.
        failed: Item -> diagnostic for items whose attempt was rolled back.
        batch_error: Diagnostic of the failed bulk attempt, if any.
        final_ok: Result of the final re-check (None if not run).
        final_diagnostic: Diagnostic of a failed final re-check.
    """

    tier: Tier = Tier.NONE
    succeeded: List[T] = field(default_factory=list)
    failed: Dict[T, str] = field(default_factory=dict)
    batch_error: Optional[str] = None
    final_ok: Optional[bool] = None
    final_diagnostic: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.tier is not Tier.NONE


class TwoTierStrategy(Generic[T]):
    """Try the whole batch at once, fall back to one transaction per item.

    Args:
        apply_batch: Applies every item in one transaction.
        apply_item: Applies a single item in its own transaction.
        verify: Final re-check after the batch settles.
        use_batch: Whether to attempt the bulk tier.
        use_items: Whether to fall back to the per-item tier.
    """

    def __init__(
        self,
        apply_batch: Callable[[Sequence[T]], Any],
        apply_item: Callable[[T], Any],
        verify: Callable[[], Any],
        use_batch: bool = True,
        use_items: bool = True,
    ) -> None:
        if not use_batch and not use_items:
            raise ValueError("At least one tier must be enabled")
        self.apply_batch = apply_batch
        self.apply_item = apply_item
        self.verify = verify
        self.use_batch = use_batch
        self.use_items = use_items

    def run(self, items: Sequence[T]) -> TierOutcome[T]:
        outcome: TierOutcome[T] = TierOutcome()
        if not items:
            return outcome

        if self.use_batch:
            logger.info("Trying all %d at once.", len(items))
            try:
                self.apply_batch(items)
            except RepairError as exc:
                outcome.batch_error = describe_failure(exc)
                logger.info("Failed - %s.", exc)
            else:
                logger.info("Success.")
                outcome.tier = Tier.BULK
                outcome.succeeded = list(items)

        if outcome.tier is Tier.NONE:
            if self.use_items:
                self._run_items(items, outcome)
            else:
                for item in items:
                    outcome.failed[item] = outcome.batch_error or "bulk attempt failed"
                outcome.tier = Tier.BULK

        self._final_check(outcome)
        return outcome

    def _run_items(self, items: Sequence[T], outcome: TierOutcome[T]) -> None:
        logger.info("Trying %d one by one.", len(items))
        for item in items:
            try:
                self.apply_item(item)
            except RepairError as exc:
                logger.info("Failed - %s.", exc)
                outcome.failed[item] = describe_failure(exc)
            else:
                logger.info("Success.")
                outcome.succeeded.append(item)
        outcome.tier = Tier.PER_ITEM

    def _final_check(self, outcome: TierOutcome[T]) -> None:
        logger.info("Double-checking.")
        try:
            self.verify()
        except RepairError as exc:
            logger.warning("Final verification failed - %s.", exc)
            outcome.final_ok = False
            outcome.final_diagnostic = describe_failure(exc)
        else:
            outcome.final_ok = True


__all__ = ["Tier", "TierOutcome", "TwoTierStrategy", "describe_failure"]
