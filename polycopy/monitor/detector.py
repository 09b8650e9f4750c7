"""
Change detection between two account snapshots.

detect_changes() is a pure function of (previous, current).
ChangeDetector owns the previous snapshot for exactly one generation.

Materiality thresholds:
- Quantity: |new - old| > max(1, old * 1%)
- Aggregate value: |new - old| / max(old, 0.01) > 1%
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

from polycopy.monitor.snapshot import AccountSnapshot, Position

logger = logging.getLogger(__name__)

QUANTITY_ABSOLUTE_FLOOR = Decimal("1")
QUANTITY_RELATIVE_THRESHOLD = Decimal("0.01")
VALUE_RELATIVE_THRESHOLD = Decimal("0.01")
VALUE_DENOMINATOR_FLOOR = Decimal("0.01")


class ChangeReason(Enum):
    """First criterion that marked a diff as changed, in evaluation order."""

    BOOTSTRAP = "bootstrap"
    COUNT_CHANGED = "count_changed"
    POSITION_ADDED = "position_added"
    QUANTITY_CHANGED = "quantity_changed"
    POSITION_REMOVED = "position_removed"
    VALUE_DRIFT = "value_drift"


@dataclass(frozen=True, slots=True)
class PositionUpdate:
    """A material quantity change on a position present in both snapshots."""
    position: Position
    old_quantity: Decimal
    new_quantity: Decimal

    @property
    def delta(self) -> Decimal:
        return self.new_quantity - self.old_quantity


@dataclass(frozen=True, slots=True)
class SnapshotDiff:
    """
    Classified delta between two snapshots.

    All lists are always fully populated, even once changed is True.
    """
    changed: bool
    added: List[Position] = field(default_factory=list)
    updated: List[PositionUpdate] = field(default_factory=list)
    removed: List[Position] = field(default_factory=list)
    reason: Optional[ChangeReason] = None

    def __repr__(self) -> str:
        if not self.changed:
            return "SnapshotDiff(unchanged)"
        return (
            f"SnapshotDiff({self.reason.value}: +{len(self.added)} "
            f"~{len(self.updated)} -{len(self.removed)})"
        )


def is_material_quantity_change(old_quantity: Decimal, new_quantity: Decimal) -> bool:
    threshold = max(QUANTITY_ABSOLUTE_FLOOR, old_quantity * QUANTITY_RELATIVE_THRESHOLD)
    return abs(new_quantity - old_quantity) > threshold


def is_material_value_change(old_value: Decimal, new_value: Decimal) -> bool:
    denominator = max(old_value, VALUE_DENOMINATOR_FLOOR)
    return abs(new_value - old_value) / denominator > VALUE_RELATIVE_THRESHOLD


def detect_changes(
    previous: Optional[AccountSnapshot],
    current: AccountSnapshot,
) -> SnapshotDiff:
    """
    Classify the delta between previous and current.

    Evaluation order for the changed verdict:
    count mismatch -> additions -> quantity deltas -> removals -> value drift.
    No short-circuit: every list is computed.

    Args:
        previous: Last committed snapshot (None on first poll)
        current: Freshly fetched snapshot

    Returns:
        SnapshotDiff
    """
    if previous is None:
        return SnapshotDiff(
            changed=True,
            added=current.open_positions,
            reason=ChangeReason.BOOTSTRAP,
        )

    reasons: List[ChangeReason] = []

    if len(current) != len(previous):
        reasons.append(ChangeReason.COUNT_CHANGED)

    added: List[Position] = []
    updated: List[PositionUpdate] = []
    for position_id, position in current.positions.items():
        old = previous.get(position_id)
        if old is None:
            added.append(position)
            continue
        if is_material_quantity_change(old.quantity, position.quantity):
            updated.append(PositionUpdate(position, old.quantity, position.quantity))

    removed: List[Position] = [
        position
        for position_id, position in previous.positions.items()
        if position_id not in current
    ]

    if added:
        reasons.append(ChangeReason.POSITION_ADDED)
    if updated:
        reasons.append(ChangeReason.QUANTITY_CHANGED)
    if removed:
        reasons.append(ChangeReason.POSITION_REMOVED)
    if is_material_value_change(previous.total_value, current.total_value):
        reasons.append(ChangeReason.VALUE_DRIFT)

    return SnapshotDiff(
        changed=bool(reasons),
        added=added,
        updated=updated,
        removed=removed,
        reason=reasons[0] if reasons else None,
    )


class ChangeDetector:
    """
    Holds the last committed snapshot of one account.

    The previous snapshot is replaced only when a poll is materially
    different, so sub-threshold drift accumulates against the last
    committed state.
    """

    def __init__(self, previous: Optional[AccountSnapshot] = None):
        self._previous = previous

    @property
    def previous(self) -> Optional[AccountSnapshot]:
        return self._previous

    def observe(self, current: AccountSnapshot) -> SnapshotDiff:
        """Diff current against the committed snapshot and commit on change."""
        diff = detect_changes(self._previous, current)

        if diff.changed:
            self._log_diff(diff, current)
            self._previous = current
        else:
            logger.debug(f"No material change ({len(current)} positions)")

        return diff

    def reset(self) -> None:
        """Forget the committed snapshot; the next poll is a bootstrap."""
        self._previous = None

    def _log_diff(self, diff: SnapshotDiff, current: AccountSnapshot) -> None:
        if diff.reason is ChangeReason.BOOTSTRAP:
            logger.info(f"Initial snapshot: {len(current)} positions, value ${current.total_value:.2f}")
            return

        for position in diff.added:
            logger.info(
                f"NEW POSITION: {position.outcome} {position.quantity} @ ${position.price} "
                f"({position.market.question[:50]})"
            )
        for update in diff.updated:
            logger.info(
                f"POSITION UPDATED: {update.position.outcome} {update.old_quantity} -> "
                f"{update.new_quantity} ({update.delta:+}) ({update.position.market.question[:50]})"
            )
        for position in diff.removed:
            logger.info(
                f"POSITION CLOSED: {position.outcome} {position.quantity} @ ${position.price} "
                f"(value ${position.value:.2f}) ({position.market.question[:50]})"
            )
        if diff.reason is ChangeReason.VALUE_DRIFT:
            previous_value = self._previous.total_value if self._previous else Decimal("0")
            logger.info(f"Total value changed: ${previous_value:.2f} -> ${current.total_value:.2f}")
