"""
Copy-trade decision engine.

Turns a SnapshotDiff into TradeIntents:
- added position, not yet mirrored -> OPEN
- removed position, currently mirrored -> CLOSE
- quantity updates are observational only

The MirroredPositions index is the record of what this process has
opened. It is mutated only through record_result(), after execution.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterator, List, Set

from polycopy.monitor.detector import SnapshotDiff
from polycopy.monitor.snapshot import Position

if TYPE_CHECKING:
    from polycopy.trading.executor import ExecutionResult

logger = logging.getLogger(__name__)


class IntentSide(Enum):
    """Mirror the appearance (OPEN) or disappearance (CLOSE) of a position."""

    OPEN = "open"
    CLOSE = "close"

    @property
    def order_side(self) -> str:
        return "BUY" if self is IntentSide.OPEN else "SELL"


@dataclass(frozen=True, slots=True)
class TradeIntent:
    """Instruction to mirror one position change."""
    side: IntentSide
    position: Position

    def __repr__(self) -> str:
        return f"TradeIntent({self.side.value.upper()} {self.position!r})"


class MirroredPositions:
    """Set of position ids this process currently mirrors."""

    def __init__(self):
        self._ids: Set[str] = set()

    def __contains__(self, position_id: object) -> bool:
        return position_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._ids))

    def add(self, position_id: str) -> None:
        self._ids.add(position_id)

    def discard(self, position_id: str) -> None:
        self._ids.discard(position_id)


class CopyDecisionEngine:
    """
    Derives open/close intents and owns the mirrored-positions index.

    Usage:
        engine = CopyDecisionEngine()
        for intent in engine.decide(diff):
            result = await executor.execute(intent)
            engine.record_result(intent, result)
    """

    def __init__(self, mirrored: MirroredPositions = None):
        self.mirrored = mirrored if mirrored is not None else MirroredPositions()

    def decide(self, diff: SnapshotDiff) -> List[TradeIntent]:
        """
        Intents for one diff. Opens first, then closes, each in snapshot order.

        Does not mutate the index.
        """
        if not diff.changed:
            return []

        opens: List[TradeIntent] = []
        seen: Set[str] = set()
        for position in diff.added:
            if position.id in self.mirrored or position.id in seen:
                logger.debug(f"Skipping open for already mirrored position {position.id[:20]}...")
                continue
            seen.add(position.id)
            opens.append(TradeIntent(IntentSide.OPEN, position))

        closes = [
            TradeIntent(IntentSide.CLOSE, position)
            for position in diff.removed
            if position.id in self.mirrored
        ]

        for update in diff.updated:
            logger.debug(f"Quantity change not mirrored: {update.position.id[:20]}... {update.delta:+}")

        if opens or closes:
            logger.info(f"Decided {len(opens)} open(s), {len(closes)} close(s)")
        return opens + closes

    def record_result(self, intent: TradeIntent, result: "ExecutionResult") -> None:
        """Update the index after execution. Failed results change nothing."""
        if not result.success:
            return
        if intent.side is IntentSide.OPEN:
            self.mirrored.add(intent.position.id)
        else:
            self.mirrored.discard(intent.position.id)
