"""
History Buffer - recorded steps of the in-progress logical session

Responsibilities:
- Hold completed StepRecords in the order they were completed
- Truncate to a prefix when the user returns to an earlier step
- Clear on fresh generator selection (never on back navigation)

Invariant:
- len(buffer) == number of steps completed in the LOGICAL session,
  no matter how many engine runs it took to get there

CRITICAL: Position vs prompt count
- Positions are 0-indexed: records[0] is the first step of a run
- Prompt counts are 1-indexed: the first ask of a run has prompt_count=1
    position = prompt_count - 1
"""

import logging
from typing import Iterator, List, Optional

from genwizard.contracts import StepRecord

logger = logging.getLogger(__name__)


class HistoryBuffer:
    """Ordered, truncatable list of StepRecords"""

    def __init__(self):
        self._records: List[StepRecord] = []

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[StepRecord]:
        return iter(list(self._records))

    def append(self, record: StepRecord) -> None:
        """Add a completed step at the end."""
        self._records.append(record)

    def replace_at(self, position: int, record: StepRecord) -> None:
        """
        Overwrite the record at position (or append when position == len).

        Used when a recorded step is served during replay: the entry is
        rewritten with identical content, keeping the operation idempotent.

        Raises:
            ValueError: If position would leave a gap
        """
        if position < 0 or position > len(self._records):
            raise ValueError(f"Position {position} is outside history of length {len(self._records)}")
        if position == len(self._records):
            self._records.append(record)
        else:
            self._records[position] = record

    def truncate(self, index: int) -> None:
        """
        Keep records [0, index), discard the rest.

        Raises:
            ValueError: If index is negative
        """
        if index < 0:
            raise ValueError(f"Cannot truncate history to negative index {index}")
        dropped = len(self._records) - index
        del self._records[index:]
        if dropped > 0:
            logger.debug(f"History truncated to {index} step(s), {dropped} dropped")

    def clear(self) -> None:
        self._records.clear()

    def recorded_at(self, position: int) -> Optional[StepRecord]:
        """
        Record at position, or None when out of range.

        None always ends a replay (see ReplayStateMachine.decide).
        """
        if 0 <= position < len(self._records):
            return self._records[position]
        return None

    def step_names(self) -> List[str]:
        return [record.step_name for record in self._records]
