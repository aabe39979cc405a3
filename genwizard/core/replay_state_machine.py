"""
Replay State Machine - decides whether a step is replayed or asked live

The underlying generator engine can only move forward. To go back, the
session restarts the engine and feeds it the recorded answers for every
step before the target ("replay"), then hands control back to the user.

States:
    IDLE:
        No replay. Every ask goes to the live UI.
        Entry: session start, or after the ENDING_REPLAY step completes
    REPLAYING:
        Recorded answers are served without UI interaction.
        Entry: start() on back navigation
        Exit: no record at the current position -> ENDING_REPLAY
              live step doesn't match its record -> ENDING_REPLAY (divergence)
    ENDING_REPLAY:
        Exactly one step. Asked live, pre-filled with the partial answers
        captured at back navigation. Exit: finish() -> IDLE

Invariants:
- Recorded answers are only served while the live step matches its record
  (StepRecord.matches: same step name, same ordered question names)
- On divergence the stale records from that position on are discarded
- Prompt lists set while REPLAYING are held and released when replay ends
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from genwizard.contracts import PromptDescriptor
from genwizard.core.history_buffer import HistoryBuffer
from genwizard.utils.question_helpers import question_names, seed_defaults

logger = logging.getLogger(__name__)


class ReplayState(str, Enum):
    """Replay state, string-based for JSON snapshots"""
    IDLE = "idle"
    REPLAYING = "replaying"
    ENDING_REPLAY = "ending_replay"


@dataclass(frozen=True)
class ReplayDecision:
    """
    Outcome of ReplayStateMachine.decide() for one ask.

    Attributes:
        serve: True if answers should be returned without asking the UI
        answers: Recorded answers (only when serve is True)
        reason: 'live', 'recorded', 'caught_up' or 'diverged'
    """
    serve: bool
    reason: str
    answers: Optional[Dict[str, Any]] = None


class ReplayStateMachine:
    """Tracks replay progress across engine restarts"""

    def __init__(self):
        self.state = ReplayState.IDLE
        self.pending_answers: Dict[str, Any] = {}
        self.target_index: Optional[int] = None
        self._held_prompts: Optional[List[PromptDescriptor]] = None

    @property
    def is_replaying(self) -> bool:
        return self.state == ReplayState.REPLAYING

    def start(self, history: HistoryBuffer, target_index: int,
              partial_answers: Optional[Dict[str, Any]] = None) -> None:
        """
        Begin replaying towards target_index.

        Args:
            history: Session history (truncated to target_index here)
            target_index: Step to return to; steps [0, target_index) replay
            partial_answers: Answers typed into the step being left

        Raises:
            ValueError: If target_index is outside [0, len(history)]
        """
        if target_index < 0 or target_index > len(history):
            raise ValueError(
                f"Cannot go back to step {target_index}: "
                f"{len(history)} step(s) recorded"
            )

        history.truncate(target_index)
        self.pending_answers = dict(partial_answers or {})
        self.target_index = target_index
        self._held_prompts = None
        self.state = ReplayState.REPLAYING

        logger.info(
            f"Replay started: target step {target_index}, "
            f"{len(self.pending_answers)} partial answer(s) pending"
        )

    def decide(self, history: HistoryBuffer, position: int, step_name: str,
               questions: List[Dict[str, Any]]) -> ReplayDecision:
        """
        Decide how the ask at position is answered.

        Args:
            history: Session history
            position: 0-based position of the ask in the current run
            step_name: Name of the step being asked
            questions: Questions being asked

        Returns:
            ReplayDecision
        """
        if self.state != ReplayState.REPLAYING:
            return ReplayDecision(serve=False, reason='live')

        record = history.recorded_at(position)
        if record is None:
            logger.info(f"Replay caught up at step {position} ('{step_name}')")
            self.state = ReplayState.ENDING_REPLAY
            return ReplayDecision(serve=False, reason='caught_up')

        if not record.matches(step_name, question_names(questions)):
            logger.warning(
                f"Replay diverged at step {position}: recorded '{record.step_name}' "
                f"{list(record.question_names)}, asked '{step_name}' "
                f"{list(question_names(questions))}"
            )
            history.truncate(position)
            self.state = ReplayState.ENDING_REPLAY
            return ReplayDecision(serve=False, reason='diverged')

        logger.debug(f"Replaying step {position} ('{step_name}')")
        return ReplayDecision(serve=True, reason='recorded', answers=record.answers)

    def seed(self, questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Pre-fill the ENDING_REPLAY step with the pending partial answers."""
        if self.state != ReplayState.ENDING_REPLAY:
            return list(questions)
        return seed_defaults(questions, self.pending_answers)

    def hold_prompts(self, prompts: List[PromptDescriptor]) -> None:
        self._held_prompts = list(prompts)

    def take_held_prompts(self) -> Optional[List[PromptDescriptor]]:
        prompts, self._held_prompts = self._held_prompts, None
        return prompts

    def finish(self) -> None:
        """Complete the ENDING_REPLAY step; no-op in any other state."""
        if self.state != ReplayState.ENDING_REPLAY:
            return
        self.state = ReplayState.IDLE
        self.pending_answers = {}
        self.target_index = None
        logger.info("Replay ended, control returned to user")

    def reset(self) -> None:
        self.state = ReplayState.IDLE
        self.pending_answers = {}
        self.target_index = None
        self._held_prompts = None
