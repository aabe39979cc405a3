"""
Command types for WizardSession control flow.

Commands are the public interface to WizardSession.handle().
Answers to an individual step are NOT commands - they travel back through
the UI transport as the response to a 'showPrompt' request.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class SelectGenerator:
    """
    Select a generator and run it from scratch.

    Starts a brand-new logical session: history and replay state are cleared.
    Returns: RunStarted, or IllegalCommand for an empty name.
    """
    generator_name: str


@dataclass(frozen=True)
class GoBack:
    """
    Return to an earlier step of the current run.

    Attributes:
        target_index: 0-based index of the step to return to. Steps
            [0, target_index) are replayed; None means "previous step".
        partial_answers: Answers already typed into the step being left.
            Pre-filled (by question name) into the first live step.

    Returns: RunStarted (restarted=True), or IllegalCommand.
    """
    target_index: Optional[int] = None
    partial_answers: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class EvaluateMethod:
    """
    Invoke a question's dynamic behaviour (validate, filter, choices, ...).

    Attributes:
        question_name: Name of a question in the current step
        method_name: Attribute of the question holding the callable
        params: Positional arguments for the call

    Returns: EvaluationResult or EvaluationFailure.
    """
    question_name: str
    method_name: str
    params: Tuple[Any, ...] = ()


# Command union type for type hints
Command = SelectGenerator | GoBack | EvaluateMethod
