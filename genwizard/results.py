"""
Result types returned by WizardSession.handle()

These are the ONLY return types from the command handler.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RunStarted:
    """
    A generator run was started (or restarted for back navigation).

    Returned by: SelectGenerator, GoBack

    Attributes:
        run_id: Supervisor run identifier (monotonic per session)
        generator_name: Generator being run
        restarted: True when the run replays recorded history
        replay_steps: Number of recorded steps that will be replayed
    """
    run_id: int
    generator_name: str
    restarted: bool = False
    replay_steps: int = 0


@dataclass(frozen=True)
class EvaluationResult:
    """
    Value returned by a question's dynamic behaviour.

    Returned by: EvaluateMethod
    """
    value: Any


@dataclass(frozen=True)
class EvaluationFailure:
    """
    Dynamic behaviour could not be evaluated.

    Returned by: EvaluateMethod. The run is NOT terminated.

    Attributes:
        reason: Human-readable, already logged description
        question_name: Question that was targeted
        method_name: Method that was targeted
    """
    reason: str
    question_name: str
    method_name: str


@dataclass(frozen=True)
class IllegalCommand:
    """
    Command rejected by the session (invalid lifecycle transition).

    Examples:
    - GoBack before any generator was selected
    - GoBack to an index beyond the recorded history
    - SelectGenerator with an empty name

    Attributes:
        reason: Human-readable explanation
        command_type: Name of rejected command type
    """
    reason: str
    command_type: str
