"""
Semantic contracts for the generator wizard.

This module defines immutable data structures that serve as contracts
between the session orchestrator, the replay state machine and the UI
transport. These are NOT validators - they define shape and semantics.

Design principles:
- Frozen dataclasses (immutable after creation)
- Deep copied on construction (no shared references with the engine)
- No dependencies on other genwizard modules

Contents:
- StepRecord: One completed question/answer exchange of a run
- PromptDescriptor: One entry of the step list displayed by the UI
- GeneratorChoice: One selectable generator

Usage:
    from genwizard.contracts import StepRecord, PromptDescriptor
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class StepRecord:
    """
    Immutable record of one step: the questions shown plus the answers given.

    The replay key of a record is (position in run, step_name). The
    position is implicit - it is the record's index in the HistoryBuffer.

    Attributes:
        step_name: Display name of the step, derived from the first
            question's name (see question_helpers.get_prompt_name)
        question_names: Ordered names of the questions in the step.
            Used by the replay matching rule.
        questions: Question dicts as asked (callables preserved, shallow
            copied so later mutation by the engine cannot leak in)
        answers: Answers returned for the step, keyed by question name

    Examples:
        >>> record = StepRecord.create(
        ...     step_name='Project Name',
        ...     questions=[{'name': 'projectName', 'type': 'input'}],
        ...     answers={'projectName': 'demo'}
        ... )
        >>> record.question_names
        ('projectName',)
        >>> record.answers
        {'projectName': 'demo'}
    """
    step_name: str
    question_names: Tuple[str, ...]
    questions: Tuple[Dict[str, Any], ...] = field(compare=False, repr=False)
    _answers: Dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def create(step_name: str, questions: List[Dict[str, Any]],
               answers: Optional[Dict[str, Any]]) -> "StepRecord":
        """
        Build a sealed record.

        Args:
            step_name: Step display name
            questions: Questions asked for this step
            answers: Answers given (None is treated as no answers)

        Returns:
            StepRecord with copied questions and deep-copied answers
        """
        return StepRecord(
            step_name=step_name,
            question_names=tuple(q.get('name', '') for q in questions),
            questions=tuple(dict(q) for q in questions),
            _answers=copy.deepcopy(dict(answers or {}))
        )

    @property
    def answers(self) -> Dict[str, Any]:
        """Deep copy of the recorded answers."""
        return copy.deepcopy(self._answers)

    def matches(self, step_name: str, question_names: Tuple[str, ...]) -> bool:
        """
        Replay matching rule: same step name and same ordered question names.

        Args:
            step_name: Name of the step being asked live
            question_names: Ordered question names of the live step

        Returns:
            True if the recorded answers may be served for the live step
        """
        return self.step_name == step_name and self.question_names == tuple(question_names)


@dataclass(frozen=True)
class PromptDescriptor:
    """
    One entry of the prompt list shown by the UI (left-hand step list).

    Attributes:
        name: Step display name
        description: Optional longer description
        questions: Question placeholders (usually empty until the step is asked)
    """
    name: str = ""
    description: str = ""
    questions: Tuple[Dict[str, Any], ...] = ()

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "PromptDescriptor":
        """Normalize a loosely-shaped prompt dict supplied by a generator."""
        return PromptDescriptor(
            name=data.get('name') or "",
            description=data.get('description') or "",
            questions=tuple(data.get('questions') or ())
        )

    def to_json(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'questions': [dict(q) for q in self.questions]
        }


@dataclass(frozen=True)
class GeneratorChoice:
    """
    Selectable generator, shown in the generator selection step.

    Attributes:
        name: Registry name (namespace is '<name>:app')
        pretty_name: Display name
        message: Short description
    """
    name: str
    pretty_name: str
    message: str = ""

    def to_json(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'prettyName': self.pretty_name,
            'message': self.message
        }
