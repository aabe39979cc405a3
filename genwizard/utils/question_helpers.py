"""
Question helpers - pure functions over inquirer-style question dicts.

A question is a plain dict, e.g.
    {'type': 'input', 'name': 'projectName', 'message': 'Project name',
     'default': 'demo', 'validate': <callable>}

Callables (validate, filter, when, choices, ...) can't cross the UI
boundary, so outgoing questions have them replaced by FUNCTION_PLACEHOLDER
and the UI asks for them back by name (SessionOrchestrator.evaluate_method).
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from genwizard.utils.helpers import start_case

FUNCTION_PLACEHOLDER = "__Function"


def get_prompt_name(questions: List[Dict[str, Any]], prompt_count: int) -> str:
    """
    Derive the display name of a step.

    Args:
        questions: Questions of the step
        prompt_count: 1-based position of the step in the current run

    Returns:
        str: Start-cased first question name, or 'Step N' when it has none

    Examples:
        >>> get_prompt_name([{'name': 'projectName'}], 1)
        'Project Name'
        >>> get_prompt_name([{'type': 'input'}], 3)
        'Step 3'
    """
    first_name = questions[0].get('name') if questions else None
    return start_case(first_name) if first_name else f"Step {prompt_count}"


def question_names(questions: List[Dict[str, Any]]) -> Tuple[str, ...]:
    return tuple(q.get('name', '') for q in questions)


def find_question(questions: List[Dict[str, Any]], name: str) -> Optional[Dict[str, Any]]:
    for question in questions:
        if question.get('name') == name:
            return question
    return None


def _function_replacer(value: Any) -> Any:
    if callable(value):
        return FUNCTION_PLACEHOLDER
    return str(value)


def normalize_functions(questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Deep copy of the questions with every callable replaced by a placeholder.
    Other values JSON can't represent (paths, dates, ...) are sent as str().

    Args:
        questions: Questions possibly holding callables

    Returns:
        list: JSON-safe questions
    """
    return json.loads(json.dumps(questions, default=_function_replacer))


def seed_defaults(questions: List[Dict[str, Any]], answers: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Pre-fill questions with previously supplied answers.

    Only questions whose name appears in answers are touched; those are
    shallow-copied with 'default' set, the rest are returned as-is.
    """
    if not answers:
        return list(questions)

    seeded = []
    for question in questions:
        name = question.get('name')
        if name in answers:
            question = {**question, 'default': answers[name]}
        seeded.append(question)
    return seeded
