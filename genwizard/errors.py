"""
Error kinds of the generator wizard.

- SetupError: working directory or generator could not be prepared
- GeneratorError: the generator failed mid-run
- EvaluationError: a question's dynamic behaviour could not be evaluated
- TransportTimeoutError: the UI did not answer within the response timeout

Setup, generator and transport errors end the run (reported through
WizardEvents). Evaluation errors are returned to the caller and the run
continues. Nothing is retried automatically.
"""

from typing import Optional


class WizardError(Exception):
    """Base class for all genwizard errors."""

    kind = "wizard"


class SetupError(WizardError):
    kind = "setup"


class GeneratorError(WizardError):
    kind = "generator"


class EvaluationError(WizardError):
    """
    Raised by SessionOrchestrator.evaluate_method().

    Attributes:
        question_name: Question the caller targeted
        method_name: Method the caller targeted
        step_name: Step the question was looked up in (None if no step)
    """

    kind = "evaluation"

    def __init__(self, message: str, question_name: str, method_name: str,
                 step_name: Optional[str] = None):
        super().__init__(message)
        self.question_name = question_name
        self.method_name = method_name
        self.step_name = step_name


class TransportTimeoutError(WizardError):
    kind = "transport"


class StaleRunError(WizardError):
    """An answer arrived for a run that has since been superseded."""

    kind = "stale_run"
