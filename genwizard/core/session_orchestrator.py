"""
Session Orchestrator - answers the generator's prompts, live or from replay

Responsibilities:
- Intercept every ask() from the running generator
- Count prompts per run and derive the replay key (position, step name)
- Serve recorded answers while replaying, otherwise ask the live UI
- Record every answered step in the HistoryBuffer
- Start replay on back navigation
- Evaluate question callables on behalf of the UI

Design principles:
- Owns HistoryBuffer and ReplayStateMachine for one logical session
- Knows nothing about how runs are started (RunSupervisor does that)
- One ask in flight at a time (the generator awaits each prompt)
- Answers for a superseded run are never recorded
"""

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from genwizard.contracts import PromptDescriptor, StepRecord
from genwizard.core.history_buffer import HistoryBuffer
from genwizard.core.replay_state_machine import ReplayState, ReplayStateMachine
from genwizard.errors import EvaluationError, StaleRunError
from genwizard.utils.helpers import get_error_info
from genwizard.utils.question_helpers import find_question, get_prompt_name, normalize_functions

logger = logging.getLogger(__name__)


class SessionOrchestrator:
    """Adapter between the generator engine and the UI transport"""

    def __init__(self, rpc, history: Optional[HistoryBuffer] = None,
                 replay: Optional[ReplayStateMachine] = None):
        """
        Args:
            rpc: Transport with `async invoke(method, params)` and
                `notify(method, params)`
            history: History buffer (new empty buffer if None)
            replay: Replay state machine (new idle machine if None)
        """
        self.rpc = rpc
        self.history = history if history is not None else HistoryBuffer()
        self.replay = replay if replay is not None else ReplayStateMachine()

        self.prompt_count = 0
        self.run_id = 0
        self.generator = None
        self.current_questions: List[Dict[str, Any]] = []
        self.current_step_name: Optional[str] = None
        self._custom_handlers: Dict[str, Dict[str, Callable]] = {}

    # ========================
    # Run lifecycle
    # ========================

    def begin_run(self, generator, run_id: int) -> None:
        """Attach a freshly started run. History and replay state persist."""
        self.generator = generator
        self.run_id = run_id
        self.prompt_count = 0
        self.current_questions = []
        self.current_step_name = None

    def end_run(self) -> None:
        """
        The generator finished. If it did so while replay was still in
        progress (fewer steps than recorded), drop out of replay and forget
        the recorded steps this run never reached.
        """
        if self.replay.state != ReplayState.IDLE:
            logger.warning(f"Run ended during replay ({self.replay.state.value}), replay abandoned")
            self.history.truncate(self.prompt_count)
            held = self.replay.take_held_prompts()
            self.replay.reset()
            if held:
                self._send_prompt_list(held)

    def reset(self) -> None:
        """Fresh generator selection: forget history and any replay."""
        self.history.clear()
        self.replay.reset()
        self.prompt_count = 0
        self.generator = None
        self.current_questions = []
        self.current_step_name = None

    # ========================
    # Asking
    # ========================

    async def ask(self, questions: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        Answer one prompt of the running generator.

        Args:
            questions: Questions of the step

        Returns:
            dict: Answers keyed by question name

        Raises:
            TransportTimeoutError: If the UI doesn't answer in time
            StaleRunError: If the run was superseded while waiting
        """
        questions = list(questions or [])
        if not questions:
            return {}

        run_id = self.run_id
        self.prompt_count += 1
        position = self.prompt_count - 1
        step_name = get_prompt_name(questions, self.prompt_count)

        decision = self.replay.decide(self.history, position, step_name, questions)
        if decision.serve:
            self.history.replace_at(position, StepRecord.create(step_name, questions, decision.answers))
            return decision.answers

        if self.replay.state == ReplayState.ENDING_REPLAY:
            questions = self.replay.seed(questions)
            held = self.replay.take_held_prompts()
            if held:
                self._send_prompt_list(held)

        self.current_questions = questions
        self.current_step_name = step_name
        outgoing = normalize_functions(self._with_custom_handlers(questions))

        answers = await self.rpc.invoke('showPrompt', [outgoing, step_name])

        if run_id != self.run_id:
            raise StaleRunError(f"Answers for '{step_name}' arrived after run {run_id} was superseded")

        answers = dict(answers or {})
        self.history.append(StepRecord.create(step_name, questions, answers))
        self.replay.finish()
        return answers

    def go_back(self, target_index: Optional[int] = None,
                partial_answers: Optional[Dict[str, Any]] = None) -> int:
        """
        Start replay towards an earlier step.

        The caller restarts the run afterwards (RunSupervisor.restart).

        Args:
            target_index: Step to return to; None means the previous step
            partial_answers: Answers typed into the step being left

        Returns:
            int: Number of recorded steps that will be replayed

        Raises:
            ValueError: If target_index is outside the recorded history
        """
        if target_index is None:
            target_index = max(len(self.history) - 1, 0)

        self.replay.start(self.history, target_index, partial_answers)
        self.current_questions = []
        self.current_step_name = None
        return target_index

    # ========================
    # Prompt list
    # ========================

    def set_prompt_list(self, prompts: List[Dict[str, Any]]) -> None:
        """
        Publish the generator's step list. Held back while replaying.
        """
        descriptors = [PromptDescriptor.from_dict(p) for p in prompts]
        if self.replay.is_replaying:
            self.replay.hold_prompts(descriptors)
        else:
            self._send_prompt_list(descriptors)

    def _send_prompt_list(self, descriptors: List[PromptDescriptor]) -> None:
        self.rpc.notify('setPromptList', [[d.to_json() for d in descriptors]])

    # ========================
    # Dynamic question behaviour
    # ========================

    def register_custom_question_event_handler(self, question_type: str, method_name: str,
                                               handler: Callable) -> None:
        """
        Override a method for every question with guiType == question_type.
        """
        self._custom_handlers.setdefault(question_type, {})[method_name] = handler

    def get_custom_question_event_handler(self, question_type: Optional[str],
                                          method_name: str) -> Optional[Callable]:
        return self._custom_handlers.get(question_type, {}).get(method_name)

    def _with_custom_handlers(self, questions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        attached = []
        for question in questions:
            handlers = self._custom_handlers.get(question.get('guiType'))
            if handlers:
                question = {**question, **handlers}
            attached.append(question)
        return attached

    async def evaluate_method(self, params: List[Any], question_name: str, method_name: str) -> Any:
        """
        Call a callable held by a question of the current step.

        A registered custom handler for the question's guiType takes
        precedence over the question's own attribute.

        Args:
            params: Positional arguments (typically value and partial answers)
            question_name: Question of the current step
            method_name: e.g. 'validate', 'filter', 'choices'

        Returns:
            Whatever the callable returns (awaited if awaitable)

        Raises:
            EvaluationError: If the question or method doesn't exist, or
                the call raised. Always logged before raising.
        """
        step_name = self.current_step_name
        question = find_question(self.current_questions, question_name)
        if question is None:
            message = self._log_evaluation_error(
                f"Question '{question_name}' not found in current step '{step_name}'"
            )
            raise EvaluationError(message, question_name, method_name, step_name)

        handler = self.get_custom_question_event_handler(question.get('guiType'), method_name)
        if handler is None:
            handler = question.get(method_name)
        if not callable(handler):
            message = self._log_evaluation_error(
                f"Question '{question_name}' in step '{step_name}' has no method '{method_name}'"
            )
            raise EvaluationError(message, question_name, method_name, step_name)

        try:
            result = handler(*(params or []))
            if inspect.isawaitable(result):
                result = await result
            return result
        except Exception as e:
            namespace = getattr(self.generator, 'namespace', 'unknown')
            message = self._log_evaluation_error(
                get_error_info(e),
                f"Could not update method '{method_name}' in '{question_name}' question "
                f"of step '{step_name}' in generator '{namespace}'"
            )
            raise EvaluationError(message, question_name, method_name, step_name) from e

    def _log_evaluation_error(self, description: str, prefix: Optional[str] = None) -> str:
        message = f"{prefix}\n{description}" if prefix else description
        logger.error(message)
        return message
