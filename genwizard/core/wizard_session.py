"""
Wizard Session - command handler for one UI connection

Responsibilities:
- Wire transport, orchestrator and supervisor together
- Handle commands (SelectGenerator, GoBack, EvaluateMethod)
- Register the methods the UI may call over the transport
- Show the generator selection step when the UI is ready

Design principles:
- Commands in, results out; lifecycle violations become IllegalCommand
- Run outcomes are reported asynchronously through WizardEvents
"""

import logging
from typing import Any, Dict, List, Optional

from genwizard.commands import EvaluateMethod, GoBack, SelectGenerator
from genwizard.config import WizardConfig
from genwizard.core.run_supervisor import RunSupervisor
from genwizard.core.session_orchestrator import SessionOrchestrator
from genwizard.errors import EvaluationError
from genwizard.events import WizardEvents
from genwizard.results import (
    EvaluationFailure,
    EvaluationResult,
    IllegalCommand,
    RunStarted,
)
from genwizard.utils.helpers import generate_session_id, get_error_info

logger = logging.getLogger(__name__)

SELECT_GENERATOR_STEP = "select_generator"


class WizardSession:
    """One logical wizard session over a transport"""

    def __init__(self, rpc, environment, config: Optional[WizardConfig] = None,
                 events: Optional[WizardEvents] = None):
        """
        Args:
            rpc: Transport (QueueRpc or compatible)
            environment: GeneratorEnvironment holding selectable generators
            config: WizardConfig (defaults if None)
            events: WizardEvents (built on rpc if None)
        """
        if rpc is None:
            raise ValueError("rpc must be set")

        self.config = config or WizardConfig()
        self.rpc = rpc
        self.rpc.set_response_timeout(self.config.response_timeout)
        self.environment = environment
        self.events = events or WizardEvents(rpc)
        self.session_id = generate_session_id(short=True)

        self.orchestrator = SessionOrchestrator(rpc)
        self.supervisor = RunSupervisor(environment, self.orchestrator, self.events, self.config.output_path)

        self.rpc.register_method(self.receive_is_webview_ready)
        self.rpc.register_method(self.run_generator)
        self.rpc.register_method(self.evaluate_method)
        self.rpc.register_method(self.log_error)
        self.rpc.register_method(self.back)

        logger.info(f"Wizard session {self.session_id} initialized (output: {self.config.output_path})")

    # ========================
    # Command handling
    # ========================

    async def handle(self, command):
        """
        Process one command.

        Returns:
            RunStarted, EvaluationResult, EvaluationFailure or IllegalCommand
        """
        if isinstance(command, SelectGenerator):
            return await self._handle_select(command)
        if isinstance(command, GoBack):
            return await self._handle_go_back(command)
        if isinstance(command, EvaluateMethod):
            return await self._handle_evaluate(command)
        return IllegalCommand(
            reason=f"Unknown command {command!r}",
            command_type=type(command).__name__
        )

    async def _handle_select(self, command: SelectGenerator):
        if not command.generator_name:
            return IllegalCommand(reason="No generator name given", command_type='SelectGenerator')
        run_id = await self.supervisor.start(command.generator_name, fresh=True)
        return RunStarted(run_id=run_id, generator_name=command.generator_name)

    async def _handle_go_back(self, command: GoBack):
        if self.supervisor.generator_name is None:
            return IllegalCommand(reason="No generator is running", command_type='GoBack')
        target_index = command.target_index
        if target_index is not None and (isinstance(target_index, bool) or not isinstance(target_index, int)):
            return IllegalCommand(
                reason=f"Step index must be an integer, got {target_index!r}",
                command_type='GoBack'
            )
        try:
            replay_steps = self.orchestrator.go_back(target_index, command.partial_answers)
        except ValueError as e:
            logger.warning(f"Back navigation rejected: {e}")
            return IllegalCommand(reason=str(e), command_type='GoBack')

        run_id = await self.supervisor.restart()
        return RunStarted(
            run_id=run_id,
            generator_name=self.supervisor.generator_name,
            restarted=True,
            replay_steps=replay_steps
        )

    async def _handle_evaluate(self, command: EvaluateMethod):
        try:
            value = await self.orchestrator.evaluate_method(
                list(command.params), command.question_name, command.method_name
            )
        except EvaluationError as e:
            return EvaluationFailure(
                reason=str(e),
                question_name=command.question_name,
                method_name=command.method_name
            )
        return EvaluationResult(value=value)

    # ========================
    # Transport methods
    # ========================

    async def receive_is_webview_ready(self) -> None:
        """Ask the UI which generator to run, then run it from scratch."""
        try:
            question = {
                'type': 'generators',
                'name': 'name',
                'message': '',
                'choices': [choice.to_json() for choice in self.environment.choices()]
            }
            response = await self.rpc.invoke('showPrompt', [[question], SELECT_GENERATOR_STEP])
            result = await self.handle(SelectGenerator(generator_name=(response or {}).get('name', '')))
            if isinstance(result, IllegalCommand):
                logger.warning(f"Generator selection rejected: {result.reason}")
        except Exception as e:
            self.log_error(e)

    async def run_generator(self, generator_name: str) -> Dict[str, Any]:
        result = await self.handle(SelectGenerator(generator_name=generator_name))
        return _result_to_json(result)

    async def back(self, partial_answers: Optional[Dict[str, Any]] = None,
                   target_index: Optional[int] = None) -> Dict[str, Any]:
        result = await self.handle(GoBack(target_index=target_index, partial_answers=partial_answers or {}))
        return _result_to_json(result)

    async def evaluate_method(self, params: List[Any], question_name: str, method_name: str) -> Any:
        """
        Transport-facing evaluation: the value, or EvaluationError raised
        to the remote caller.
        """
        return await self.orchestrator.evaluate_method(params, question_name, method_name)

    def log_error(self, error: Any, prefix_message: Optional[str] = None) -> str:
        error_message = get_error_info(error)
        if prefix_message:
            error_message = f"{prefix_message}\n{error_message}"
        logger.error(error_message)
        return error_message

    def set_state(self, messages) -> None:
        self.events.set_state(messages)

    def register_custom_question_event_handler(self, question_type: str, method_name: str, handler) -> None:
        self.orchestrator.register_custom_question_event_handler(question_type, method_name, handler)

    # ========================
    # Introspection
    # ========================

    def snapshot(self) -> Dict[str, Any]:
        """JSON-safe view of the session for display and debugging."""
        return {
            'session_id': self.session_id,
            'generator': self.supervisor.generator_name,
            'run_id': self.supervisor.run_id,
            'running': self.supervisor.is_running,
            'replay_state': self.orchestrator.replay.state.value,
            'prompt_count': self.orchestrator.prompt_count,
            'current_step': self.orchestrator.current_step_name,
            'steps': self.orchestrator.history.step_names()
        }


def _result_to_json(result) -> Dict[str, Any]:
    data = dict(vars(result))
    data['type'] = type(result).__name__
    return data
