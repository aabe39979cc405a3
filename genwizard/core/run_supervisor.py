"""
Run Supervisor - starts, restarts and watches generator runs

Responsibilities:
- Prepare the working directory and instantiate the generator
- Run it as an asyncio task, one active run per session
- Report success/failure exactly once per run through WizardEvents
- Restart the same generator for back navigation (history kept)

Invariants:
- Every start() supersedes the previous run: its task is cancelled and
  any completion/failure it still reports is ignored (run_id check)
- Failures are normalized, logged and reported, never retried
- A fresh selection resets the orchestrator; a restart does not
"""

import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from genwizard.errors import GeneratorError, SetupError, WizardError
from genwizard.utils.helpers import get_error_info

logger = logging.getLogger(__name__)


class RunSupervisor:
    """Owns the lifecycle of generator runs for one session"""

    def __init__(self, environment, orchestrator, events, cwd: str):
        """
        Args:
            environment: GeneratorEnvironment to create generators from
            orchestrator: SessionOrchestrator answering the generator's prompts
            events: WizardEvents for done/install notifications
            cwd: Working directory handed to every run
        """
        self.environment = environment
        self.orchestrator = orchestrator
        self.events = events
        self.cwd = cwd

        self.generator_name: Optional[str] = None
        self.run_id = 0
        self._task: Optional[asyncio.Task] = None

    def is_current(self, run_id: int) -> bool:
        return run_id == self.run_id

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, generator_name: str, fresh: bool = True) -> int:
        """
        Start generator_name from its first step.

        Args:
            generator_name: Registered generator name
            fresh: True for a new user selection (history and replay
                cleared), False for a back-navigation restart

        Returns:
            int: Id of the new run
        """
        self.run_id += 1
        run_id = self.run_id
        self._cancel_active()

        if fresh:
            self.orchestrator.reset()
        self.generator_name = generator_name

        logger.info(f"{'Starting' if fresh else 'Restarting'} '{generator_name}' (run {run_id})")

        try:
            generator = self._create_generator(generator_name)
        except Exception as e:
            self._on_failure(run_id, generator_name, e)
            return run_id

        self.orchestrator.begin_run(generator, run_id)
        self._task = asyncio.create_task(self._run(run_id, generator_name, generator))
        return run_id

    async def restart(self) -> int:
        """
        Restart the current generator, keeping history and replay state.

        Raises:
            RuntimeError: If no generator has been started yet
        """
        if self.generator_name is None:
            raise RuntimeError("No generator selected")
        return await self.start(self.generator_name, fresh=False)

    async def wait(self) -> None:
        """Wait for the active run (cancellation of superseded runs is swallowed)."""
        while self._task is not None:
            task = self._task
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if task is self._task:
                return

    def _create_generator(self, generator_name: str):
        try:
            Path(self.cwd).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise SetupError(f"Could not create working directory '{self.cwd}': {e}") from e

        generator = self.environment.create(generator_name, adapter=self.orchestrator)

        set_prompts_callback = getattr(generator, 'set_prompts_callback', None)
        if callable(set_prompts_callback):
            set_prompts_callback(self.orchestrator.set_prompt_list)

        generator.destination_root(self.cwd)
        return generator

    def _cancel_active(self) -> None:
        if self.is_running:
            logger.debug("Cancelling superseded run")
            self._task.cancel()

    async def _run(self, run_id: int, generator_name: str, generator) -> None:
        try:
            with self._install_interception(generator):
                await generator.run()
        except asyncio.CancelledError:
            logger.debug(f"Run {run_id} cancelled")
            raise
        except Exception as e:
            self._on_failure(run_id, generator_name, e)
            return
        self._on_success(run_id, generator_name, generator.destination_root())

    @contextmanager
    def _install_interception(self, generator):
        """
        Wrap the generator's install phase once to announce it to the UI.

        The wrapper is an instance attribute shadowing the class method and
        removes itself on first call; it's also removed when the run ends.
        """
        original = getattr(generator, 'install', None)
        if not callable(original) or 'install' in vars(generator):
            yield
            return

        def install(*args, **kwargs):
            vars(generator).pop('install', None)
            self.events.do_generator_install()
            return original(*args, **kwargs)

        generator.install = install
        try:
            yield
        finally:
            vars(generator).pop('install', None)

    def _on_success(self, run_id: int, generator_name: str, destination_root: str) -> None:
        if not self.is_current(run_id):
            logger.warning(f"Ignoring completion of superseded run {run_id}")
            return
        self.orchestrator.end_run()
        message = f"The '{generator_name}' project has been generated."
        logger.info(f"Run {run_id} done: {message} You can find it at {destination_root}")
        self.events.do_generator_done(True, message, destination_root)

    def _on_failure(self, run_id: int, generator_name: str, error) -> None:
        if not self.is_current(run_id):
            logger.warning(f"Ignoring failure of superseded run {run_id}: {error}")
            return
        self.orchestrator.end_run()
        kind = error.kind if isinstance(error, WizardError) else GeneratorError.kind
        message = f"{generator_name} generator failed ({kind}).\n{get_error_info(error)}"
        logger.error(message)
        self.events.do_generator_done(False, message)
