"""
Unit tests for RunSupervisor

Covers run outcomes, failure normalization, superseded runs and the
install interception.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio

from genwizard.core.generator_engine import Generator, GeneratorEnvironment
from genwizard.core.run_supervisor import RunSupervisor
from genwizard.core.session_orchestrator import SessionOrchestrator
from genwizard.transport import QueueRpc


# ========================
# Mock Modules
# ========================

class RecordingEvents:
    """Collects WizardEvents calls"""

    def __init__(self):
        self.done = []
        self.installs = 0

    def do_generator_done(self, success, message, target_path=None):
        self.done.append((success, message, target_path))

    def do_generator_install(self):
        self.installs += 1


class AnsweringRpc:
    """Answers every showPrompt with {name: 'answer'}; can hold instead"""

    def __init__(self, hold=False):
        self.hold = hold
        self.held = asyncio.Event()
        self.notifications = []

    async def invoke(self, method, params=None):
        if self.hold:
            self.held.set()
            await asyncio.get_running_loop().create_future()
        questions, _ = params
        return {q['name']: 'answer' for q in questions}

    def notify(self, method, params=None):
        self.notifications.append((method, params))


class OneStepGenerator(Generator):
    async def prompting(self):
        self.answers = await self.prompt([{'name': 'title', 'type': 'input'}])


class FailingGenerator(Generator):
    def writing(self):
        raise RuntimeError("disk on fire")


class InstallingGenerator(Generator):
    install_calls = 0

    def install(self):
        type(self).install_calls += 1


def build_supervisor(tmp_path, rpc=None):
    env = GeneratorEnvironment()
    env.register(OneStepGenerator, 'one-step')
    env.register(FailingGenerator, 'failing')
    env.register(InstallingGenerator, 'installing')

    rpc = rpc or AnsweringRpc()
    orchestrator = SessionOrchestrator(rpc)
    events = RecordingEvents()
    supervisor = RunSupervisor(env, orchestrator, events, str(tmp_path / 'projects'))
    return supervisor, events


# ========================
# Tests
# ========================

def test_successful_run_reports_destination(tmp_path):
    async def scenario():
        supervisor, events = build_supervisor(tmp_path)

        run_id = await supervisor.start('one-step')
        await supervisor.wait()

        assert run_id == 1
        assert events.done == [(
            True,
            "The 'one-step' project has been generated.",
            str(tmp_path / 'projects')
        )]
        assert (tmp_path / 'projects').is_dir()
        assert supervisor.orchestrator.history.step_names() == ['Title']

    asyncio.run(scenario())


def test_generator_failure_is_normalized(tmp_path):
    async def scenario():
        supervisor, events = build_supervisor(tmp_path)

        await supervisor.start('failing')
        await supervisor.wait()

        assert len(events.done) == 1
        success, message, target_path = events.done[0]
        assert success is False
        assert target_path is None
        assert message.startswith('failing generator failed')
        assert 'RuntimeError' in message
        assert 'disk on fire' in message

    asyncio.run(scenario())


def test_unknown_generator_is_a_setup_failure(tmp_path):
    async def scenario():
        supervisor, events = build_supervisor(tmp_path)

        await supervisor.start('missing')

        assert not supervisor.is_running
        success, message, _ = events.done[0]
        assert success is False
        assert '(setup)' in message
        assert 'missing:app' in message

    asyncio.run(scenario())


def test_unwritable_working_directory_is_a_setup_failure(tmp_path):
    async def scenario():
        blocker = tmp_path / 'file'
        blocker.write_text('not a directory')
        supervisor, events = build_supervisor(tmp_path)
        supervisor.cwd = str(blocker / 'projects')

        await supervisor.start('one-step')

        success, message, _ = events.done[0]
        assert success is False
        assert '(setup)' in message

    asyncio.run(scenario())


def test_superseded_run_is_ignored(tmp_path):
    """Only the newest run may report an outcome"""
    async def scenario():
        rpc = AnsweringRpc(hold=True)
        supervisor, events = build_supervisor(tmp_path, rpc)

        await supervisor.start('one-step')
        await rpc.held.wait()

        rpc.hold = False
        second = await supervisor.start('one-step', fresh=False)
        await supervisor.wait()

        assert second == 2
        assert len(events.done) == 1
        assert events.done[0][0] is True

    asyncio.run(scenario())


def test_late_outcome_of_old_run_is_dropped(tmp_path):
    supervisor, events = build_supervisor(tmp_path)
    supervisor.run_id = 3

    supervisor._on_success(2, 'one-step', '/tmp/x')
    supervisor._on_failure(1, 'one-step', RuntimeError('late'))

    assert events.done == []


def test_restart_keeps_history_fresh_start_clears_it(tmp_path):
    async def scenario():
        supervisor, _ = build_supervisor(tmp_path)
        orchestrator = supervisor.orchestrator
        await supervisor.start('one-step')
        await supervisor.wait()

        orchestrator.go_back(1)
        await supervisor.restart()
        await supervisor.wait()

        assert orchestrator.history.step_names() == ['Title']
        assert orchestrator.replay.state.value == 'idle'

        orchestrator.go_back(0)
        await supervisor.start('one-step', fresh=True)
        assert len(orchestrator.history) == 0
        assert orchestrator.replay.state.value == 'idle'
        await supervisor.wait()

    asyncio.run(scenario())


def test_install_is_announced_once_and_restored(tmp_path):
    async def scenario():
        InstallingGenerator.install_calls = 0
        supervisor, events = build_supervisor(tmp_path)

        await supervisor.start('installing')
        await supervisor.wait()

        generator = supervisor.orchestrator.generator
        assert events.installs == 1
        assert InstallingGenerator.install_calls == 1
        assert 'install' not in vars(generator)
        assert events.done[0][0] is True

    asyncio.run(scenario())


def test_transport_timeout_fails_the_run(tmp_path):
    async def scenario():
        rpc = QueueRpc(response_timeout=0.01)
        supervisor, events = build_supervisor(tmp_path, rpc)

        await supervisor.start('one-step')
        await supervisor.wait()

        success, message, _ = events.done[0]
        assert success is False
        assert '(transport)' in message

    asyncio.run(scenario())
