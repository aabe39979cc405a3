"""
End-to-end tests for WizardSession

Runs the bundled ProjectGenerator against a transport that answers by
question name, and exercises back navigation across the branch point
(library -> service).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import asyncio
import json

from genwizard.commands import EvaluateMethod, GoBack, SelectGenerator
from genwizard.config import WizardConfig
from genwizard.core.generator_engine import GeneratorEnvironment
from genwizard.core.wizard_session import WizardSession
from genwizard.generators.project_generator import GreetingGenerator, ProjectGenerator
from genwizard.results import EvaluationFailure, EvaluationResult, IllegalCommand, RunStarted
from genwizard.utils.question_helpers import FUNCTION_PLACEHOLDER


# ========================
# Mock Transport
# ========================

class ByNameRpc:
    """
    Answers showPrompt from a {question name: value} table.

    A step with an unanswered question is held (never resolved) and
    `held` is set, like a user who hasn't clicked Next yet.
    """

    def __init__(self, answers=None):
        self.answers = dict(answers or {})
        self.held = asyncio.Event()
        self.prompts = []
        self.notifications = []
        self.methods = {}
        self.response_timeout = None

    def set_response_timeout(self, seconds):
        self.response_timeout = seconds

    def register_method(self, func, name=None):
        self.methods[name or func.__name__] = func

    async def invoke(self, method, params=None):
        questions, step_name = params
        self.prompts.append((step_name, questions))
        names = [q['name'] for q in questions]
        if not all(name in self.answers for name in names):
            self.held.set()
            await asyncio.get_running_loop().create_future()
        return {name: self.answers[name] for name in names}

    def notify(self, method, params=None):
        self.notifications.append((method, params))

    def notified(self, method):
        return [params for name, params in self.notifications if name == method]


def build_session(tmp_path, rpc):
    env = GeneratorEnvironment()
    env.register(ProjectGenerator, 'project', display_name='Project')
    env.register(GreetingGenerator, 'greeting')
    config = WizardConfig(output_path=str(tmp_path), response_timeout=5)
    return WizardSession(rpc, env, config=config)


# ========================
# Tests
# ========================

def test_session_registers_transport_methods(tmp_path):
    rpc = ByNameRpc()
    build_session(tmp_path, rpc)

    assert set(rpc.methods) == {
        'receive_is_webview_ready', 'run_generator', 'evaluate_method', 'log_error', 'back'
    }
    assert rpc.response_timeout == 5


def test_full_run_writes_project(tmp_path):
    async def scenario():
        rpc = ByNameRpc({
            'projectName': 'demo',
            'projectType': 'library',
            'packageName': 'demo_pkg',
            'confirmed': True
        })
        session = build_session(tmp_path, rpc)

        result = await session.handle(SelectGenerator('project'))
        await session.supervisor.wait()

        assert result == RunStarted(run_id=1, generator_name='project')
        assert [name for name, _ in rpc.prompts] == [
            'Project Name', 'Project Type', 'Package Name', 'Confirmed'
        ]

        written = json.loads((tmp_path / 'demo' / 'project.json').read_text())
        assert written['packageName'] == 'demo_pkg'

        done = rpc.notified('generatorDone')
        assert done == [[True, "The 'project' project has been generated.", str(tmp_path / 'demo')]]
        assert rpc.notified('setPromptList')[0][0][0]['name'] == 'Project Name'

    asyncio.run(scenario())


def test_back_across_branch_switches_to_service(tmp_path):
    """
    Record name/type(library)/package, go back to the type step with
    'service' typed in: the name is replayed, the type is asked live with
    'service' pre-filled and the service branch (port) follows.
    """
    async def scenario():
        rpc = ByNameRpc({
            'projectName': 'demo',
            'projectType': 'library',
            'packageName': 'demo_pkg'
        })
        session = build_session(tmp_path, rpc)

        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()
        assert session.orchestrator.history.step_names() == [
            'Project Name', 'Project Type', 'Package Name'
        ]

        rpc.prompts.clear()
        rpc.answers.update({'projectType': 'service', 'port': '9000', 'confirmed': True})
        result = await session.handle(GoBack(target_index=1, partial_answers={'projectType': 'service'}))
        await session.supervisor.wait()

        assert result == RunStarted(run_id=2, generator_name='project', restarted=True, replay_steps=1)

        # Project Name was served from history, never shown again
        assert [name for name, _ in rpc.prompts] == ['Project Type', 'Port', 'Confirmed']
        type_question = rpc.prompts[0][1][0]
        assert type_question['default'] == 'service'
        port_question = rpc.prompts[1][1][0]
        assert port_question['validate'] == FUNCTION_PLACEHOLDER

        assert session.orchestrator.history.step_names() == [
            'Project Name', 'Project Type', 'Port', 'Confirmed'
        ]
        assert session.orchestrator.replay.state.value == 'idle'

        written = json.loads((tmp_path / 'demo' / 'project.json').read_text())
        assert written['projectType'] == 'service'
        assert written['port'] == '9000'
        assert 'packageName' not in written

        done = rpc.notified('generatorDone')
        assert len(done) == 1
        assert done[0][0] is True

        # Prompt list: once for the first run, once when replay ended
        assert len(rpc.notified('setPromptList')) == 2

    asyncio.run(scenario())


def test_back_to_previous_step(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'projectName': 'demo'})
        session = build_session(tmp_path, rpc)

        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()

        rpc.held.clear()
        rpc.prompts.clear()
        result = await session.handle(GoBack())
        await rpc.held.wait()

        # One recorded step -> back to index 0, asked live again
        assert result.replay_steps == 0
        assert [name for name, _ in rpc.prompts] == ['Project Name', 'Project Type']
        assert session.orchestrator.history.step_names() == ['Project Name']

        session.supervisor._cancel_active()

    asyncio.run(scenario())


def test_back_before_selection_is_illegal(tmp_path):
    async def scenario():
        session = build_session(tmp_path, ByNameRpc())

        result = await session.handle(GoBack(target_index=0))

        assert isinstance(result, IllegalCommand)
        assert result.command_type == 'GoBack'

    asyncio.run(scenario())


def test_back_beyond_history_is_illegal(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'projectName': 'demo'})
        session = build_session(tmp_path, rpc)
        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()

        result = await session.handle(GoBack(target_index=5))

        assert isinstance(result, IllegalCommand)
        assert session.orchestrator.history.step_names() == ['Project Name']
        assert session.supervisor.run_id == 1

        session.supervisor._cancel_active()

    asyncio.run(scenario())


def test_empty_generator_name_is_illegal(tmp_path):
    async def scenario():
        session = build_session(tmp_path, ByNameRpc())

        result = await session.handle(SelectGenerator(''))

        assert isinstance(result, IllegalCommand)
        assert session.supervisor.run_id == 0

    asyncio.run(scenario())


def test_unknown_command_is_illegal(tmp_path):
    async def scenario():
        session = build_session(tmp_path, ByNameRpc())

        result = await session.handle("jump")

        assert isinstance(result, IllegalCommand)
        assert result.command_type == 'str'

    asyncio.run(scenario())


def test_fresh_selection_during_replay_clears_history(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'projectName': 'demo', 'projectType': 'library'})
        session = build_session(tmp_path, rpc)
        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()

        session.orchestrator.go_back(1)
        rpc.answers = {'greeting': 'hi'}
        result = await session.handle(SelectGenerator('greeting'))
        await session.supervisor.wait()

        assert result.restarted is False
        assert session.orchestrator.history.step_names() == ['Greeting']
        assert session.orchestrator.replay.state.value == 'idle'

    asyncio.run(scenario())


def test_evaluate_method_on_current_step(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'projectName': 'demo', 'projectType': 'service'})
        session = build_session(tmp_path, rpc)
        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()

        ok = await session.handle(EvaluateMethod('port', 'validate', ('8080',)))
        bad = await session.handle(EvaluateMethod('port', 'validate', ('80',)))
        missing = await session.handle(EvaluateMethod('host', 'validate', ('x',)))

        assert ok == EvaluationResult(value=True)
        assert bad == EvaluationResult(value="Port must be between 1024 and 65535")
        assert isinstance(missing, EvaluationFailure)
        assert "Question 'host' not found" in missing.reason

        session.supervisor._cancel_active()

    asyncio.run(scenario())


def test_webview_ready_asks_for_generator_then_runs_it(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'name': 'greeting', 'greeting': 'hi'})
        session = build_session(tmp_path, rpc)

        await session.receive_is_webview_ready()
        await session.supervisor.wait()

        step_name, questions = rpc.prompts[0]
        assert step_name == 'select_generator'
        assert questions[0]['type'] == 'generators'
        assert [c['name'] for c in questions[0]['choices']] == ['project', 'greeting']
        assert questions[0]['choices'][0]['prettyName'] == 'Project'

        assert session.supervisor.generator_name == 'greeting'
        assert rpc.notified('generatorDone')[0][0] is True

    asyncio.run(scenario())


def test_transport_methods_return_json_results(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'greeting': 'hi'})
        session = build_session(tmp_path, rpc)

        started = await session.run_generator('greeting')
        await session.supervisor.wait()
        back = await session.back(target_index=9)

        assert started['type'] == 'RunStarted'
        assert started['generator_name'] == 'greeting'
        assert back['type'] == 'IllegalCommand'

    asyncio.run(scenario())


def test_log_error_prefixes_message(tmp_path):
    session = build_session(tmp_path, ByNameRpc())

    message = session.log_error(ValueError("bad"), "UI failed")

    assert message.startswith("UI failed\n")
    assert "ValueError" in message


def test_snapshot(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'projectName': 'demo'})
        session = build_session(tmp_path, rpc)
        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()

        snapshot = session.snapshot()

        assert snapshot['generator'] == 'project'
        assert snapshot['run_id'] == 1
        assert snapshot['running'] is True
        assert snapshot['replay_state'] == 'idle'
        assert snapshot['prompt_count'] == 2
        assert snapshot['current_step'] == 'Project Type'
        assert snapshot['steps'] == ['Project Name']
        json.dumps(snapshot)

        session.supervisor._cancel_active()

    asyncio.run(scenario())


def test_set_state_is_forwarded_to_ui(tmp_path):
    rpc = ByNameRpc()
    session = build_session(tmp_path, rpc)

    session.set_state({'title': 'Create project'})

    assert rpc.notified('setState') == [[{'title': 'Create project'}]]


def test_back_with_non_integer_index_is_illegal(tmp_path):
    async def scenario():
        rpc = ByNameRpc({'projectName': 'demo'})
        session = build_session(tmp_path, rpc)
        await session.handle(SelectGenerator('project'))
        await rpc.held.wait()

        result = await session.handle(GoBack(target_index='0'))

        assert isinstance(result, IllegalCommand)
        assert 'must be an integer' in result.reason
        assert session.orchestrator.replay.state.value == 'idle'
        assert session.supervisor.run_id == 1

        session.supervisor._cancel_active()

    asyncio.run(scenario())
