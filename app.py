"""
Flask Web Application for the generator wizard

HTTP face of the in-process transport. The wizard session runs on an
asyncio loop in a background thread; Flask workers hand work to it with
asyncio.run_coroutine_threadsafe and poll /api/next for outgoing UI
requests (showPrompt, setPromptList, generatorDone, ...).
"""

import asyncio
import logging
import os
import threading

from flask import Flask, jsonify, request

from genwizard.commands import EvaluateMethod, GoBack, SelectGenerator
from genwizard.config import load_config
from genwizard.core.generator_engine import GeneratorEnvironment
from genwizard.core.wizard_session import WizardSession
from genwizard.results import EvaluationFailure, IllegalCommand
from genwizard.transport import QueueRpc

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Initialize Flask app
app = Flask(__name__)

CONFIG_PATH = os.environ.get('GENWIZARD_CONFIG', 'data/wizard_config.json')

# Seconds a Flask worker waits for the session loop
LOOP_CALL_TIMEOUT = 30
# Seconds /api/next long-polls before answering 204
POLL_TIMEOUT = 10

# Global state for the current wizard session
current_session = {
    'loop': None,
    'rpc': None,
    'session': None
}


def initialize_session(config=None):
    """Create the loop thread, transport and session (called once at startup)"""
    if current_session['session'] is not None:
        return current_session['session']

    config = config or load_config(CONFIG_PATH)
    loop = asyncio.new_event_loop()
    threading.Thread(target=loop.run_forever, name='wizard-loop', daemon=True).start()

    async def build():
        rpc = QueueRpc()
        environment = GeneratorEnvironment.from_config(config)
        return rpc, WizardSession(rpc, environment, config=config)

    rpc, session = asyncio.run_coroutine_threadsafe(build(), loop).result(LOOP_CALL_TIMEOUT)
    current_session.update({'loop': loop, 'rpc': rpc, 'session': session})
    logger.info(f"Wizard session {session.session_id} ready")
    return session


def run_on_loop(coro, timeout=LOOP_CALL_TIMEOUT):
    """Run a coroutine on the session loop and wait for its result"""
    return asyncio.run_coroutine_threadsafe(coro, current_session['loop']).result(timeout)


def _session_required():
    if current_session['session'] is None:
        return jsonify({'success': False, 'error': 'No active session'}), 400
    return None


@app.route('/api/generators', methods=['GET'])
def list_generators():
    """Selectable generators"""
    error = _session_required()
    if error:
        return error
    session = current_session['session']
    return jsonify({
        'success': True,
        'generators': [choice.to_json() for choice in session.environment.choices()]
    })


@app.route('/api/start', methods=['POST'])
def start_generator():
    """Select a generator and run it from scratch"""
    error = _session_required()
    if error:
        return error
    try:
        data = request.get_json(silent=True) or {}
        result = run_on_loop(current_session['session'].handle(
            SelectGenerator(generator_name=data.get('generator', ''))
        ))
        if isinstance(result, IllegalCommand):
            return jsonify({'success': False, 'error': result.reason}), 400

        return jsonify({'success': True, 'run_id': result.run_id, 'generator': result.generator_name})

    except Exception as e:
        logger.error(f"Error starting generator: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/next', methods=['GET'])
def next_request():
    """Next outgoing UI request (long poll); 204 when there is none"""
    error = _session_required()
    if error:
        return error
    timeout = request.args.get('timeout', POLL_TIMEOUT, type=float)
    outgoing = run_on_loop(current_session['rpc'].next_request(timeout=timeout), timeout=timeout + LOOP_CALL_TIMEOUT)
    if outgoing is None:
        return '', 204
    return jsonify({'success': True, 'request': outgoing.to_json()})


@app.route('/api/respond', methods=['POST'])
def respond():
    """Answer a pending UI request (e.g. the answers of a showPrompt)"""
    error = _session_required()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    request_id = data.get('id')
    if not request_id:
        return jsonify({'success': False, 'error': 'Missing request id'}), 400

    rpc = current_session['rpc']

    async def resolve():
        return rpc.resolve(request_id, data.get('result'))

    if not run_on_loop(resolve()):
        return jsonify({'success': False, 'error': f'Request {request_id} is not pending'}), 409
    return jsonify({'success': True})


@app.route('/api/back', methods=['POST'])
def go_back():
    """Return to an earlier step"""
    error = _session_required()
    if error:
        return error
    try:
        data = request.get_json(silent=True) or {}
        result = run_on_loop(current_session['session'].handle(GoBack(
            target_index=data.get('target_index'),
            partial_answers=data.get('partial_answers') or {}
        )))
        if isinstance(result, IllegalCommand):
            return jsonify({'success': False, 'error': result.reason}), 400

        return jsonify({'success': True, 'run_id': result.run_id, 'replay_steps': result.replay_steps})

    except Exception as e:
        logger.error(f"Error going back: {e}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/evaluate', methods=['POST'])
def evaluate():
    """Evaluate a question callable of the current step"""
    error = _session_required()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    result = run_on_loop(current_session['session'].handle(EvaluateMethod(
        question_name=data.get('question_name', ''),
        method_name=data.get('method_name', ''),
        params=tuple(data.get('params') or ())
    )))
    if isinstance(result, EvaluationFailure):
        return jsonify({'success': False, 'error': result.reason}), 422
    return jsonify({'success': True, 'value': result.value})


@app.route('/api/state', methods=['GET'])
def state():
    """Session snapshot"""
    error = _session_required()
    if error:
        return error

    async def snapshot():
        return current_session['session'].snapshot()

    return jsonify({'success': True, 'state': run_on_loop(snapshot())})


@app.route('/api/log', methods=['POST'])
def log_ui_error():
    """Record an error reported by the UI"""
    error = _session_required()
    if error:
        return error
    data = request.get_json(silent=True) or {}
    message = current_session['session'].log_error(data.get('error', ''), data.get('prefix'))
    return jsonify({'success': True, 'message': message})


if __name__ == '__main__':
    initialize_session()

    print("\n" + "=" * 60)
    print("GENERATOR WIZARD - WEB TRANSPORT")
    print("=" * 60)
    print("\nServer starting on http://localhost:5000")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    app.run(debug=False, threaded=True, port=5000)
