"""
Console Harness for the generator wizard

Drives a WizardSession from the terminal through the same QueueRpc the
web app uses. Type 'back' (previous step) or 'back N' (step N, 1-based)
at any prompt to navigate backwards.
"""

import asyncio
import logging
import os
import sys

from genwizard.commands import EvaluateMethod, GoBack, SelectGenerator
from genwizard.config import load_config
from genwizard.core.generator_engine import GeneratorEnvironment
from genwizard.core.wizard_session import WizardSession
from genwizard.results import EvaluationFailure, IllegalCommand
from genwizard.transport import QueueRpc
from genwizard.utils.question_helpers import FUNCTION_PLACEHOLDER

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class BackRequested(Exception):
    """User typed 'back' while answering a step"""

    def __init__(self, target_index, partial_answers):
        super().__init__(target_index)
        self.target_index = target_index
        self.partial_answers = partial_answers


def print_separator(char="=", length=60):
    """Print a separator line"""
    print(char * length)


async def read_line(prompt):
    loop = asyncio.get_running_loop()
    return (await loop.run_in_executor(None, input, prompt)).strip()


def parse_back(text):
    """'back' -> (True, None); 'back 2' -> (True, 1); otherwise (False, None)"""
    parts = text.split()
    if not parts or parts[0].lower() != 'back':
        return False, None
    if len(parts) > 1 and parts[1].isdigit():
        return True, max(int(parts[1]) - 1, 0)
    return True, None


def convert_answer(question, text):
    """Turn typed text into the value a question expects"""
    if text == "":
        default = question.get('default')
        return None if default == FUNCTION_PLACEHOLDER else default

    question_type = question.get('type')
    if question_type == 'confirm':
        return text.lower() in ('y', 'yes', 'true', '1')
    if question_type in ('list', 'generators'):
        choices = question.get('choices') or []
        if text.isdigit() and 1 <= int(text) <= len(choices):
            choice = choices[int(text) - 1]
            return choice.get('value', choice.get('name')) if isinstance(choice, dict) else choice
    return text


async def ask_question(session, question, answers):
    """Ask one question until its validator (if any) accepts the answer"""
    while True:
        default = question.get('default')
        hint = f" [{default}]" if default not in (None, FUNCTION_PLACEHOLDER) else ""
        print(f"{question.get('message') or question.get('name')}{hint}")

        choices = question.get('choices')
        if isinstance(choices, list):
            for i, choice in enumerate(choices, start=1):
                label = choice.get('prettyName', choice.get('name')) if isinstance(choice, dict) else choice
                print(f"  {i}) {label}")

        text = await read_line("> ")
        is_back, target_index = parse_back(text)
        if is_back:
            raise BackRequested(target_index, answers)

        value = convert_answer(question, text)
        if question.get('validate') != FUNCTION_PLACEHOLDER:
            return value

        result = await session.handle(EvaluateMethod(
            question_name=question['name'],
            method_name='validate',
            params=(value, answers)
        ))
        if isinstance(result, EvaluationFailure):
            print(f"Validation failed: {result.reason}")
            return value
        if result.value is True:
            return value
        print(f"  {result.value}")


async def console_loop(session, rpc):
    """Serve outgoing UI requests until the generator is done"""
    while True:
        outgoing = await rpc.next_request()
        method = outgoing.method

        if method == 'showPrompt':
            questions, step_name = outgoing.params
            print_separator("-")
            print(step_name)
            print_separator("-")
            answers = {}
            try:
                for question in questions:
                    answers[question['name']] = await ask_question(session, question, answers)
            except BackRequested as back:
                result = await session.handle(GoBack(
                    target_index=back.target_index,
                    partial_answers=back.partial_answers
                ))
                if isinstance(result, IllegalCommand):
                    print(f"Can't go back: {result.reason}")
                    rpc.resolve(outgoing.request_id, answers)
                continue
            rpc.resolve(outgoing.request_id, answers)

        elif method == 'setPromptList':
            steps = [prompt['name'] for prompt in outgoing.params[0]]
            print(f"\nSteps: {' > '.join(steps)}\n")

        elif method == 'generatorInstall':
            print("Installing dependencies...")

        elif method == 'generatorDone':
            success, message, target_path = outgoing.params
            print_separator()
            print("DONE" if success else "FAILED")
            print_separator()
            print(message)
            if target_path:
                print(f"You can find it at {target_path}")
            return 0 if success else 1


async def run(config_path, generator_name=None):
    config = load_config(config_path)
    rpc = QueueRpc()
    session = WizardSession(rpc, GeneratorEnvironment.from_config(config), config=config)

    ready_task = None
    if generator_name:
        result = await session.handle(SelectGenerator(generator_name=generator_name))
        if isinstance(result, IllegalCommand):
            print(result.reason)
            return 1
    else:
        ready_task = asyncio.create_task(session.receive_is_webview_ready())

    try:
        return await console_loop(session, rpc)
    finally:
        if ready_task is not None:
            ready_task.cancel()


def main():
    """Run console session"""
    print_separator()
    print("GENERATOR WIZARD - CONSOLE")
    print_separator()
    print("Type 'back' or 'back N' at any prompt to return to an earlier step\n")

    config_path = os.environ.get('GENWIZARD_CONFIG', 'data/wizard_config.json')
    generator_name = sys.argv[1] if len(sys.argv) > 1 else None

    try:
        return asyncio.run(run(config_path, generator_name))
    except KeyboardInterrupt:
        print("\n\nSession interrupted by user (Ctrl+C)")
        return 130


if __name__ == '__main__':
    sys.exit(main())
