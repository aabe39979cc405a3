"""
Generator engine - the forward-only step generator driven by the wizard

A Generator walks a fixed queue of phase methods. Any phase may ask the
user questions through `await self.prompt(questions)`; the answers decide
what is asked next, so the sequence of steps is data dependent and can
only be produced by running the generator from the start.

The engine knows nothing about history or replay. Its adapter (the
SessionOrchestrator) answers each prompt either live or from replay.

Usage:
    class AppGenerator(Generator):
        async def prompting(self):
            self.answers = await self.prompt([{'name': 'projectName', ...}])

    env = GeneratorEnvironment()
    env.register(AppGenerator, 'app-generator')
    gen = env.create('app-generator', adapter=orchestrator)
    await gen.run()
"""

import importlib
import inspect
import logging
import os
from typing import Any, Dict, List, Optional, Type

from genwizard.contracts import GeneratorChoice
from genwizard.errors import SetupError

logger = logging.getLogger(__name__)


class Generator:
    """Base class for generators"""

    # Phases run in this order; missing ones are skipped
    RUN_QUEUE = (
        'initializing',
        'prompting',
        'configuring',
        'default',
        'writing',
        'install',
        'end'
    )

    def __init__(self, adapter, options: Optional[Dict[str, Any]] = None):
        """
        Args:
            adapter: Object with `async ask(questions) -> answers`
            options: Free-form options; 'namespace' is set by the environment
        """
        self.adapter = adapter
        self.options = dict(options or {})
        self.answers: Dict[str, Any] = {}
        self._destination_root = os.getcwd()

    @property
    def namespace(self) -> str:
        return self.options.get('namespace', type(self).__name__)

    def destination_root(self, root: Optional[str] = None) -> str:
        """Get or set the directory the generator writes into."""
        if root is not None:
            self._destination_root = os.path.abspath(os.path.expanduser(root))
        return self._destination_root

    def destination_path(self, *parts: str) -> str:
        return os.path.join(self._destination_root, *parts)

    async def prompt(self, questions: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await self.adapter.ask(questions)

    async def run(self) -> None:
        """Run every defined phase in RUN_QUEUE order."""
        for phase in self.RUN_QUEUE:
            method = getattr(self, phase, None)
            if method is None:
                continue
            logger.debug(f"{self.namespace}: running phase '{phase}'")
            result = method()
            if inspect.isawaitable(result):
                await result


class GeneratorEnvironment:
    """Registry of generator classes, keyed by namespace '<name>:app'"""

    def __init__(self):
        self._generators: Dict[str, Type[Generator]] = {}
        self._choices: Dict[str, GeneratorChoice] = {}

    @staticmethod
    def namespace_for(name: str) -> str:
        return f"{name}:app"

    def register(self, generator_class: Type[Generator], name: str,
                 display_name: str = "", description: str = "") -> None:
        """
        Register a generator class.

        Raises:
            TypeError: If generator_class is not a Generator subclass
        """
        if not (inspect.isclass(generator_class) and issubclass(generator_class, Generator)):
            raise TypeError(f"{generator_class!r} is not a Generator subclass")

        namespace = self.namespace_for(name)
        self._generators[namespace] = generator_class
        self._choices[namespace] = GeneratorChoice(
            name=name,
            pretty_name=display_name or name.replace('-', ' ').title(),
            message=description
        )
        logger.debug(f"Registered generator {namespace}")

    def is_registered(self, name: str) -> bool:
        return self.namespace_for(name) in self._generators

    def choices(self) -> List[GeneratorChoice]:
        return list(self._choices.values())

    def create(self, name: str, adapter, options: Optional[Dict[str, Any]] = None) -> Generator:
        """
        Instantiate a registered generator.

        Raises:
            SetupError: If name isn't registered or the constructor fails
        """
        namespace = self.namespace_for(name)
        generator_class = self._generators.get(namespace)
        if generator_class is None:
            raise SetupError(f"Generator '{namespace}' is not registered")

        options = {**(options or {}), 'namespace': namespace}
        try:
            return generator_class(adapter, options)
        except Exception as e:
            raise SetupError(f"Generator '{namespace}' could not be created: {e}") from e

    @classmethod
    def from_config(cls, config) -> "GeneratorEnvironment":
        """
        Build an environment from WizardConfig.generators.

        Entries whose class can't be imported are logged and skipped, so
        selecting them later fails with a SetupError instead of breaking
        the whole environment.
        """
        env = cls()
        for name, entry in config.generators.items():
            try:
                generator_class = load_class(entry['class'])
                env.register(
                    generator_class,
                    name,
                    display_name=entry.get('display_name', ''),
                    description=entry.get('description', '')
                )
            except (ImportError, AttributeError, TypeError, ValueError) as e:
                logger.error(f"Could not load generator '{name}' ({entry.get('class')}): {e}")
        return env


def load_class(path: str) -> type:
    """
    Import 'package.module:ClassName'.

    Raises:
        ValueError: If path has no ':' separator
        ImportError / AttributeError: If the module or class is missing
    """
    module_name, sep, class_name = path.partition(':')
    if not sep or not module_name or not class_name:
        raise ValueError(f"Expected 'module:ClassName', got '{path}'")
    module = importlib.import_module(module_name)
    return getattr(module, class_name)
