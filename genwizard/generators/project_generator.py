"""
Sample generators bundled with genwizard.

ProjectGenerator scaffolds a library or a service. Its later steps depend
on earlier answers (service -> port, library -> package name), which is
what makes back navigation need a full restart and replay.
"""

import json
import logging
import os
import re

from genwizard.core.generator_engine import Generator

logger = logging.getLogger(__name__)

PROJECT_TYPES = ['library', 'service']
_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_-]*$")


def validate_project_name(value, answers=None):
    """Inquirer-style validator: True, or an error message."""
    if not value:
        return "Project name is required"
    if not _NAME_PATTERN.match(value):
        return "Use lowercase letters, digits, '-' or '_' (starting with a letter)"
    return True


def validate_port(value, answers=None):
    try:
        port = int(value)
    except (TypeError, ValueError):
        return "Port must be a number"
    if not 1024 <= port <= 65535:
        return "Port must be between 1024 and 65535"
    return True


class ProjectGenerator(Generator):
    """Scaffolds a small project directory"""

    STEPS = [
        {'name': 'Project Name', 'description': 'Name of the project directory'},
        {'name': 'Project Type', 'description': 'Library or service'},
        {'name': 'Details', 'description': 'Type specific settings'},
        {'name': 'Confirm', 'description': 'Review and generate'}
    ]

    def __init__(self, adapter, options=None):
        super().__init__(adapter, options)
        self._prompts_callback = None
        self.installed = False

    def set_prompts_callback(self, callback):
        self._prompts_callback = callback

    def initializing(self):
        if self._prompts_callback:
            self._prompts_callback(self.STEPS)

    async def prompting(self):
        self.answers.update(await self.prompt([
            {
                'type': 'input',
                'name': 'projectName',
                'message': 'Project name',
                'default': 'my-project',
                'validate': validate_project_name
            }
        ]))

        self.answers.update(await self.prompt([
            {
                'type': 'list',
                'name': 'projectType',
                'message': 'What kind of project?',
                'choices': PROJECT_TYPES,
                'default': PROJECT_TYPES[0]
            }
        ]))

        if self.answers.get('projectType') == 'service':
            details = [
                {
                    'type': 'input',
                    'name': 'port',
                    'message': 'Port the service listens on',
                    'default': '8080',
                    'validate': validate_port
                }
            ]
        else:
            details = [
                {
                    'type': 'input',
                    'name': 'packageName',
                    'message': 'Import package name',
                    'default': self.answers.get('projectName', '').replace('-', '_'),
                    'filter': lambda value: value.strip().replace('-', '_')
                }
            ]
        self.answers.update(await self.prompt(details))

        self.answers.update(await self.prompt([
            {
                'type': 'confirm',
                'name': 'confirmed',
                'message': f"Generate {self.answers.get('projectType')} "
                           f"'{self.answers.get('projectName')}'?",
                'default': True
            }
        ]))

    def writing(self):
        if not self.answers.get('confirmed'):
            logger.info(f"{self.namespace}: generation declined, nothing written")
            return

        project_dir = self.destination_path(self.answers['projectName'])
        os.makedirs(project_dir, exist_ok=True)

        with open(os.path.join(project_dir, 'project.json'), 'w') as f:
            json.dump(self.answers, f, indent=2, ensure_ascii=False)

        with open(os.path.join(project_dir, 'README.md'), 'w') as f:
            f.write(f"# {self.answers['projectName']}\n\nA {self.answers['projectType']} project.\n")

        logger.info(f"{self.namespace}: wrote project to {project_dir}")

    def install(self):
        self.installed = True

    def end(self):
        if self.answers.get('confirmed'):
            self.destination_root(self.destination_path(self.answers['projectName']))


class GreetingGenerator(Generator):
    """Single-step generator, handy for smoke tests"""

    async def prompting(self):
        self.answers = await self.prompt([
            {'type': 'input', 'name': 'greeting', 'message': 'Say something', 'default': 'hello'}
        ])
