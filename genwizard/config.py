"""
Wizard configuration loaded from JSON.

Layout (data/wizard_config.json):
    {
      "version": "1.0",
      "output_path": "~/projects",
      "response_timeout": 3600,
      "generators": {
        "project": {
          "class": "genwizard.generators.project_generator:ProjectGenerator",
          "display_name": "Project",
          "description": "Scaffold a library or a service"
        }
      }
    }
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "data/wizard_config.json"
DEFAULT_OUTPUT_PATH = os.path.join("~", "projects")
DEFAULT_RESPONSE_TIMEOUT = 3600.0


@dataclass
class WizardConfig:
    """
    Attributes:
        output_path: Working directory for generator runs (~ expanded)
        response_timeout: Seconds to wait for the UI to answer a request
        generators: name -> {'class', 'display_name', 'description'}
    """
    output_path: str = DEFAULT_OUTPUT_PATH
    response_timeout: float = DEFAULT_RESPONSE_TIMEOUT
    generators: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def __post_init__(self):
        self.output_path = os.path.expanduser(self.output_path)

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "WizardConfig":
        """
        Raises:
            ValueError: If a field has the wrong shape
        """
        generators = data.get('generators', {})
        if not isinstance(generators, dict):
            raise ValueError("'generators' must be an object")
        for name, entry in generators.items():
            if not isinstance(entry, dict) or not entry.get('class'):
                raise ValueError(f"Generator entry '{name}' must be an object with a 'class'")

        timeout = data.get('response_timeout', DEFAULT_RESPONSE_TIMEOUT)
        if not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError(f"'response_timeout' must be a positive number, got {timeout!r}")

        return WizardConfig(
            output_path=data.get('output_path') or DEFAULT_OUTPUT_PATH,
            response_timeout=float(timeout),
            generators=dict(generators)
        )


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> WizardConfig:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the config file

    Returns:
        WizardConfig

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the content is malformed
    """
    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Wizard config not found: {config_path}")

    with open(config_file, 'r') as f:
        data = json.load(f)

    config = WizardConfig.from_dict(data)
    logger.info(
        f"Wizard config loaded (version {data.get('version', 'unknown')}, "
        f"{len(config.generators)} generator(s))"
    )
    return config
