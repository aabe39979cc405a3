"""
Run lifecycle notifications pushed to the UI.
"""

from typing import Optional


class WizardEvents:
    """Sends 'generatorDone' / 'generatorInstall' notifications over the transport"""

    def __init__(self, rpc):
        self.rpc = rpc

    def do_generator_done(self, success: bool, message: str, target_path: Optional[str] = None) -> None:
        """
        Report the terminal outcome of a run.

        Args:
            success: Whether the run completed
            message: Success message or normalized error description
            target_path: Working directory of a successful run
        """
        self.rpc.notify('generatorDone', [success, message, target_path])

    def do_generator_install(self) -> None:
        self.rpc.notify('generatorInstall', [])

    def set_state(self, messages) -> None:
        """Push host-defined UI state (messages, labels) to the UI."""
        self.rpc.notify('setState', [messages])
