"""Terminal UI: batch confirmation, progress and output formatting."""

from kubelens.ui.confirmation import ConfirmationManager
from kubelens.ui.output import ConsoleProgress, OutputFormatter

__all__ = [
    "ConfirmationManager",
    "ConsoleProgress",
    "OutputFormatter",
]
