"""Unit tests for safe-mode batch confirmation."""

import pytest
from unittest.mock import Mock, patch

from kubelens.enums import BatchDecision
from kubelens.execution.base import Command
from kubelens.ui.confirmation import ConfirmationManager


COMMANDS = [Command.parse("kubectl get pods"), Command.parse("kubectl get nodes"), Command.parse("$ uptime")]


class TestConfirmationManager:
    """Tests for ConfirmationManager class."""

    @pytest.fixture
    def mock_console(self):
        """Create mock console."""
        return Mock()

    @pytest.fixture
    def manager(self, mock_console):
        """Create ConfirmationManager with mock console."""
        return ConfirmationManager(mock_console)

    def test_manager_creation(self):
        """Test ConfirmationManager initialization."""
        manager = ConfirmationManager()
        assert manager.console is not None

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_yes_runs_all(self, mock_ask, manager):
        """Test accepting the whole batch."""
        mock_ask.return_value = "y"
        assert manager.confirm_batch(COMMANDS) == [0, 1, 2]

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_no_runs_nothing(self, mock_ask, manager):
        """Test declining the whole batch."""
        mock_ask.return_value = "n"
        assert manager.confirm_batch(COMMANDS) == []

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_commands_listed(self, mock_ask, manager, mock_console):
        """Every command is shown before asking."""
        mock_ask.return_value = "y"
        manager.confirm_batch(COMMANDS)

        printed = " ".join(str(call) for call in mock_console.print.call_args_list)
        assert "kubectl get pods" in printed
        assert "$ uptime" in printed

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_edit_toggles(self, mock_ask, manager):
        """Test switching commands off in edit mode."""
        mock_ask.side_effect = ["e", "1, 3", ""]
        assert manager.confirm_batch(COMMANDS) == [1]

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_edit_toggle_back_on(self, mock_ask, manager):
        mock_ask.side_effect = ["e", "2", "2", ""]
        assert manager.confirm_batch(COMMANDS) == [0, 1, 2]

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_edit_ignores_invalid_numbers(self, mock_ask, manager, mock_console):
        mock_ask.side_effect = ["e", "9 x", ""]
        assert manager.confirm_batch(COMMANDS) == [0, 1, 2]

        printed = " ".join(str(call) for call in mock_console.print.call_args_list)
        assert "Ignoring '9'" in printed

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_interrupt_declines(self, mock_ask, manager):
        """Ctrl+C at the prompt runs nothing."""
        mock_ask.side_effect = KeyboardInterrupt
        assert manager.confirm_batch(COMMANDS) == []

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_interrupt_during_edit(self, mock_ask, manager):
        mock_ask.side_effect = ["e", KeyboardInterrupt]
        assert manager.confirm_batch(COMMANDS) == []

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_empty_batch_not_prompted(self, mock_ask, manager):
        assert manager.confirm_batch([]) == []
        mock_ask.assert_not_called()

    @patch('kubelens.ui.confirmation.Prompt.ask')
    def test_ask_decision(self, mock_ask, manager):
        mock_ask.return_value = "e"
        assert manager.ask_decision() is BatchDecision.EDIT
        assert mock_ask.call_args.kwargs["choices"] == ["y", "n", "e"]
        assert mock_ask.call_args.kwargs["default"] == "y"
