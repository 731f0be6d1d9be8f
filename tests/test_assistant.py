"""Tests for the interactive session and the CLI entry point."""

from unittest.mock import MagicMock, patch

import pytest

from cora.actions import DisplayMessage, Quit, RunCommand
from cora.assistant import Assistant
from cora.config import APIConfig, CoraConfig
from cora.errors import ModelError, ProcessStartError
from cora.main import main
from cora.ui.prompts import ConfirmationResult


@pytest.fixture
def assistant(mock_ui, mock_prompts, mock_client, mock_shell):
    mock_shell.process_name = "bash"
    assistant = Assistant(
        config=CoraConfig(api=APIConfig(api_key="k")),
        ui=mock_ui,
        prompts=mock_prompts,
        audit=MagicMock(),
    )
    assistant.start(client=mock_client, shell=mock_shell)
    return assistant


class TestHandleInput:
    """Test Assistant.handle_input."""

    def test_blank_input_shows_hint(self, assistant, mock_ui, mock_client):
        assert assistant.handle_input("   ") is True
        mock_ui.print_system.assert_called_once_with("Use /help to see a list of commands.")
        mock_client.respond.assert_not_called()

    def test_request_is_dispatched(self, assistant, mock_client, mock_ui):
        mock_client.respond.return_value = DisplayMessage("Hi!")

        assert assistant.handle_input("hello") is True

        mock_client.respond.assert_called_once_with("hello")
        mock_ui.print_chat.assert_called_once_with("Hi!")
        assistant.audit.log_user_query.assert_called_once_with("hello")

    def test_run_command_round_trip(self, assistant, mock_client, mock_shell):
        mock_client.respond.return_value = RunCommand("ls")
        assistant.handle_input("list files")
        mock_shell.execute.assert_called_once_with("ls")

    def test_quit_action_stops(self, assistant, mock_client):
        mock_client.respond.return_value = Quit()
        assert assistant.handle_input("bye") is False

    def test_declined_retry_stops(self, assistant, mock_client, mock_prompts):
        """A failed request the user does not retry ends the session."""
        mock_client.respond.side_effect = ModelError("offline")
        mock_prompts.confirm.return_value = ConfirmationResult.NO

        assert assistant.handle_input("hello") is False

    def test_retry_then_success(self, assistant, mock_client, mock_ui):
        mock_client.respond.side_effect = [ModelError("offline"), DisplayMessage("Back")]
        assert assistant.handle_input("hello") is True
        mock_ui.print_chat.assert_called_once_with("Back")


class TestSlashCommands:
    """Test built-in commands."""

    def test_help(self, assistant, mock_ui):
        assert assistant.handle_input("/help") is True
        names = [name for name, _ in mock_ui.print_help.call_args[0][0]]
        assert names == ["help", "debug", "reset", "exit"]

    def test_debug_toggles(self, assistant, mock_ui):
        assistant.handle_input("/debug")
        assert mock_ui.debug_output is True
        mock_ui.print_status.assert_called_once_with(True)

    def test_reset(self, assistant, mock_shell, mock_ui):
        assistant.handle_input("/reset")
        mock_shell.reset.assert_called_once()
        mock_ui.print_system.assert_called_with("The shell was restarted.")

    def test_exit(self, assistant):
        assert assistant.handle_input("/EXIT") is False

    def test_unknown(self, assistant, mock_ui, mock_client):
        assert assistant.handle_input("/frobnicate") is True
        mock_ui.print_system.assert_any_call("Unknown command: frobnicate")
        mock_client.respond.assert_not_called()


class TestLifecycle:
    """Test starting and stopping sessions."""

    def test_shutdown_terminates_shell(self, assistant, mock_shell):
        assistant.shutdown()
        mock_shell.terminate.assert_called_once()

    def test_run_once(self, assistant, mock_client, mock_shell):
        mock_client.respond.return_value = DisplayMessage("Done")
        with patch.object(assistant, "start"):
            assert assistant.run_once("do it") == 0
        mock_shell.terminate.assert_called_once()

    def test_run_reports_start_failure(self, mock_ui, mock_prompts):
        assistant = Assistant(
            config=CoraConfig(api=APIConfig(api_key="k")),
            ui=mock_ui,
            prompts=mock_prompts,
            audit=MagicMock(),
        )
        with patch("cora.assistant.ShellSession.create",
                   side_effect=ProcessStartError("spawn failed", user_message="No shell")):
            assert assistant.run_once("x") == 1
        mock_ui.print_error.assert_called_once_with("No shell")

    def test_run_loop_until_eof(self, assistant, mock_ui, mock_client, isolated_config):
        mock_client.respond.return_value = DisplayMessage("Hi")
        session = MagicMock()
        session.prompt.side_effect = ["hello", KeyboardInterrupt, EOFError]

        with patch.object(assistant, "start"), \
                patch("cora.assistant.PromptSession", return_value=session):
            assert assistant.run() == 0

        mock_ui.print_chat.assert_called_once_with("Hi")
        mock_ui.print_system.assert_called_with("Goodbye!")
        assistant.shell.terminate.assert_called_once()


class TestMain:
    """Test the command-line entry point."""

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert "CORA version" in capsys.readouterr().out

    def test_single_prompt(self, isolated_config):
        with patch("cora.assistant.Assistant.run_once", return_value=0) as run_once, \
                patch("cora.assistant.configure_logging"):
            assert main(["--shell", "pwsh", "list", "files"]) == 0
        run_once.assert_called_once_with("list files")

    def test_shell_override(self, isolated_config):
        with patch("cora.assistant.Assistant.run", return_value=0), \
                patch("cora.assistant.configure_logging"):
            main(["--shell", "pwsh", "--provider", "openai"])

        from cora.config import get_config
        config = get_config()
        assert config.shell.process_name == "pwsh"
        assert config.api.provider == "openai"
