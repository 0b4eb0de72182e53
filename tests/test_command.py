"""Tests for the external command wrapper."""

import subprocess
from unittest.mock import Mock, patch

import pytest

from usagi_installer.lib.command import CommandError, run_cmd


@pytest.fixture
def mock_subprocess_run():
    with patch("usagi_installer.lib.command.subprocess.run") as mock_run:
        yield mock_run


class TestRunCmd:
    def test_success(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=0, stdout="out", stderr="")

        result = run_cmd(["echo", "hi"])

        assert result.stdout == "out"
        assert result.returncode == 0
        args, kwargs = mock_subprocess_run.call_args
        assert args[0] == ["echo", "hi"]
        assert kwargs["stdout"] == subprocess.PIPE
        assert kwargs["text"] is True

    def test_failure_carries_exit_status(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=5, stdout="", stderr="No key available")

        with pytest.raises(CommandError) as exc:
            run_cmd(["cryptsetup", "open", "/dev/nvme0n1p3", "cryptlvm"])

        assert exc.value.returncode == 5
        assert exc.value.argv[0] == "cryptsetup"
        assert "No key available" in str(exc.value)

    def test_unchecked_failure_returns_result(self, mock_subprocess_run):
        mock_subprocess_run.return_value = Mock(returncode=1, stdout="", stderr="")

        assert run_cmd(["false"], check=False).returncode == 1

    def test_dry_run_executes_nothing(self, mock_subprocess_run):
        result = run_cmd(["parted", "-s", "/dev/nvme0n1", "mklabel", "gpt"], dry_run=True)

        assert result.returncode == 0
        mock_subprocess_run.assert_not_called()

    def test_stdin_not_logged(self, mock_subprocess_run, caplog):
        mock_subprocess_run.return_value = Mock(returncode=0, stdout="", stderr="")

        with caplog.at_level("DEBUG"):
            run_cmd(["chpasswd"], input_text="root:hunter2\n")

        assert mock_subprocess_run.call_args.kwargs["input"] == "root:hunter2\n"
        assert "hunter2" not in caplog.text
