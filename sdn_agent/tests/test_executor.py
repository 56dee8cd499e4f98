"""Tests for node command execution."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from sdn_agent.errors import NodeCommandError
from sdn_agent.executor import CommandResult, LocalNodeExecutor, SshNodeExecutor


def completed(returncode=0, stdout="", stderr=""):
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


def test_run_returns_output():
    executor = LocalNodeExecutor(use_sudo=False, timeout=5)

    with patch("sdn_agent.executor.subprocess.run", return_value=completed(0, "bridges\n")) as run:
        result = executor.run(["brctl", "show"])

    assert result == CommandResult(0, "bridges\n", "")
    assert result.ok
    run.assert_called_once_with(["brctl", "show"], capture_output=True, text=True, input=None, timeout=5)


def test_sudo_prefix_when_enabled():
    executor = LocalNodeExecutor(use_sudo=True, timeout=5)

    with patch("sdn_agent.executor.subprocess.run", return_value=completed()) as run:
        executor.run(["brctl", "show"], sudo=True)

    assert run.call_args.args[0] == ["sudo", "-E", "-n", "brctl", "show"]


def test_sudo_skipped_when_disabled():
    executor = LocalNodeExecutor(use_sudo=False, timeout=5)

    with patch("sdn_agent.executor.subprocess.run", return_value=completed()) as run:
        executor.run(["brctl", "show"], sudo=True)

    assert run.call_args.args[0] == ["brctl", "show"]


def test_timeout_becomes_failed_result():
    executor = LocalNodeExecutor(use_sudo=False, timeout=1)

    with patch("sdn_agent.executor.subprocess.run", side_effect=subprocess.TimeoutExpired("x", 1)):
        result = executor.run(["sleep", "10"])

    assert result.returncode == 1
    assert "timed out" in result.stderr


def test_missing_program_becomes_failed_result():
    executor = LocalNodeExecutor(use_sudo=False, timeout=1)

    with patch("sdn_agent.executor.subprocess.run", side_effect=FileNotFoundError("brctl")):
        result = executor.run(["brctl", "show"])

    assert not result.ok


def test_run_checked_raises():
    executor = LocalNodeExecutor(use_sudo=False, timeout=5)

    with patch("sdn_agent.executor.subprocess.run", return_value=completed(3, "", "no such bridge")):
        with pytest.raises(NodeCommandError) as exc_info:
            executor.run_checked(["brctl", "delbr", "x"])

    assert exc_info.value.returncode == 3
    assert "no such bridge" in str(exc_info.value)


def test_put_file_pipes_contents_and_sets_mode():
    executor = LocalNodeExecutor(use_sudo=False, timeout=5)

    with patch("sdn_agent.executor.subprocess.run", return_value=completed()) as run:
        executor.put_file("/tmp/network.sh", "#!/bin/sh\n", mode="755")

    first, second = run.call_args_list
    assert first.args[0] == ["tee", "/tmp/network.sh"]
    assert first.kwargs["input"] == "#!/bin/sh\n"
    assert second.args[0] == ["chmod", "755", "/tmp/network.sh"]


def test_combined_output():
    assert CommandResult(0, "a\n", "b\n").output == "a\nb\n"
    assert CommandResult(0, "a\n", "").output == "a\n"


def test_ssh_executor_wraps_command():
    executor = SshNodeExecutor("root@node1", use_sudo=True, timeout=5)

    with patch("sdn_agent.executor.subprocess.run", return_value=completed()) as run:
        executor.run(["brctl", "show"], sudo=True)

    assert run.call_args.args[0] == [
        "ssh", "-o", "BatchMode=yes", "root@node1", "sudo -E -n brctl show",
    ]
