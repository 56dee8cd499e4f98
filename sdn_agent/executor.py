"""Node command execution.

Runs commands and stages files on the node hosting containers, either
locally or over SSH. Output is returned as text; callers interpret it.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sdn_agent.config import settings
from sdn_agent.errors import NodeCommandError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a node command."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, as a shell session would show it."""
        if self.stderr:
            return f"{self.stdout}{self.stderr}"
        return self.stdout


class NodeExecutor(ABC):
    """Runs commands on a target node."""

    def __init__(self, use_sudo: bool | None = None, timeout: float | None = None):
        self.use_sudo = settings.use_sudo if use_sudo is None else use_sudo
        self.timeout = settings.command_timeout if timeout is None else timeout

    @abstractmethod
    def _execute(self, cmd: list[str], input: str | None = None) -> CommandResult:
        """Execute a fully built command line."""
        ...

    def _wrap(self, cmd: list[str], sudo: bool) -> list[str]:
        if sudo and self.use_sudo:
            return ["sudo", "-E", "-n"] + cmd
        return cmd

    def run(self, cmd: list[str], sudo: bool = False, input: str | None = None) -> CommandResult:
        """Run a command on the node and return its result."""
        full_cmd = self._wrap(cmd, sudo)
        logger.debug(f"Running: {shlex.join(full_cmd)}")
        return self._execute(full_cmd, input=input)

    def run_checked(self, cmd: list[str], sudo: bool = False, input: str | None = None) -> CommandResult:
        """Run a command and raise NodeCommandError unless it exits zero."""
        result = self.run(cmd, sudo=sudo, input=input)
        if not result.ok:
            raise NodeCommandError(shlex.join(cmd), result.returncode, result.stderr)
        return result

    def run_script(self, script: str, sudo: bool = False) -> CommandResult:
        """Run a multi-line shell script, stopping at the first failure."""
        return self.run_checked(["bash", "-e", "-s"], sudo=sudo, input=script)

    def put_file(self, path: str, contents: str, mode: str | None = None, sudo: bool = False) -> None:
        """Write contents to a file on the node."""
        self.run_checked(["tee", path], sudo=sudo, input=contents)
        if mode:
            self.run_checked(["chmod", mode, path], sudo=sudo)
        logger.debug(f"Staged {len(contents)} bytes to {path}")


class LocalNodeExecutor(NodeExecutor):
    """Runs commands on this host."""

    def _execute(self, cmd: list[str], input: str | None = None) -> CommandResult:
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                input=input,
                timeout=self.timeout,
            )
            return CommandResult(result.returncode, result.stdout, result.stderr)
        except subprocess.TimeoutExpired:
            logger.error(f"Command timed out: {shlex.join(cmd)}")
            return CommandResult(1, "", "Command timed out")
        except OSError as e:
            logger.error(f"Command failed: {shlex.join(cmd)}: {e}")
            return CommandResult(1, "", str(e))


class SshNodeExecutor(LocalNodeExecutor):
    """Runs commands on a remote node through the ssh client."""

    def __init__(self, host: str, use_sudo: bool | None = None, timeout: float | None = None):
        super().__init__(use_sudo=use_sudo, timeout=timeout)
        self.host = host

    def _execute(self, cmd: list[str], input: str | None = None) -> CommandResult:
        ssh_cmd = ["ssh", "-o", "BatchMode=yes", self.host, shlex.join(cmd)]
        return super()._execute(ssh_cmd, input=input)


def get_node_executor() -> NodeExecutor:
    """Build the executor for the configured node."""
    if settings.node_host:
        return SshNodeExecutor(settings.node_host)
    return LocalNodeExecutor()
