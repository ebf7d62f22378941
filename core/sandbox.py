"""Sandbox providers: ephemeral working directories that run commands.

The orchestrator and gate only know the SandboxProvider contract. A provider
runs a structured Command inside a session's working directory and returns
captured output plus an exit indicator.
"""

import logging
import os
import shutil
import subprocess
import sys
import tempfile
import uuid
from abc import ABC, abstractmethod

from config.defaults import DEFAULTS
from core.errors import SandboxExecutionError
from core.state import ExecResult, SandboxSession, SESSION_DESTROYED

logger = logging.getLogger(__name__)


class SandboxProvider(ABC):
    """Creates, drives and destroys sandbox sessions."""

    name = "base"
    available = True
    # True when session working directories are paths on this machine
    local_filesystem = False

    @abstractmethod
    def create(self) -> SandboxSession:
        """Create a fresh session with its own working directory."""

    @abstractmethod
    def execute(self, session: SandboxSession, command) -> ExecResult:
        """Run one Command in the session and return its captured output."""

    @abstractmethod
    def write_files(self, session: SandboxSession, files):
        """Write FileEntry objects into the session's working directory."""

    @abstractmethod
    def _teardown(self, session: SandboxSession):
        """Release the provider-side resources for a session."""

    def destroy(self, session: SandboxSession):
        """Destroy a session. Calling it again on the same session is a no-op."""
        if not session.active:
            return
        try:
            self._teardown(session)
        finally:
            session.state = SESSION_DESTROYED
            logger.info("Destroyed sandbox session %s", session.id)


class NullSandboxProvider(SandboxProvider):
    """Stands in when no execution environment exists. Selects the degraded path."""

    name = "none"
    available = False

    def create(self):
        raise SandboxExecutionError("No sandbox provider is configured")

    def execute(self, session, command):
        return ExecResult(output="", error="No sandbox provider is configured", exit_code=-1)

    def write_files(self, session, files):
        raise SandboxExecutionError("No sandbox provider is configured")

    def _teardown(self, session):
        pass


def _check_containment(root, relative_path):
    """Resolve relative_path under root, refusing anything that escapes it."""
    resolved = os.path.realpath(os.path.join(root, relative_path))
    if not resolved.startswith(os.path.realpath(root) + os.sep):
        raise SandboxExecutionError(f"Path escapes working directory: {relative_path}")
    return resolved


class LocalSandboxProvider(SandboxProvider):
    """Temp-directory sandbox running allowlisted commands as subprocesses."""

    name = "local"
    local_filesystem = True

    def __init__(self, base_dir=None, allowed_commands=None):
        self.base_dir = base_dir
        self.allowed_commands = list(allowed_commands or DEFAULTS["allowed_commands"])

    def create(self):
        work_dir = tempfile.mkdtemp(prefix="autocoder_", dir=self.base_dir)
        session = SandboxSession(id=uuid.uuid4().hex[:12], working_directory=work_dir)
        logger.info("Created local sandbox session %s at %s", session.id, work_dir)
        return session

    def _resolve_program(self, session, program):
        """Map the logical "python" program onto the session's venv when present."""
        if program != "python":
            return program
        if os.name == "nt":
            venv_python = os.path.join(session.working_directory, ".venv", "Scripts", "python.exe")
        else:
            venv_python = os.path.join(session.working_directory, ".venv", "bin", "python")
        if os.path.isfile(venv_python):
            return venv_python
        return sys.executable

    def execute(self, session, command):
        """Run a command inside the session.

        Raises:
            SandboxExecutionError: If the session is gone, the command is not
                in the allowlist, or the cwd is invalid.
        """
        if not session.active:
            raise SandboxExecutionError(f"Session {session.id} is destroyed")

        if command.program not in self.allowed_commands:
            raise SandboxExecutionError(
                f"Command '{command.program}' not in allowlist: {self.allowed_commands}"
            )

        cwd = session.working_directory
        if command.cwd:
            cwd = _check_containment(session.working_directory, command.cwd)
        if not os.path.isdir(cwd):
            raise SandboxExecutionError(f"Working directory does not exist: {cwd}")

        argv = [self._resolve_program(session, command.program), *command.args]
        logger.debug("sandbox %s: %s", session.id, " ".join(command.argv()))
        try:
            result = subprocess.run(
                argv,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=command.timeout,
            )
        except subprocess.TimeoutExpired:
            return ExecResult(output="", error=f"Command timed out after {command.timeout}s",
                              exit_code=-1)
        except FileNotFoundError:
            return ExecResult(output="", error=f"Command not found: {command.program}",
                              exit_code=-1)

        output = result.stdout
        if result.stderr:
            output = f"{output}\n{result.stderr}" if output else result.stderr
        return ExecResult(output=output, exit_code=result.returncode)

    def write_files(self, session, files):
        if not session.active:
            raise SandboxExecutionError(f"Session {session.id} is destroyed")
        written = []
        for f in files:
            resolved = _check_containment(session.working_directory, f.path)
            os.makedirs(os.path.dirname(resolved), exist_ok=True)
            with open(resolved, "w", encoding="utf-8") as fp:
                fp.write(f.content)
            written.append(f.path)
        return written

    def _teardown(self, session):
        shutil.rmtree(session.working_directory, ignore_errors=True)


def get_sandbox_provider(name):
    """Build a provider by name: "local", "e2b" or "none"."""
    if name == "local":
        return LocalSandboxProvider()
    if name == "e2b":
        from core.e2b_sandbox import E2BSandboxProvider
        return E2BSandboxProvider()
    if name in ("none", "", None):
        return NullSandboxProvider()
    raise ValueError(f"Unknown sandbox provider: {name}")
