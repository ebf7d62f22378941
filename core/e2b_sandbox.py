"""E2B remote sandbox provider."""

import logging
import os
import posixpath
import shlex

from e2b import CommandExitException, TimeoutException
from e2b_code_interpreter import Sandbox

from core.errors import SandboxExecutionError
from core.sandbox import SandboxProvider
from core.state import ExecResult, SandboxSession

logger = logging.getLogger(__name__)

WORKSPACE_ROOT = "/home/user/workspace"

# "python" means the project's venv interpreter once it exists
_PYTHON_SHIM = 'PY=python3; [ -x .venv/bin/python ] && PY=.venv/bin/python; "$PY"'


class E2BSandboxProvider(SandboxProvider):
    """Runs each session in its own E2B sandbox, killed on destroy."""

    name = "e2b"

    def __init__(self, api_key=None, sandbox_timeout=1800):
        self.api_key = api_key or os.environ.get("E2B_API_KEY")
        self.sandbox_timeout = sandbox_timeout
        self._sandboxes = {}

    @property
    def available(self):
        return bool(self.api_key)

    def create(self):
        if not self.api_key:
            raise SandboxExecutionError("E2B_API_KEY environment variable is not set")
        sandbox = Sandbox.create(timeout=self.sandbox_timeout, api_key=self.api_key)
        try:
            sandbox.files.make_dir(WORKSPACE_ROOT)
        except Exception:
            # No session is handed out, so nobody else can kill it
            sandbox.kill()
            raise
        session = SandboxSession(id=sandbox.sandbox_id, working_directory=WORKSPACE_ROOT)
        self._sandboxes[session.id] = sandbox
        logger.info("Created E2B sandbox %s", session.id)
        return session

    def _sandbox(self, session):
        sandbox = self._sandboxes.get(session.id)
        if sandbox is None or not session.active:
            raise SandboxExecutionError(f"Session {session.id} is destroyed")
        return sandbox

    def _shell(self, command):
        args = shlex.join(command.args)
        if command.program == "python":
            return f"{_PYTHON_SHIM} {args}"
        return shlex.join(command.argv())

    def execute(self, session, command):
        sandbox = self._sandbox(session)
        cwd = session.working_directory
        if command.cwd:
            cwd = posixpath.normpath(posixpath.join(cwd, command.cwd))
            if not cwd.startswith(session.working_directory):
                raise SandboxExecutionError(f"Path escapes working directory: {command.cwd}")

        try:
            result = sandbox.commands.run(self._shell(command), cwd=cwd, timeout=command.timeout)
        except CommandExitException as e:
            output = "\n".join(part for part in (e.stdout, e.stderr) if part)
            return ExecResult(output=output, exit_code=e.exit_code)
        except TimeoutException:
            return ExecResult(output="", error=f"Command timed out after {command.timeout}s",
                              exit_code=-1)

        output = "\n".join(part for part in (result.stdout, result.stderr) if part)
        return ExecResult(output=output, exit_code=result.exit_code)

    def write_files(self, session, files):
        sandbox = self._sandbox(session)
        written = []
        for f in files:
            path = posixpath.normpath(posixpath.join(session.working_directory, f.path))
            if not path.startswith(session.working_directory + "/"):
                raise SandboxExecutionError(f"Path escapes working directory: {f.path}")
            sandbox.files.write(path, f.content)
            written.append(f.path)
        return written

    def _teardown(self, session):
        sandbox = self._sandboxes.pop(session.id, None)
        if sandbox is not None:
            sandbox.kill()
