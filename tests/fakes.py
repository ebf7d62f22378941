"""In-memory collaborators for orchestrator, gate and collector tests."""

import asyncio
import json

from agents.oracle import GenerationOracle, OracleEvent
from config.targets import CHECK_COMMANDS
from core.collector import MARKER, WALK_SCRIPT
from core.errors import SandboxExecutionError
from core.sandbox import SandboxProvider
from core.state import ExecResult, SandboxSession

_CHECK_BY_COMMAND = {cmd: name for name, cmd in CHECK_COMMANDS.items()}

FAILURE_OUTPUT = {
    "install": "ERROR: Could not find a version that satisfies the requirement nope",
    "lint": "src/pkg/plugin.py:3:1: F401 'os' imported but unused\n"
            "src/pkg/plugin.py:9:80: E501 line too long (120 > 100 characters)",
    "typecheck": "src/pkg/plugin.py:5: error: Incompatible return value type\nFound 1 error in 1 file",
    "build": "error: invalid command 'bdist_wheel'",
    "test": "FAILED tests/test_smoke.py::test_package_imports\n1 failed, 1 passed in 0.12s",
}


class FakeSandbox(SandboxProvider):
    """Sandbox whose gate outcomes are scripted per validation round.

    outcomes is a list of {check_name: passed}; round N uses entry N-1 and
    the last entry repeats. Checks missing from an entry pass.
    """

    name = "fake"
    local_filesystem = True

    def __init__(self, outcomes=None, fail_create=False, fail_write=False):
        self.outcomes = list(outcomes or [{}])
        self.fail_create = fail_create
        self.fail_write = fail_write
        self.created = 0
        self.destroyed = 0
        self.rounds = 0
        self.sessions = []
        self.files = {}
        self.commands = []

    def create(self):
        if self.fail_create:
            raise SandboxExecutionError("sandbox backend unreachable")
        self.created += 1
        session = SandboxSession(id=f"fake-{self.created}",
                                 working_directory=f"/sandbox/fake-{self.created}")
        self.files[session.id] = {}
        self.sessions.append(session)
        return session

    def execute(self, session, command):
        if not session.active:
            raise SandboxExecutionError(f"Session {session.id} is destroyed")
        self.commands.append(command)

        if command.args[:2] == ("-c", WALK_SCRIPT):
            listing = [{"path": p, "content": c} for p, c in sorted(self.files[session.id].items())]
            return ExecResult(output=MARKER + json.dumps(listing))

        check = _CHECK_BY_COMMAND.get(command)
        if check is None:
            return ExecResult(output="")
        if check == "install":
            self.rounds += 1
        outcome = self.outcomes[min(max(self.rounds, 1), len(self.outcomes)) - 1]
        if outcome.get(check, True):
            return ExecResult(output="ok")
        return ExecResult(output=FAILURE_OUTPUT[check], exit_code=1)

    def write_files(self, session, files):
        if not session.active:
            raise SandboxExecutionError(f"Session {session.id} is destroyed")
        if self.fail_write:
            raise RuntimeError("disk full")
        for f in files:
            self.files[session.id][f.path] = f.content
        return [f.path for f in files]

    def _teardown(self, session):
        self.destroyed += 1

    def files_of(self, index=0):
        return self.files[self.sessions[index].id]


class FakeOracle(GenerationOracle):
    """Returns scripted replies; security review prompts get security_reply."""

    name = "fake"

    def __init__(self, responses=None, default="", security_reply="NO ISSUES",
                 delay=0, error=None, edits_in_place=False):
        self.responses = list(responses or [])
        self.default = default
        self.security_reply = security_reply
        self.delay = delay
        self.error = error
        self.edits_in_place = edits_in_place
        self.prompts = []
        self.cwds = []

    @property
    def generation_prompts(self):
        return [p for p in self.prompts if "security reviewer" not in p]

    async def query(self, prompt, turn_budget=1, cwd=None):
        self.prompts.append(prompt)
        self.cwds.append(cwd)
        if self.delay:
            await asyncio.sleep(self.delay)
        if "security reviewer" in prompt:
            text = self.security_reply
        else:
            if self.error:
                raise self.error
            text = self.responses.pop(0) if self.responses else self.default
        yield OracleEvent(type="text", text=text)
        yield OracleEvent(type="done")
