"""Tests for core.quality — the validation gate."""

import asyncio
import time

from agents.security import SecurityReviewer
from core.errors import SandboxExecutionError
from core.quality import ValidationGate, count_errors, diagnostics_from
from core.state import CHECK_NAMES, Command, FileEntry
from fakes import FakeOracle, FakeSandbox


def _validate(sandbox, reviewer=None, checks=None, files=()):
    session = sandbox.create()
    if files:
        sandbox.write_files(session, list(files))
    gate = ValidationGate(sandbox, reviewer or SecurityReviewer(), checks=checks)
    return asyncio.run(gate.validate(session))


def test_all_checks_pass():
    result = _validate(FakeSandbox())
    assert [c.check for c in result.checks] == list(CHECK_NAMES)
    assert result.all_passed
    assert result.failed_checks == []


def test_single_failure_fails_gate():
    result = _validate(FakeSandbox(outcomes=[{"typecheck": False}]))
    assert not result.all_passed
    typecheck = result.get("typecheck")
    assert typecheck.error_count == 1
    assert any("Incompatible return value" in d for d in typecheck.diagnostics)
    assert all(c.passed for c in result.checks if c.check != "typecheck")


def test_test_failure_counts_failed_tests():
    result = _validate(FakeSandbox(outcomes=[{"test": False}]))
    assert result.get("test").error_count == 1


class _RaisingSandbox(FakeSandbox):
    def execute(self, session, command):
        if command.args[:3] == ("-m", "mypy", "src"):
            raise SandboxExecutionError("mypy is not installed")
        return super().execute(session, command)


def test_check_that_cannot_run_is_recorded_and_others_still_run():
    result = _validate(_RaisingSandbox())
    typecheck = result.get("typecheck")
    assert not typecheck.passed
    assert typecheck.diagnostics == ("typecheck could not run: mypy is not installed",)
    assert result.get("build").passed
    assert result.get("test").passed
    assert result.get("security").passed


class _SlowSandbox(FakeSandbox):
    def execute(self, session, command):
        if command.program == "slow":
            time.sleep(0.5)
        return super().execute(session, command)


def test_check_timeout_is_a_failed_check():
    from config.targets import CHECK_COMMANDS

    checks = dict(CHECK_COMMANDS)
    checks["lint"] = Command("slow", timeout=0.1)
    result = _validate(_SlowSandbox(), checks=checks)
    lint = result.get("lint")
    assert not lint.passed
    assert "timed out" in lint.diagnostics[0]
    assert result.get("test").passed


def test_missing_check_command_fails_that_check():
    from config.targets import CHECK_COMMANDS

    checks = {k: v for k, v in CHECK_COMMANDS.items() if k != "build"}
    result = _validate(FakeSandbox(), checks=checks)
    assert not result.get("build").passed
    assert result.get("install").passed


def test_static_security_rule_fails_security_check():
    files = [FileEntry(path="src/pkg/client.py", content='API_KEY = "abcdef1234567890"\n')]
    result = _validate(FakeSandbox(), files=files)
    security = result.get("security")
    assert not security.passed
    assert security.diagnostics == ("src/pkg/client.py:1: Hardcoded secret or credential",)


def test_oracle_review_findings_fail_security_check():
    oracle = FakeOracle(security_reply="Review:\n- Unsafe use of yaml.load on user input\n- Looks tidy")
    files = [FileEntry(path="src/pkg/a.py", content="x = 1\n")]
    result = _validate(FakeSandbox(), reviewer=SecurityReviewer(oracle), files=files)
    security = result.get("security")
    assert security.error_count == 1
    assert "yaml.load" in security.diagnostics[0]


def test_security_review_crash_is_recorded():
    oracle = FakeOracle()
    reviewer = SecurityReviewer(oracle)

    async def broken(files, timeout=None):
        raise RuntimeError("model overloaded")

    reviewer.review = broken
    files = [FileEntry(path="src/pkg/a.py", content="x = 1\n")]
    result = _validate(FakeSandbox(), reviewer=reviewer, files=files)
    security = result.get("security")
    assert not security.passed
    assert "model overloaded" in security.diagnostics[0]
    assert result.get("lint").passed


def test_count_errors_by_tool():
    assert count_errors("typecheck", "a.py:1: error: x\nFound 3 errors in 2 files") == 3
    assert count_errors("test", "==== 2 failed, 1 error, 4 passed in 1.2s ====") == 3
    assert count_errors("lint", "a.py:1:1: F401 unused\nnot a diagnostic") == 1
    assert count_errors("install", "ERROR: one\nerror: two\nfine") == 2
    assert count_errors("build", "") == 0


def test_diagnostics_keep_the_tail():
    output = "\n".join(f"line {i}" for i in range(50))
    diags = diagnostics_from(output)
    assert len(diags) == 20
    assert diags[-1] == "line 49"
