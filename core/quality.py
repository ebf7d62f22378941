"""Validation gate — the fixed install/lint/typecheck/build/test/security sequence."""

import asyncio
import logging
import re

from config.targets import CHECK_COMMANDS, SECURITY_TIMEOUT
from core.collector import ArtifactCollector
from core.errors import SandboxExecutionError
from core.state import CHECK_NAMES, CheckResult, ValidationResult

logger = logging.getLogger(__name__)

MAX_DIAGNOSTICS = 20

_FLAKE8_LINE = re.compile(r"^\S+?:\d+:\d+: [A-Z]\d+ ")
_MYPY_FOUND = re.compile(r"Found (\d+) errors?")
_PYTEST_FAILED = re.compile(r"(\d+) failed")
_PYTEST_ERRORS = re.compile(r"(\d+) errors?\b")


def count_errors(check, output):
    """Best-effort error count for one check's output."""
    if check == "lint":
        return sum(1 for line in output.splitlines() if _FLAKE8_LINE.match(line))
    if check == "typecheck":
        m = _MYPY_FOUND.search(output)
        if m:
            return int(m.group(1))
    if check == "test":
        total = 0
        for pattern in (_PYTEST_FAILED, _PYTEST_ERRORS):
            m = pattern.search(output)
            if m:
                total += int(m.group(1))
        if total:
            return total
    return sum(1 for line in output.splitlines() if "error" in line.lower())


def diagnostics_from(output, limit=MAX_DIAGNOSTICS):
    """Keep the tail of a tool's output, where the failures are reported."""
    lines = [line.rstrip() for line in output.splitlines() if line.strip()]
    return tuple(lines[-limit:])


def _failed(check, message):
    return CheckResult(check=check, passed=False, error_count=1, diagnostics=(message,))


class ValidationGate:
    """Runs every check against a session and aggregates the verdict.

    Each check races its own timeout. A check that cannot run is recorded as
    failed with a synthetic diagnostic and the remaining checks still run.
    """

    def __init__(self, sandbox_provider, security_reviewer, checks=None):
        self.sandbox_provider = sandbox_provider
        self.security_reviewer = security_reviewer
        self.checks = dict(checks or CHECK_COMMANDS)
        self.collector = ArtifactCollector(sandbox_provider)

    async def validate(self, session):
        results = []
        for name in CHECK_NAMES:
            if name == "security":
                result = await self._run_security(session)
            else:
                result = await self._run_command_check(session, name)
            level = logging.INFO if result.passed else logging.WARNING
            logger.log(level, "check %-9s %s (%d error(s))", name,
                       "passed" if result.passed else "FAILED", result.error_count)
            results.append(result)
        return ValidationResult(checks=tuple(results))

    async def _run_command_check(self, session, name):
        command = self.checks.get(name)
        if command is None:
            return _failed(name, f"No command configured for check '{name}'")

        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(self.sandbox_provider.execute, session, command),
                command.timeout,
            )
        except asyncio.TimeoutError:
            return _failed(name, f"{name} timed out after {command.timeout}s")
        except SandboxExecutionError as e:
            return _failed(name, f"{name} could not run: {e}")
        except Exception as e:
            logger.exception("Unexpected failure running %s", name)
            return _failed(name, f"{name} crashed: {type(e).__name__}: {e}")

        if result.ok:
            return CheckResult(check=name, passed=True)

        output = result.output or ""
        if result.error:
            output = f"{output}\n{result.error}" if output else result.error
        return CheckResult(
            check=name,
            passed=False,
            error_count=max(count_errors(name, output), 1),
            diagnostics=diagnostics_from(output),
        )

    async def _run_security(self, session):
        try:
            files = await asyncio.to_thread(self.collector.collect, session)
            issues = await asyncio.wait_for(
                self.security_reviewer.review(files, timeout=SECURITY_TIMEOUT),
                SECURITY_TIMEOUT,
            )
        except asyncio.TimeoutError:
            return _failed("security", f"security review timed out after {SECURITY_TIMEOUT}s")
        except Exception as e:
            logger.warning("Security review could not run: %s", e)
            return _failed("security", f"security review could not run: {e}")

        return CheckResult(
            check="security",
            passed=not issues,
            error_count=len(issues),
            diagnostics=tuple(issues[:MAX_DIAGNOSTICS]),
        )
