"""Pipeline data models shared across all stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

TARGET_TYPES = ("plugin", "agent", "workflow", "integration", "full-stack")

CHECK_NAMES = ("install", "lint", "typecheck", "build", "test", "security")

SESSION_ACTIVE = "active"
SESSION_DESTROYED = "destroyed"


@dataclass(frozen=True)
class FileEntry:
    path: str           # relative path e.g. "src/weather/__init__.py"
    content: str


@dataclass(frozen=True)
class GenerationRequest:
    project_name: str
    description: str
    target_type: str = "plugin"
    requirements: tuple[str, ...] = ()
    external_apis: tuple[str, ...] = ()
    test_scenarios: tuple[str, ...] = ()
    publish_target: str | None = None

    def __post_init__(self):
        if self.target_type not in TARGET_TYPES:
            raise ValueError(
                f"Unknown target type '{self.target_type}', expected one of {TARGET_TYPES}"
            )
        if not self.project_name.strip():
            raise ValueError("project_name must not be empty")
        # Accept lists from callers but store tuples so the request stays immutable
        for name in ("requirements", "external_apis", "test_scenarios"):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))


@dataclass(frozen=True)
class Command:
    """One unit of sandbox work. The provider decides how to run it."""
    program: str
    args: tuple[str, ...] = ()
    timeout: int = 60
    cwd: str | None = None   # relative to the session working directory

    def argv(self):
        return [self.program, *self.args]


@dataclass(frozen=True)
class ExecResult:
    output: str
    error: str | None = None
    exit_code: int = 0

    @property
    def ok(self):
        return self.error is None and self.exit_code == 0


@dataclass
class SandboxSession:
    id: str
    working_directory: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    state: str = SESSION_ACTIVE

    @property
    def active(self):
        return self.state == SESSION_ACTIVE


@dataclass(frozen=True)
class CheckResult:
    check: str           # one of CHECK_NAMES
    passed: bool
    error_count: int = 0
    diagnostics: tuple[str, ...] = ()


@dataclass(frozen=True)
class ValidationResult:
    checks: tuple[CheckResult, ...]

    @property
    def all_passed(self):
        return bool(self.checks) and all(c.passed for c in self.checks)

    @property
    def failed_checks(self):
        return [c for c in self.checks if not c.passed]

    def get(self, name):
        for c in self.checks:
            if c.check == name:
                return c
        return None

    def to_dict(self):
        return {
            "all_passed": self.all_passed,
            "checks": [
                {
                    "check": c.check,
                    "passed": c.passed,
                    "error_count": c.error_count,
                    "diagnostics": list(c.diagnostics),
                }
                for c in self.checks
            ],
        }


@dataclass(frozen=True)
class Iteration:
    index: int
    prompt: str
    oracle_output: str
    validation: ValidationResult


@dataclass(frozen=True)
class GenerationResult:
    success: bool
    files: tuple[FileEntry, ...] = ()
    execution_results: ValidationResult | None = None
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    iterations: tuple[Iteration, ...] = ()
    strategy: str = "sandbox"           # sandbox | degraded | chunked
    project_path: str | None = None

    def to_dict(self):
        return {
            "success": self.success,
            "strategy": self.strategy,
            "project_path": self.project_path,
            "files": [{"path": f.path, "content": f.content} for f in self.files],
            "execution_results": (
                self.execution_results.to_dict() if self.execution_results else None
            ),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
            "iterations": [
                {
                    "index": it.index,
                    "all_passed": it.validation.all_passed,
                    "failed_checks": [c.check for c in it.validation.failed_checks],
                }
                for it in self.iterations
            ],
        }
