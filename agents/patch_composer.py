"""Patch composer — turns a failed ValidationResult into fix instructions. Zero LLM calls."""

from core.state import FileEntry

# What to tell the oracle about each failing check
CHECK_HINTS = {
    "install": "Dependency installation failed. Fix pyproject.toml dependencies and packaging.",
    "lint": "Code has linting issues. Fix style and formatting problems.",
    "typecheck": "Type checking has errors. Fix type annotations and mismatches.",
    "build": "Build is failing. Ensure packaging metadata, imports and exports are correct.",
    "test": "Tests are failing. Review test output and fix the code or the tests.",
    "security": "Security review found issues. Remove the unsafe patterns listed below.",
}

MAX_DIAGNOSTICS = 15


def compose_feedback(validation):
    """Markdown summary of a failed ValidationResult, persisted between iterations."""
    lines = ["# Validation Results", ""]
    for check in validation.failed_checks:
        lines.append(f"## {check.check} ({check.error_count} error(s))")
        lines.append(CHECK_HINTS.get(check.check, "Check failed."))
        for diag in check.diagnostics[:MAX_DIAGNOSTICS]:
            lines.append(f"- {diag}")
        lines.append("")
    passed = [c.check for c in validation.checks if c.passed]
    if passed:
        lines.append(f"Passing checks: {', '.join(passed)}")
    return "\n".join(lines).rstrip() + "\n"


def compose_fix_prompt(validation, feedback_file):
    """Iteration >= 2 prompt. Only the failures, never the original brief."""
    failed = [c.check for c in validation.failed_checks]
    return (
        "Fix the following validation failures in the project.\n"
        f"Failing checks: {', '.join(failed)}\n\n"
        f"{compose_feedback(validation)}\n"
        f"The same report is saved in {feedback_file}. "
        "Change only what is needed to make every check pass."
    )


def feedback_file_entry(validation, feedback_file):
    return FileEntry(path=feedback_file, content=compose_feedback(validation))
