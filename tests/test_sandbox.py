"""Tests for core.sandbox."""

import os

import pytest

from core.errors import SandboxExecutionError
from core.sandbox import LocalSandboxProvider, NullSandboxProvider, get_sandbox_provider
from core.state import Command, FileEntry


@pytest.fixture
def provider(tmp_path):
    return LocalSandboxProvider(base_dir=str(tmp_path))


@pytest.fixture
def session(provider):
    s = provider.create()
    yield s
    provider.destroy(s)


def test_create_makes_working_directory(provider, session):
    assert session.active
    assert os.path.isdir(session.working_directory)
    assert os.path.basename(session.working_directory).startswith("autocoder_")


def test_destroy_removes_directory_and_is_idempotent(provider):
    session = provider.create()
    provider.destroy(session)
    assert not session.active
    assert not os.path.exists(session.working_directory)
    provider.destroy(session)  # second call is a no-op
    assert session.state == "destroyed"


def test_allowed_command(provider, session):
    result = provider.execute(session, Command("python3", ("--version",)))
    assert result.ok
    assert "Python" in result.output


def test_python_resolves_without_venv(provider, session):
    result = provider.execute(session, Command("python", ("-c", "print('hi')")))
    assert result.ok
    assert result.output.strip() == "hi"


def test_disallowed_command(provider, session):
    with pytest.raises(SandboxExecutionError, match="not in allowlist"):
        provider.execute(session, Command("rm", ("-rf", "/")))


def test_disallowed_bash(provider, session):
    with pytest.raises(SandboxExecutionError, match="not in allowlist"):
        provider.execute(session, Command("bash", ("-c", "echo pwned")))


def test_invalid_cwd(provider, session):
    with pytest.raises(SandboxExecutionError, match="does not exist"):
        provider.execute(session, Command("python3", ("--version",), cwd="missing"))


def test_cwd_cannot_escape(provider, session):
    with pytest.raises(SandboxExecutionError, match="escapes"):
        provider.execute(session, Command("python3", ("--version",), cwd="../.."))


def test_execute_after_destroy_raises(provider):
    session = provider.create()
    provider.destroy(session)
    with pytest.raises(SandboxExecutionError, match="destroyed"):
        provider.execute(session, Command("python3", ("--version",)))


def test_nonzero_exit_is_reported(provider, session):
    result = provider.execute(session, Command("python3", ("-c", "import sys; sys.exit(3)")))
    assert result.exit_code == 3
    assert not result.ok


def test_stderr_is_captured(provider, session):
    result = provider.execute(
        session, Command("python3", ("-c", "import sys; sys.stderr.write('oops')")))
    assert "oops" in result.output


def test_timeout(provider, session):
    result = provider.execute(
        session, Command("python3", ("-c", "import time; time.sleep(10)"), timeout=1))
    assert result.exit_code == -1
    assert "timed out" in result.error.lower()


def test_command_not_found(tmp_path):
    provider = LocalSandboxProvider(base_dir=str(tmp_path),
                                    allowed_commands=["nonexistent_cmd_xyz"])
    session = provider.create()
    try:
        result = provider.execute(session, Command("nonexistent_cmd_xyz"))
        assert result.exit_code == -1
        assert "not found" in result.error.lower()
    finally:
        provider.destroy(session)


def test_write_files_creates_nested_paths(provider, session):
    written = provider.write_files(session, [
        FileEntry(path="src/pkg/__init__.py", content="x = 1\n"),
        FileEntry(path="README.md", content="# hi\n"),
    ])
    assert written == ["src/pkg/__init__.py", "README.md"]
    with open(os.path.join(session.working_directory, "src", "pkg", "__init__.py")) as f:
        assert f.read() == "x = 1\n"


def test_write_files_rejects_escape(provider, session):
    with pytest.raises(SandboxExecutionError, match="escapes"):
        provider.write_files(session, [FileEntry(path="../evil.py", content="")])


def test_null_provider_is_unavailable():
    provider = NullSandboxProvider()
    assert provider.available is False
    with pytest.raises(SandboxExecutionError):
        provider.create()


def test_get_sandbox_provider():
    assert isinstance(get_sandbox_provider("local"), LocalSandboxProvider)
    assert isinstance(get_sandbox_provider("none"), NullSandboxProvider)
    with pytest.raises(ValueError, match="Unknown sandbox provider"):
        get_sandbox_provider("docker")
