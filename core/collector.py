"""Artifact collector — materializes the session's working directory as FileEntry objects."""

import json
import logging

from config.targets import IGNORED_DIRS, IGNORED_SUFFIXES
from core.errors import SandboxExecutionError
from core.state import Command, FileEntry

logger = logging.getLogger(__name__)

MARKER = "__AUTOCODER_ARTIFACTS__"

# Runs inside the sandbox; argv[1] is a JSON config of what to skip.
WALK_SCRIPT = """
import json, os, sys
cfg = json.loads(sys.argv[1])
skip_dirs, skip_suffixes = set(cfg["dirs"]), tuple(cfg["suffixes"])
out = []
for root, dirs, files in os.walk("."):
    dirs[:] = sorted(d for d in dirs if d not in skip_dirs and not d.startswith(".")
                     and not d.endswith(skip_suffixes))
    for name in sorted(files):
        if name == ".env" or name.endswith(skip_suffixes):
            continue
        path = os.path.relpath(os.path.join(root, name), ".").replace(os.sep, "/")
        try:
            with open(path, encoding="utf-8") as f:
                out.append({"path": path, "content": f.read()})
        except (UnicodeDecodeError, OSError):
            continue
print(cfg["marker"] + json.dumps(out))
"""


def walk_command(timeout=60):
    config = json.dumps({
        "dirs": sorted(IGNORED_DIRS),
        "suffixes": list(IGNORED_SUFFIXES),
        "marker": MARKER,
    })
    return Command("python", ("-c", WALK_SCRIPT, config), timeout=timeout)


def parse_walk_output(output):
    """Pull the FileEntry list out of the walk script's stdout.

    Raises:
        SandboxExecutionError: If the marker line is missing or not valid JSON.
    """
    for line in reversed(output.splitlines()):
        if line.startswith(MARKER):
            try:
                data = json.loads(line[len(MARKER):])
            except json.JSONDecodeError as e:
                raise SandboxExecutionError(f"Unreadable artifact listing: {e}") from e
            return [FileEntry(path=d["path"], content=d["content"]) for d in data]
    raise SandboxExecutionError("Artifact listing missing from sandbox output")


class ArtifactCollector:
    """Walks a session's working directory through the sandbox provider.

    Hidden directories, virtualenvs, caches, build output and .env are
    skipped. .gitignore and .env.example are kept.
    """

    def __init__(self, sandbox_provider):
        self.sandbox_provider = sandbox_provider

    def collect(self, session):
        result = self.sandbox_provider.execute(session, walk_command())
        if not result.ok:
            raise SandboxExecutionError(
                f"Artifact collection failed: {result.error or result.output.strip()[:200]}"
            )
        files = parse_walk_output(result.output)
        logger.info("Collected %d file(s) from session %s", len(files), session.id)
        return files
