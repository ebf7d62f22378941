"""Security agent — static rule scan plus a natural-language oracle review."""

import logging
import os

from config.rules import SCANNED_SUFFIXES, SECURITY_PATTERNS
from utils.llm import extract_bullets

logger = logging.getLogger(__name__)

_PROMPT_FILE = os.path.join(os.path.dirname(__file__), "prompts", "security_review.txt")

REVIEW_KEYWORDS = ("security", "vulnerab", "exposed", "unsafe", "injection", "secret")

# Only the project's own code is worth reviewing
_MAX_REVIEW_CHARS = 60000


def _load_prompt():
    with open(_PROMPT_FILE) as f:
        return f.read()


def scan_files(files):
    """Apply the static rules line by line. Returns "path:line: message" strings."""
    issues = []
    for f in files:
        if not f.path.endswith(SCANNED_SUFFIXES):
            continue
        for line_num, line in enumerate(f.content.split("\n"), 1):
            if line.lstrip().startswith("#"):
                continue
            for pattern, message in SECURITY_PATTERNS:
                if pattern.search(line):
                    issues.append(f"{f.path}:{line_num}: {message}")
    return issues


def _review_prompt(files):
    parts = []
    budget = _MAX_REVIEW_CHARS
    for f in files:
        if not f.path.endswith(SCANNED_SUFFIXES) or budget <= 0:
            continue
        chunk = f"### {f.path}\n```\n{f.content[:budget]}\n```"
        budget -= len(chunk)
        parts.append(chunk)
    return _load_prompt() + "\n\n" + "\n\n".join(parts)


class SecurityReviewer:
    """Produces the issue list for the gate's security check.

    Any issue fails the check. The oracle review is optional; without an
    oracle only the static rules run.
    """

    name = "security"

    def __init__(self, oracle=None):
        self.oracle = oracle

    async def review(self, files, timeout=None):
        """Return a list of issue strings for files.

        Raises:
            asyncio.TimeoutError: If the oracle review outlives timeout.
        """
        issues = scan_files(files)
        if self.oracle is None or not files:
            return issues

        text = await self.oracle.complete(_review_prompt(files), turn_budget=1, timeout=timeout)
        for line in text.split("\n"):
            if line.strip().upper() == "NO ISSUES":
                break
        else:
            issues.extend(extract_bullets(text, REVIEW_KEYWORDS))
        logger.debug("Security review found %d issue(s)", len(issues))
        return issues

