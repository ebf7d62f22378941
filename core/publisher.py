"""Publishing: write a finished file set into a target directory."""

import logging
import os

logger = logging.getLogger(__name__)


class LocalPublisher:
    """Writes files under a local directory, refusing paths that escape it."""

    def publish(self, files, target):
        """Write files under target. Returns the absolute target path.

        Raises:
            ValueError: If a file path escapes the target directory.
        """
        target = os.path.abspath(os.path.expanduser(target))
        os.makedirs(target, exist_ok=True)
        root = os.path.realpath(target)
        for f in files:
            resolved = os.path.realpath(os.path.join(target, f.path))
            if not resolved.startswith(root + os.sep):
                raise ValueError(f"Path escapes output directory: {f.path}")
            os.makedirs(os.path.dirname(resolved), exist_ok=True)
            with open(resolved, "w", encoding="utf-8") as fp:
                fp.write(f.content)
        logger.info("Published %d file(s) to %s", len(files), target)
        return target
