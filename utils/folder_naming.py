"""Folder naming utilities: slugs, package names, output dirs with dedup."""

import os
import re

BASE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "generated")

MAX_DEDUP = 1000


def slugify(text):
    """Convert text to a filesystem-safe slug."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[\s_-]+", "_", text)
    return text.strip("_")


def package_name(project_name):
    """Return a valid Python package name for a project name."""
    name = slugify(project_name) or "project"
    if name[0].isdigit():
        name = f"p_{name}"
    return name


def distribution_name(project_name):
    """Return the project name as used in pyproject.toml (dashes, lowercase)."""
    return package_name(project_name).replace("_", "-")


def get_output_dir(project_name, base_dir=None):
    """Return a deduplicated output directory for a generated project."""
    base_dir = base_dir or BASE_DIR
    base = os.path.join(base_dir, package_name(project_name))

    if not os.path.exists(base):
        return base

    # Dedup with _2, _3, etc.
    for counter in range(2, MAX_DEDUP + 2):
        candidate = f"{base}_{counter}"
        if not os.path.exists(candidate):
            return candidate

    raise RuntimeError(f"Too many duplicate projects (>{MAX_DEDUP}) for: {project_name}")
