"""Template engine using string.Template for safe rendering."""

import os
from string import Template

from core.state import FileEntry


def get_templates_dir():
    """Return the absolute path to the bundled project templates."""
    return os.path.join(os.path.dirname(__file__), "templates")


def load_template(category, template_name):
    """Load a template file ("common" or "targets" category) as a string."""
    templates_dir = get_templates_dir()
    resolved = os.path.realpath(os.path.join(templates_dir, category, template_name))
    if not resolved.startswith(os.path.realpath(templates_dir) + os.sep):
        raise ValueError(f"Template path escapes templates directory: {category}/{template_name}")
    with open(resolved, "r", encoding="utf-8") as f:
        return f.read()


def render_template(category, template_name, variables):
    """Render one template. Unknown placeholders are left as-is."""
    return Template(load_template(category, template_name)).safe_substitute(variables)


def render_files(category, mapping, variables, pkg):
    """Render {template_name: output_path} into FileEntry objects.

    "{pkg}" in an output path is replaced with the package name.
    """
    return [
        FileEntry(path=output.replace("{pkg}", pkg),
                  content=render_template(category, name, variables))
        for name, output in mapping.items()
    ]
