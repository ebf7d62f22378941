"""Project skeleton rendering per target type."""

from config.targets import (COMMON_TEMPLATES, DEPLOY_TEMPLATES, TARGETS, TYPES_TEMPLATES,
                            format_path)
from core.state import FileEntry
from utils.folder_naming import distribution_name, package_name
from utils.template_engine import render_files, render_template


def _oneline(text):
    """First line of text, safe to embed in a quoted Python/JSON/TOML string."""
    line = (text or "").strip().split("\n")[0]
    return line.replace("\\", "").replace('"', "'")[:200]


def _quoted_list(values):
    return ", ".join(f'"{v}"' for v in values)


def template_variables(request, model=None):
    """Variables shared by every template of one project."""
    target = TARGETS[request.target_type]
    pkg = package_name(request.project_name)

    env_vars = list(model.env_vars) if model else []
    env_lines = "\n".join(f"{v.name}=" for v in env_vars)
    if not env_lines:
        # One placeholder per external API when the classifier found no secrets
        env_lines = "\n".join(f"{package_name(api).upper()}_API_KEY="
                              for api in request.external_apis) or "API_KEY="

    base_url = ""
    if model and model.api_integrations:
        base_url = model.api_integrations[0].base_url

    return {
        "project_name": request.project_name,
        "project_slug": distribution_name(request.project_name),
        "package": pkg,
        "description": request.description,
        "description_oneline": _oneline(request.description),
        "entry_module": target["entry_module"],
        "dependencies": _quoted_list(target["dependencies"]),
        "env_lines": env_lines,
        "action_names": _quoted_list(model.action_names() if model else []),
        "required_env": _quoted_list(v.name for v in env_vars if v.required),
        "base_url": base_url or "http://localhost:8000",
        "base_url_env": f"{pkg.upper()}_BASE_URL",
    }


def scaffold_files(request, model=None):
    """Render the skeleton for request.target_type as FileEntry objects."""
    target = TARGETS[request.target_type]
    variables = template_variables(request, model)
    pkg = variables["package"]

    files = render_files("common", COMMON_TEMPLATES, variables, pkg)
    files.append(FileEntry(
        path=format_path(target["entry_path"], pkg),
        content=render_template("targets", target["entry_template"], variables),
    ))
    files.extend(render_files("targets", target.get("extra_templates", {}), variables, pkg))

    # Sub-packages need an __init__.py to exist at all
    package_root = f"src/{pkg}"
    for directory in target["directories"]:
        path = format_path(directory, pkg)
        if path.startswith("src/") and path != package_root:
            files.append(FileEntry(path=f"{path}/__init__.py", content=""))
    return files


def deploy_files(request, model=None):
    """Deployment descriptor(s) added by the chunked fallback."""
    variables = template_variables(request, model)
    return render_files("common", DEPLOY_TEMPLATES, variables, variables["package"])


def types_files(request, model=None):
    variables = template_variables(request, model)
    return render_files("common", TYPES_TEMPLATES, variables, variables["package"])
