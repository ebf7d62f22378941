"""Target definitions mapping project type to scaffold layout and gate commands."""

from core.state import Command

# Files rendered for every target (template name -> output path).
# "{pkg}" in an output path is replaced with the project's package name.
COMMON_TEMPLATES = {
    "pyproject.toml.tmpl": "pyproject.toml",
    "setup.cfg.tmpl": "setup.cfg",
    "gitignore.tmpl": ".gitignore",
    "package_init.py.tmpl": "src/{pkg}/__init__.py",
    "test_smoke.py.tmpl": "tests/test_smoke.py",
    "env.example.tmpl": ".env.example",
    "README.md.tmpl": "README.md",
}

# Added by the chunked fallback on top of the scaffold
DEPLOY_TEMPLATES = {
    "Dockerfile.tmpl": "Dockerfile",
}

# Shared type module written by both fallback generators
TYPES_TEMPLATES = {
    "types.py.tmpl": "src/{pkg}/types.py",
}

TARGETS = {
    "plugin": {
        "name": "Plugin",
        "directories": ["src/{pkg}/actions", "src/{pkg}/providers", "src/{pkg}/services", "tests"],
        "entry_template": "plugin.py.tmpl",
        "entry_path": "src/{pkg}/plugin.py",
        "entry_module": "plugin",
        "dependencies": ["httpx"],
    },
    "agent": {
        "name": "Agent",
        "directories": ["src/{pkg}", "tests"],
        "entry_template": "agent.py.tmpl",
        "entry_path": "src/{pkg}/agent.py",
        "entry_module": "agent",
        "dependencies": ["httpx"],
        "extra_templates": {"character.json.tmpl": "character.json"},
    },
    "workflow": {
        "name": "Workflow",
        "directories": ["src/{pkg}/steps", "tests"],
        "entry_template": "workflow.py.tmpl",
        "entry_path": "src/{pkg}/workflow.py",
        "entry_module": "workflow",
        "dependencies": [],
    },
    "integration": {
        "name": "Integration",
        "directories": ["src/{pkg}", "tests"],
        "entry_template": "client.py.tmpl",
        "entry_path": "src/{pkg}/client.py",
        "entry_module": "client",
        "dependencies": ["httpx"],
    },
    "full-stack": {
        "name": "Full-Stack App",
        "directories": ["src/{pkg}/api", "src/{pkg}/web", "tests"],
        "entry_template": "app.py.tmpl",
        "entry_path": "src/{pkg}/app.py",
        "entry_module": "app",
        "dependencies": ["flask"],
    },
}

# Runs once after scaffolding, before the first iteration
SETUP_COMMANDS = [
    Command("python3", ("-m", "venv", ".venv"), timeout=120),
    Command("python", ("-m", "pip", "install", "-q",
                       "flake8", "mypy", "pytest", "setuptools", "wheel"), timeout=300),
]

# The fixed gate sequence. "security" has no command; it is an oracle review.
CHECK_COMMANDS = {
    "install": Command("python", ("-m", "pip", "install", "-q", "-e", "."), timeout=120),
    "lint": Command("python", ("-m", "flake8", "src", "tests"), timeout=60),
    "typecheck": Command("python", ("-m", "mypy", "src", "--ignore-missing-imports"), timeout=120),
    "build": Command("python", ("-m", "pip", "wheel", "--no-deps", "--no-build-isolation",
                                "-q", "-w", "dist", "."), timeout=180),
    "test": Command("python", ("-m", "pytest", "-q"), timeout=240),
}

SECURITY_TIMEOUT = 30

# Directories and suffixes never collected as artifacts
IGNORED_DIRS = {".venv", "node_modules", "__pycache__", "dist", "build", ".mypy_cache",
                ".pytest_cache", ".git"}
IGNORED_SUFFIXES = (".pyc", ".egg-info")


def format_path(path, pkg):
    return path.replace("{pkg}", pkg)
