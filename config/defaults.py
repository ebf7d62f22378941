"""Default pipeline settings."""

import os

DEFAULTS = {
    "max_iterations": 10,
    "hard_max_iterations": 25,  # absolute ceiling, cannot be overridden
    "oracle_turn_budget": 1,    # one corrective pass per iteration
    "oracle_timeout": None,     # None: request_timeout of the active timeout regime
    "env": None,                # None: AUTOCODER_ENV
    "model": "claude-sonnet-4-5-20250929",
    "max_tokens": 32768,
    "allowed_commands": ["python", "python3", "pip", "flake8", "mypy", "pytest"],
    "accept_partial_results": True,
    "research": False,
    "research_timeout": 60,
    "prd_timeout": 90,
    "fallback_file_timeout": 30,
    "brief_file": "TASK.md",
    "feedback_file": "validation-feedback.md",
}

# Whole-run and per-request timeouts (seconds) keyed by AUTOCODER_ENV
TIMEOUT_CONFIGS = {
    "production": {"timeout": 300, "request_timeout": 60},
    "development": {"timeout": 600, "request_timeout": 120},
    "local": {"timeout": 600, "request_timeout": 120},
}

# Resource allocation per complexity class. Has no effect on correctness.
COMPLEXITY_BUDGETS = {
    "simple": {"max_iterations": 5, "timeout_scale": 1.0, "estimate": "5-10 minutes"},
    "medium": {"max_iterations": 10, "timeout_scale": 1.0, "estimate": "10-20 minutes"},
    "complex": {"max_iterations": 10, "timeout_scale": 1.5, "estimate": "20-30 minutes"},
}


def get_model():
    return os.environ.get("AUTOCODER_MODEL") or DEFAULTS["model"]


def get_timeout_config(env=None):
    """Return the timeout regime for the current environment.

    Unknown values fall back to the production regime.
    """
    env = (env or os.environ.get("AUTOCODER_ENV") or "production").lower()
    return dict(TIMEOUT_CONFIGS.get(env, TIMEOUT_CONFIGS["production"]))
