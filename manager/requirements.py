"""Requirement classifier: free text -> RequirementModel via keyword patterns.

parse() is pure. The same description always yields an equal RequirementModel.
"""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass

from config.defaults import COMPLEXITY_BUDGETS


@dataclass(frozen=True)
class Capability:
    kind: str           # "action" | "provider" | "service" | "evaluator"
    name: str
    description: str
    triggers: tuple[str, ...] = ()


@dataclass(frozen=True)
class Endpoint:
    path: str
    method: str
    description: str


@dataclass(frozen=True)
class APIIntegration:
    name: str
    base_url: str
    auth_type: str      # "api-key" | "oauth" | "none"
    endpoints: tuple[Endpoint, ...] = ()

    @property
    def requires_auth(self):
        return self.auth_type != "none"


@dataclass(frozen=True)
class EnvVar:
    name: str
    description: str
    required: bool = True
    sensitive: bool = True


@dataclass(frozen=True)
class RequirementModel:
    name: str
    description: str
    actions: tuple[Capability, ...] = ()
    providers: tuple[Capability, ...] = ()
    services: tuple[Capability, ...] = ()
    evaluators: tuple[Capability, ...] = ()
    api_integrations: tuple[APIIntegration, ...] = ()
    env_vars: tuple[EnvVar, ...] = ()
    complexity: str = "simple"
    estimated_development_time: str = "5-10 minutes"

    def action_names(self):
        return [a.name for a in self.actions]

    def env_var(self, name):
        for var in self.env_vars:
            if var.name == name:
                return var
        return None

    def to_dict(self):
        return asdict(self)


# (pattern, name, description, triggers)
ACTION_PATTERNS = [
    (r"\bweather\b|openweather", "GET_WEATHER", "Get current weather information",
     ("weather", "get weather", "current weather")),
    (r"create\s+todo|add\s+task|new\s+todo", "CREATE_TODO", "Create a new todo item",
     ("create todo", "add task", "new todo")),
    (r"search|find|lookup", "SEARCH", "Search for information", ("search", "find", "lookup")),
    (r"send\s+email|email", "SEND_EMAIL", "Send an email message", ("send email", "email")),
    (r"translate|translation", "TRANSLATE", "Translate text between languages",
     ("translate", "translation")),
    (r"calculate|compute|math", "CALCULATE", "Perform calculations",
     ("calculate", "compute", "math")),
    (r"crypto|bitcoin|ethereum|price", "GET_CRYPTO_PRICE", "Get cryptocurrency prices",
     ("crypto price", "bitcoin", "ethereum")),
    (r"news|headlines", "GET_NEWS", "Get latest news", ("news", "headlines")),
    (r"generate\s+image|create\s+image", "GENERATE_IMAGE", "Generate or create images",
     ("generate image", "create image")),
    (r"upload\s+file|save\s+file", "UPLOAD_FILE", "Upload or save files",
     ("upload file", "save file")),
]

PROVIDER_PATTERNS = [
    (r"weather|temperature|forecast", "WEATHER_INFO", "Provide weather information"),
    (r"location|gps|coordinates", "LOCATION_INFO", "Provide location information"),
    (r"\btime\b|\bdate\b|timestamp", "TIME_INFO", "Provide time and date information"),
    (r"user\s+profile|user\s+info", "USER_PROFILE", "Provide user profile information"),
    (r"system\s+info|system\s+status", "SYSTEM_INFO", "Provide system information"),
    (r"market|price|stock", "MARKET_DATA", "Provide market data"),
]

SERVICE_PATTERNS = [
    (r"\bapi\b|http|rest|endpoint", "APIClient", "Handle API communications"),
    (r"database|\bdb\b|storage", "DatabaseManager", "Manage database operations"),
    (r"websocket|socket|realtime", "WebSocketService", "Handle WebSocket connections"),
    (r"background|monitor|watch|schedule", "BackgroundProcessor", "Handle background processing"),
]

EVALUATOR_PATTERNS = [
    (r"sentiment|mood", "SENTIMENT_EVALUATOR", "Evaluate sentiment and mood"),
    (r"quality|score", "QUALITY_EVALUATOR", "Evaluate response quality"),
]

API_PATTERNS = [
    (r"openweather|weather\s+api|weather.*api", APIIntegration(
        name="OpenWeatherMap",
        base_url="https://api.openweathermap.org/data/2.5",
        auth_type="api-key",
        endpoints=(
            Endpoint("/weather", "GET", "Get current weather"),
            Endpoint("/forecast", "GET", "Get weather forecast"),
        ),
    )),
    (r"coinbase|crypto.*api|cryptocurrency", APIIntegration(
        name="CoinbaseAPI",
        base_url="https://api.coinbase.com/v2",
        auth_type="api-key",
        endpoints=(
            Endpoint("/exchange-rates", "GET", "Get exchange rates"),
            Endpoint("/prices/{currency_pair}/spot", "GET", "Get spot price"),
        ),
    )),
    (r"news.*api|newsapi", APIIntegration(
        name="NewsAPI",
        base_url="https://newsapi.org/v2",
        auth_type="api-key",
        endpoints=(
            Endpoint("/top-headlines", "GET", "Get top headlines"),
            Endpoint("/everything", "GET", "Search news articles"),
        ),
    )),
]

# (keywords, env vars they require)
ENV_VAR_RULES = [
    (("weather", "openweather"), (
        EnvVar("OPENWEATHER_API_KEY", "API key for OpenWeatherMap service"),
    )),
    (("crypto", "coinbase"), (
        EnvVar("COINBASE_API_KEY", "API key for Coinbase service"),
    )),
    (("news", "newsapi"), (
        EnvVar("NEWS_API_KEY", "API key for News API service"),
    )),
    (("email", "smtp"), (
        EnvVar("SMTP_HOST", "SMTP server hostname", sensitive=False),
        EnvVar("SMTP_USER", "SMTP username", sensitive=False),
        EnvVar("SMTP_PASS", "SMTP password"),
    )),
    (("database", " db "), (
        EnvVar("DATABASE_URL", "Database connection URL"),
    )),
]

NAME_PATTERNS = [
    r"(?:create|build|make)\s+(?:a\s+|an\s+)?(\w+)\s+(?:plugin|agent|workflow|integration|app)",
    r"(\w+)\s+(?:plugin|agent|workflow|integration)",
]

# Fallback names when no explicit "<name> plugin" phrase exists
NAME_KEYWORDS = [
    (("weather",), "Weather"),
    (("todo", "task"), "Todo"),
    (("crypto", "bitcoin", "ethereum"), "Crypto"),
    (("email", "mail"), "Email"),
    (("calendar", "schedule"), "Calendar"),
    (("news",), "News"),
    (("translate", "translation"), "Translator"),
    (("image", "photo"), "Image"),
    (("music", "song"), "Music"),
    (("database", " db "), "Database"),
    (("web", "browser"), "Web"),
    (("file", "document"), "File"),
]

# Weights for the complexity score
COMPLEXITY_WEIGHTS = {
    "actions": 2,
    "providers": 1,
    "services": 3,
    "evaluators": 2,
    "api_integrations": 4,
    "env_vars": 1,
}


def extract_name(text):
    text = text.lower()
    for pattern in NAME_PATTERNS:
        match = re.search(pattern, text)
        if match and match.group(1) not in ("a", "an", "the", "new"):
            return match.group(1).capitalize()
    padded = f" {text} "
    for keywords, name in NAME_KEYWORDS:
        if any(k in padded for k in keywords):
            return name
    return "Custom"


def _match_capabilities(text, patterns, kind):
    found = []
    for pattern, name, desc, *rest in patterns:
        if re.search(pattern, text):
            triggers = rest[0] if rest else ()
            found.append(Capability(kind=kind, name=name, description=desc, triggers=triggers))
    return tuple(found)


def _extract_actions(text, name):
    actions = _match_capabilities(text, ACTION_PATTERNS, "action")
    if actions:
        return actions
    # No specific action recognised, fall back to a generic one
    return (Capability(
        kind="action",
        name=f"{name.upper()}_ACTION",
        description=f"Perform {name.lower()} operations",
        triggers=(name.lower(), f"use {name.lower()}"),
    ),)


def _extract_api_integrations(text):
    return tuple(api for pattern, api in API_PATTERNS if re.search(pattern, text))


def _extract_env_vars(text):
    padded = f" {text} "
    found = []
    seen = set()
    for keywords, env_vars in ENV_VAR_RULES:
        if any(k in padded for k in keywords):
            for var in env_vars:
                if var.name not in seen:
                    seen.add(var.name)
                    found.append(var)
    return tuple(found)


def assess_complexity(model_parts):
    """Weighted sum over capability counts, bucketed into simple|medium|complex."""
    score = sum(len(model_parts[key]) * weight for key, weight in COMPLEXITY_WEIGHTS.items())
    if score <= 5:
        return "simple"
    if score <= 15:
        return "medium"
    return "complex"


def parse(description):
    """Classify a free-text description into a RequirementModel."""
    text = description.lower()
    name = extract_name(text)

    parts = {
        "actions": _extract_actions(text, name),
        "providers": _match_capabilities(text, PROVIDER_PATTERNS, "provider"),
        "services": _match_capabilities(text, SERVICE_PATTERNS, "service"),
        "evaluators": _match_capabilities(text, EVALUATOR_PATTERNS, "evaluator"),
        "api_integrations": _extract_api_integrations(text),
        "env_vars": _extract_env_vars(text),
    }
    complexity = assess_complexity(parts)

    return RequirementModel(
        name=name,
        description=description.strip(),
        complexity=complexity,
        estimated_development_time=COMPLEXITY_BUDGETS[complexity]["estimate"],
        **parts,
    )
