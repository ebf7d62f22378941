"""Keyword-scoring target-type classifier with explicit override."""

import re

# Keywords that are prefix patterns (match word starts, e.g. "automat" -> "automation")
_PREFIX_KEYWORDS = {"automat", "integrat", "orchestrat"}

# Explicit phrases that force a target type. Checked BEFORE keyword scoring.
EXPLICIT_TARGETS = [
    (r"\bplugin\b", "plugin"),
    (r"\bfull[\s-]?stack\b", "full-stack"),
    (r"\bagent\b", "agent"),
    (r"\bworkflow\b", "workflow"),
    (r"\bintegration\b", "integration"),
]

KEYWORDS = {
    "plugin": {
        "action": 3, "provider": 3, "evaluator": 3, "extension": 3, "addon": 3,
        "add-on": 3, "extend": 2, "capability": 2,
    },
    "agent": {
        "character": 4, "bot": 4, "chatbot": 4, "assistant": 3, "persona": 3,
        "discord": 2, "telegram": 2, "twitter": 2, "conversation": 2,
    },
    "workflow": {
        "pipeline": 4, "automat": 3, "schedule": 3, "cron": 3, "steps": 2,
        "orchestrat": 3, "batch": 2, "trigger": 2,
    },
    "integration": {
        "api": 3, "integrat": 4, "webhook": 3, "sync": 3, "connector": 4,
        "client": 3, "sdk": 3, "oauth": 2,
    },
    "full-stack": {
        "website": 4, "frontend": 4, "dashboard": 3, "ui": 3, "web app": 4,
        "webapp": 4, "backend": 2, "page": 2, "database": 1,
    },
}


def classify(request):
    """Score a request against each target type and return the best match.

    An explicit target phrase (e.g. "weather plugin") overrides keyword
    scoring. Returns (target_type, scores_dict); "_explicit" is set in
    scores_dict when an override fired.
    """
    text = request.lower()

    for pattern, target in EXPLICIT_TARGETS:
        if re.search(pattern, text):
            scores = {t: 0 for t in KEYWORDS}
            scores[target] = 100  # make the override obvious
            scores["_explicit"] = target
            return target, scores

    scores = {}
    for target, kw_map in KEYWORDS.items():
        score = 0
        for keyword, weight in kw_map.items():
            if keyword in _PREFIX_KEYWORDS:
                pat = r'\b' + re.escape(keyword)
            else:
                pat = r'\b' + re.escape(keyword) + r'\b'
            if re.search(pat, text):
                score += weight
        scores[target] = score

    best = max(scores, key=scores.get)
    # Default to plugin if nothing scored
    if scores[best] == 0:
        best = "plugin"
    return best, scores
