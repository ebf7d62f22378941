"""Static security rules applied to generated source files.

Each entry: (pattern_regex, message). Any match is a security issue; the
natural-language review in agents.security adds whatever these miss.
"""

import re

SECURITY_PATTERNS = [
    (
        re.compile(r"""(?:password|secret|api_key|apikey|token)\s*=\s*["'][^"'\s]{8,}["']""", re.IGNORECASE),
        "Hardcoded secret or credential",
    ),
    (
        re.compile(r"""\bsk-(?:ant-)?[A-Za-z0-9_-]{20,}"""),
        "Exposed API key literal",
    ),
    (
        re.compile(r"""\beval\s*\("""),
        "Use of eval() is unsafe",
    ),
    (
        re.compile(r"""\bexec\s*\("""),
        "Use of exec() is unsafe",
    ),
    (
        re.compile(r"""\bshell\s*=\s*True\b"""),
        "shell=True in subprocess is vulnerable to command injection",
    ),
    (
        re.compile(r"""\bos\.system\s*\("""),
        "os.system() is vulnerable to shell injection",
    ),
    (
        re.compile(r"""execute\s*\(\s*f["']"""),
        "Possible SQL injection via f-string",
    ),
    (
        re.compile(r"""\bpickle\.loads?\s*\("""),
        "pickle.load() can execute arbitrary code on untrusted data",
    ),
    (
        re.compile(r"""\bverify\s*=\s*False\b"""),
        "TLS certificate verification disabled",
    ),
]

# Only these files are scanned; .env.example is a template and holds no values
SCANNED_SUFFIXES = (".py", ".json", ".toml", ".cfg", ".yaml", ".yml")
