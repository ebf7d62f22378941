"""Claude API client helpers and response parsing."""

import asyncio
import json
import os
import re

import anthropic

from config.defaults import DEFAULTS, get_model

MAX_TOKENS = DEFAULTS["max_tokens"]


def _require_api_key():
    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError(
            "ANTHROPIC_API_KEY environment variable is not set. "
            "Get a key at https://console.anthropic.com/ and run:\n"
            "  export ANTHROPIC_API_KEY='your-key-here'"
        )
    return api_key


def get_async_client():
    """Return an async Anthropic client. Raises if no API key is set."""
    return anthropic.AsyncAnthropic(api_key=_require_api_key())


async def stream_text(system_prompt, user_message, max_tokens=None, client=None):
    """Stream a Claude response, yielding text chunks as they arrive.

    Retries once on an API error raised before any text was produced.
    """
    client = client or get_async_client()
    max_tokens = max_tokens or MAX_TOKENS

    for attempt in range(2):
        produced = False
        try:
            async with client.messages.stream(
                model=get_model(),
                max_tokens=max_tokens,
                system=system_prompt,
                messages=[{"role": "user", "content": user_message}],
            ) as stream:
                async for chunk in stream.text_stream:
                    produced = True
                    yield chunk
                final = await stream.get_final_message()

            # Response was cut off, files may be incomplete
            if final.stop_reason == "max_tokens":
                yield "\n\n<!-- TRUNCATED: Response hit token limit -->"
            return
        except anthropic.APIError:
            if attempt == 0 and not produced:
                await asyncio.sleep(2)
                continue
            raise


def strip_fences(text):
    """Remove a single surrounding markdown fence, if the model added one."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = re.sub(r"^```\w*\n?", "", cleaned)
        cleaned = re.sub(r"\n?```$", "", cleaned)
    return cleaned


def extract_json_array(text):
    """Pull the first JSON array out of a model response. Returns [] on failure."""
    cleaned = strip_fences(text)
    match = re.search(r"\[.*\]", cleaned, re.DOTALL)
    if not match:
        return []
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return []
    return data if isinstance(data, list) else []


def extract_code_blocks(text):
    """Return the bodies of all fenced code blocks in text."""
    return re.findall(r"```[\w-]*\n(.*?)```", text, re.DOTALL)


def extract_bullets(text, keywords):
    """Return bullet lines ("- " or "* ") mentioning any of keywords, bullet stripped."""
    found = []
    for line in text.split("\n"):
        if not re.match(r"^\s*[-*]\s+", line):
            continue
        lowered = line.lower()
        if any(k in lowered for k in keywords):
            found.append(re.sub(r"^\s*[-*]\s+", "", line).strip())
    return found


def parse_files(response):
    """Extract (filename, content) pairs from fenced code blocks.

    Handles multiple formats Claude may use:
        ```filename.py           (filepath as language tag)
        ```python filename.py    (language then filepath)
        ```python                (language tag, filename in first comment line)
        # filename.py
        ...
        ```

    Returns list of (relative_path, content) tuples.
    """
    files = []
    pattern = re.compile(
        r"```(\S+?)(?:[ \t]+(\S+?))?\n(.*?)```",
        re.DOTALL,
    )

    # Pattern to detect a filepath in a comment on the first line
    comment_path_re = re.compile(
        r"^(?:#|//|/\*|<!--)\s*(.+?\.\w+)\s*(?:\*/|-->)?\s*\n",
    )

    for match in pattern.finditer(response):
        tag = match.group(1)        # e.g. "app.py" or "python" or "css"
        second = match.group(2)     # e.g. "app.py" after "python" (if present)
        content = match.group(3)

        filename = None

        # Case 1: tag itself is a filepath (contains . and /)
        if "/" in tag and "." in tag:
            filename = tag
        # Case 2: second token is a filepath (```python app.py)
        elif second and "." in second:
            filename = second
        # Case 3: tag is a bare filename with extension (```setup.cfg)
        elif "." in tag and "/" not in tag:
            filename = tag
        # Case 4: tag is just a language, check first line for a filepath comment
        else:
            cm = comment_path_re.match(content)
            if cm:
                filename = cm.group(1).strip()
                content = content[cm.end():]

        if not filename:
            continue

        if content.endswith("\n"):
            content = content[:-1]

        files.append((filename, content))
    return files
