from __future__ import annotations

import json
import re
from typing import Any

# Only the outer fence: string fields may carry their own ``` blocks.
_OUTER_FENCE = re.compile(r"^```[A-Za-z]*\s*|\s*```$")


def strip_code_fences(raw_text: str) -> str:
    """Drop a surrounding ```json ... ``` fence if the model added one."""
    text = raw_text.strip()
    if text.startswith("```"):
        text = _OUTER_FENCE.sub("", text).strip()
    return text


def extract_json_object(raw_text: str) -> dict[str, Any]:
    text = strip_code_fences(raw_text)
    start = text.find("{")
    end = text.rfind("}")
    if start < 0 or end <= start:
        raise json.JSONDecodeError("object not found", text, 0)
    parsed = json.loads(text[start : end + 1])
    if not isinstance(parsed, dict):
        raise json.JSONDecodeError("not an object", text, 0)
    return parsed
