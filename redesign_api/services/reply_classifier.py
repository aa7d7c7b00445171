"""
Classification of assistant replies into conversation or image-edit actions.

The assistant is instructed to answer visual change requests with
``{"action": "edit_image", "prompt": "..."}`` and everything else in prose.
classify_reply decodes that protocol; anything that is not a well-formed edit
command is a plain reply carrying the original text verbatim.
"""
import json
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

EDIT_IMAGE_ACTION = "edit_image"

_CODE_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL | re.IGNORECASE)


@dataclass(frozen=True)
class PlainReply:
    """Conversational answer to show in the transcript"""

    text: str


@dataclass(frozen=True)
class EditImageRequest:
    """Instruction to re-edit the current design image"""

    prompt: str


AssistantAction = Union[PlainReply, EditImageRequest]


def _decode_structured(text: str) -> Optional[Any]:
    """Decode text as JSON, tolerating a surrounding markdown code fence"""
    candidate = text.strip()
    fenced = _CODE_FENCE_PATTERN.match(candidate)
    if fenced:
        candidate = fenced.group(1)
    if not candidate.startswith("{"):
        return None
    try:
        return json.loads(candidate)
    except (ValueError, RecursionError):
        return None


def classify_reply(text: str) -> AssistantAction:
    """Decide whether assistant output is an edit command or plain conversation"""
    if not isinstance(text, str):
        text = "" if text is None else str(text)

    decoded = _decode_structured(text)
    if isinstance(decoded, dict) and decoded.get("action") == EDIT_IMAGE_ACTION:
        prompt = decoded.get("prompt")
        if isinstance(prompt, str) and prompt.strip():
            return EditImageRequest(prompt=prompt)

    return PlainReply(text=text)
