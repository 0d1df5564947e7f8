from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

import yaml

from nagarseva.services.state_machine import (
    CATEGORY_PREFIX,
    CONFIRM_CANCEL,
    CONFIRM_SUBMIT,
    DEFAULT_LANGUAGE,
    LANG_PREFIX,
    Draft,
    Keyboard,
    Language,
    Reply,
)

_TEMPLATES_PATH = Path(__file__).resolve().parents[1] / "templates" / "replies.yaml"

LANGUAGE_BUTTONS = [
    ("English", Language.EN),
    ("हिन्दी", Language.HI),
    ("मराठी", Language.MR),
]


@dataclass(frozen=True)
class OutboundReply:
    chat_id: str
    text: str
    reply_markup: Optional[dict] = None


class _KeepMissing(dict):
    def __missing__(self, key: str) -> str:
        return "{" + key + "}"


@lru_cache(maxsize=4)
def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def _catalogue(language: Language) -> dict:
    templates = _load_yaml(_TEMPLATES_PATH)
    return templates.get(language.value) or templates.get(DEFAULT_LANGUAGE.value) or {}


def _lookup(language: Language, path: Sequence[str]) -> Optional[Any]:
    for candidate in (language, DEFAULT_LANGUAGE):
        node: Any = _catalogue(candidate)
        for part in path:
            node = node.get(part) if isinstance(node, dict) else None
        if node is not None:
            return node
    return None


def translate(language: Language, key: str, params: Optional[Mapping[str, str]] = None) -> str:
    """Localized template for ``key``; English is the fallback, then the key itself."""
    template = _lookup(language, [key])
    if not isinstance(template, str):
        return key
    if not params:
        return template
    return template.format_map(_KeepMissing(params))


def stage_label(language: Language, stage: str) -> str:
    label = _lookup(language, ["stages", stage])
    return label if isinstance(label, str) else stage


def language_keyboard() -> dict:
    return {
        "inline_keyboard": [
            [{"text": label, "callback_data": f"{LANG_PREFIX}{language.value}"} for label, language in LANGUAGE_BUTTONS]
        ]
    }


def category_keyboard(categories: Sequence[tuple[int, str]]) -> dict:
    """Two category buttons per row, in catalog order."""
    rows = []
    for index in range(0, len(categories), 2):
        rows.append(
            [{"text": name, "callback_data": f"{CATEGORY_PREFIX}{category_id}"} for category_id, name in categories[index : index + 2]]
        )
    return {"inline_keyboard": rows}


def confirmation_keyboard(language: Language) -> dict:
    return {
        "inline_keyboard": [
            [
                {"text": _lookup(language, ["buttons", "submit"]) or "Submit", "callback_data": CONFIRM_SUBMIT},
                {"text": _lookup(language, ["buttons", "cancel"]) or "Cancel", "callback_data": CONFIRM_CANCEL},
            ]
        ]
    }


def build_summary(language: Language, draft: Draft) -> str:
    def label(name: str) -> str:
        return _lookup(language, ["labels", name]) or name.title()

    return "\n".join(
        [
            f"{label('category')}: {draft.category_name or '-'}",
            f"{label('description')}: {draft.description or '-'}",
            f"{label('location')}: {draft.location or '-'}",
        ]
    )


def render_reply(
    chat_id: str,
    reply: Reply,
    language: Language,
    categories: Sequence[tuple[int, str]] = (),
) -> OutboundReply:
    text = "\n".join(translate(language, key, reply.params) for key in reply.keys)
    if reply.summary is not None:
        text = f"{text}\n\n{build_summary(language, reply.summary)}"

    markup = None
    if reply.keyboard == Keyboard.LANGUAGE:
        markup = language_keyboard()
    elif reply.keyboard == Keyboard.CATEGORY:
        markup = category_keyboard(categories)
    elif reply.keyboard == Keyboard.CONFIRMATION:
        markup = confirmation_keyboard(language)

    return OutboundReply(chat_id=chat_id, text=text, reply_markup=markup)
