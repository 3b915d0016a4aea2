from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

_DATA_DIR = Path(__file__).resolve().parents[1] / "data"
_AUTO_REPLIES_PATH = _DATA_DIR / "auto_replies.yaml"


@dataclass(frozen=True)
class ReplyRule:
    name: str
    keywords: tuple[str, ...]
    reply: str

    def matches(self, lowered_text: str) -> bool:
        return any(keyword in lowered_text for keyword in self.keywords)


@dataclass(frozen=True)
class AutoReplyTable:
    handoff_keywords: tuple[str, ...]
    handoff_message: str
    ai_failure_message: str
    rules: tuple[ReplyRule, ...]
    default_reply: str


@lru_cache(maxsize=4)
def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return data if isinstance(data, dict) else {}


def _coerce_keywords(values: Any) -> tuple[str, ...]:
    if not isinstance(values, list):
        return ()
    return tuple(str(value).strip().lower() for value in values if str(value).strip())


@lru_cache(maxsize=1)
def load_auto_reply_table(path: Path = _AUTO_REPLIES_PATH) -> AutoReplyTable:
    data = _load_yaml(path)
    rules = []
    for item in data.get("rules") or []:
        if not isinstance(item, dict) or not item.get("reply"):
            continue
        rules.append(
            ReplyRule(
                name=str(item.get("name") or "rule"),
                keywords=_coerce_keywords(item.get("keywords")),
                reply=str(item["reply"]),
            )
        )
    return AutoReplyTable(
        handoff_keywords=_coerce_keywords(data.get("handoff_keywords")),
        handoff_message=str(data.get("handoff_message") or ""),
        ai_failure_message=str(data.get("ai_failure_message") or ""),
        rules=tuple(rules),
        default_reply=str(data.get("default_reply") or ""),
    )


def match_rule(text: str, table: AutoReplyTable) -> ReplyRule | None:
    lowered = (text or "").lower()
    for rule in table.rules:
        if rule.matches(lowered):
            return rule
    return None


def rule_based_reply(text: str, table: AutoReplyTable | None = None) -> str:
    """Canned reply used when no text generator is configured."""
    table = table or load_auto_reply_table()
    rule = match_rule(text, table)
    return rule.reply if rule else table.default_reply
