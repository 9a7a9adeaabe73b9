from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx

from gosbot.shared.errors import MalformedFrameError


@dataclass(frozen=True)
class ResultItem:
    type: Optional[str]
    label: Optional[str]
    link: Optional[httpx.URL] = None
    image: Optional[httpx.URL] = None


@dataclass(frozen=True)
class AnswerButton:
    label: Optional[str]
    link: Optional[httpx.URL]


@dataclass(frozen=True)
class Clarification:
    id: Any
    label: Optional[str]
    content: Optional[str]


@dataclass(frozen=True)
class Results:
    inside: Tuple[ResultItem, ...] = ()
    outside: Tuple[ResultItem, ...] = ()


@dataclass(frozen=True)
class ChatbotMessage:
    """
    A bot reply decoded from the body of a ``42`` event:

        {"uuid": ..., "data": {"message": {
            "content": "<p>...</p>", "header": ...,
            "result": {"inside": [...], "outside": [...]},
            "clarifications": [{"id", "label", "content"}, ...]}}}

    ``content`` is server HTML and is passed through untouched.
    """
    action: str
    uuid: Optional[str]
    content: Optional[str]
    header: Optional[str] = None
    results_inside: Tuple[ResultItem, ...] = ()
    results_outside: Tuple[ResultItem, ...] = ()
    clarifications: Tuple[Clarification, ...] = ()

    @property
    def results(self) -> Results:
        return Results(inside=self.results_inside, outside=self.results_outside)

    @property
    def buttons(self) -> Tuple[AnswerButton, ...]:
        """Outside results of type ``button``, the quick-reply row."""
        return tuple(
            AnswerButton(label=item.label, link=item.link)
            for item in self.results_outside
            if item.type == "button"
        )

    @classmethod
    def from_event(cls, event_name: str, body: Mapping[str, Any]) -> "ChatbotMessage":
        """Decode a matched ``[event_name, body]`` pair, raising MalformedFrameError on bad shape."""
        data = body.get("data")
        message = data.get("message") if isinstance(data, dict) else None
        if not isinstance(message, dict):
            raise MalformedFrameError(f"{event_name} body has no data.message object")

        result = message.get("result")
        if result is None:
            result = {}
        if not isinstance(result, dict):
            raise MalformedFrameError(f"{event_name} message.result must be an object")

        return cls(
            action=event_name,
            uuid=body.get("uuid"),
            content=message.get("content"),
            header=message.get("header"),
            results_inside=_result_items(result.get("inside")),
            results_outside=_result_items(result.get("outside")),
            clarifications=tuple(
                Clarification(id=c.get("id"), label=c.get("label"), content=c.get("content"))
                for c in _object_list(message.get("clarifications"), "clarifications")
            ),
        )


def _object_list(value: Any, name: str) -> List[Dict[str, Any]]:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise MalformedFrameError(f"{name} must be a list of objects")
    return value


def _result_items(value: Any) -> Tuple[ResultItem, ...]:
    return tuple(
        ResultItem(
            type=item.get("type"),
            label=item.get("label"),
            link=parse_url(item.get("link")),
            image=parse_url(item.get("image")),
        )
        for item in _object_list(value, "result")
    )


def parse_url(value: Any) -> Optional[httpx.URL]:
    """
    Absent or empty stays ``None``; anything else must be an absolute URL.
    http(s) URLs also need a host.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise MalformedFrameError(f"URL must be a string, got {type(value).__name__}")
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as e:
        raise MalformedFrameError(f"Invalid URL {value!r}: {e}") from e
    if not url.scheme or (url.scheme in ("http", "https") and not url.host):
        raise MalformedFrameError(f"Invalid URL {value!r}: not absolute")
    return url
