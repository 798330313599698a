"""
Conduit content negotiation & formatter system.

A formatter turns a handler result into a response body and sets the
matching ``Content-Type`` on the context's response.

Built-in formatters:

- **JSONFormatter**: ``application/json`` (default)
- **YAMLFormatter**: ``application/x-yaml``
- **PlainTextFormatter**: ``text/plain``
- **HTMLFormatter**: ``text/html``

Negotiation order:
1. Explicit ``format`` query param: ``?format=yaml``
2. ``Accept`` header negotiation (quality factors, ``q=0`` excludes)
3. First formatter when the client sent no ``Accept`` header

When the client's ``Accept`` header admits none of the formatters,
``get_formatter`` returns None.
"""

from __future__ import annotations

import html
import json
from typing import Any, List, Optional, Sequence, Tuple

import yaml

__all__ = [
    "BaseFormatter",
    "JSONFormatter",
    "YAMLFormatter",
    "PlainTextFormatter",
    "HTMLFormatter",
    "FormatterProvider",
]


# ═══════════════════════════════════════════════════════════════════════════
#  Accept header parser
# ═══════════════════════════════════════════════════════════════════════════

def _parse_accept(header: Optional[str]) -> List[Tuple[str, float]]:
    """
    Parse an ``Accept`` header into ``(media_type, quality)`` pairs sorted
    by quality descending.

    Examples::

        >>> _parse_accept("application/x-yaml;q=0.5, application/json")
        [('application/json', 1.0), ('application/x-yaml', 0.5)]
    """
    if not header or not header.strip():
        return [("*/*", 1.0)]

    entries: List[Tuple[str, float]] = []
    for part in header.split(","):
        part = part.strip()
        if not part:
            continue
        segments = part.split(";")
        media = segments[0].strip().lower()
        quality = 1.0
        for seg in segments[1:]:
            seg = seg.strip()
            if seg.startswith("q="):
                try:
                    quality = float(seg[2:])
                except (ValueError, TypeError):
                    quality = 1.0
        entries.append((media, quality))

    # sort() is stable: equal qualities keep the client's order
    entries.sort(key=lambda x: x[1], reverse=True)
    return entries


def _media_matches(accept_type: str, media_type: str) -> bool:
    """Match an Accept entry against a formatter media type (wildcards allowed)."""
    if accept_type == "*/*":
        return True
    if accept_type.endswith("/*"):
        return media_type.startswith(accept_type[:-1])
    return accept_type == media_type


def _json_default(o: Any) -> Any:
    if isinstance(o, (set, tuple)):
        return list(o)
    if hasattr(o, "isoformat"):
        return o.isoformat()
    if hasattr(o, "to_dict"):
        return o.to_dict()
    if hasattr(o, "__dict__"):
        return {k: v for k, v in o.__dict__.items() if not k.startswith("_")}
    return str(o)


# ═══════════════════════════════════════════════════════════════════════════
#  Formatters
# ═══════════════════════════════════════════════════════════════════════════

class BaseFormatter:
    """
    Abstract formatter.

    Subclass, set ``media_type`` and ``format_suffix``, implement
    ``render()``.
    """

    media_type: str = "application/octet-stream"
    format_suffix: str = ""
    charset: Optional[str] = "utf-8"

    @property
    def content_type(self) -> str:
        if self.charset:
            return f"{self.media_type}; charset={self.charset}"
        return self.media_type

    def render(self, data: Any) -> str | bytes:
        raise NotImplementedError

    def __call__(self, context: Any, result: Any) -> str | bytes:
        """Formatter protocol used by the dispatcher: ``(context, result) -> body``."""
        context.response.set_header("Content-Type", self.content_type)
        return self.render(result)


class JSONFormatter(BaseFormatter):
    """Render data as JSON. Default formatter."""

    media_type = "application/json"
    format_suffix = "json"

    def __init__(self, *, indent: Optional[int] = None, ensure_ascii: bool = False):
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def render(self, data: Any) -> str:
        return json.dumps(data, default=_json_default, indent=self.indent, ensure_ascii=self.ensure_ascii)


class YAMLFormatter(BaseFormatter):
    """Render data as YAML."""

    media_type = "application/x-yaml"
    format_suffix = "yaml"

    def render(self, data: Any) -> str:
        # Round-trip through JSON so arbitrary objects become plain data
        plain = json.loads(json.dumps(data, default=_json_default))
        return yaml.safe_dump(plain, default_flow_style=False, allow_unicode=True, sort_keys=False)


class PlainTextFormatter(BaseFormatter):
    """Render data as plain text."""

    media_type = "text/plain"
    format_suffix = "txt"

    def render(self, data: Any) -> str:
        if data is None:
            return ""
        if isinstance(data, str):
            return data
        if isinstance(data, (dict, list)):
            return json.dumps(data, indent=2, default=_json_default)
        return str(data)


class HTMLFormatter(BaseFormatter):
    """Pass HTML strings through; wrap anything else in a minimal page."""

    media_type = "text/html"
    format_suffix = "html"

    def render(self, data: Any) -> str:
        if isinstance(data, str):
            return data
        return (
            "<!doctype html>\n<meta charset=\"utf-8\">\n<body>"
            f"<pre>{html.escape(json.dumps(data, indent=2, default=_json_default))}</pre>"
            "</body>\n"
        )


# ═══════════════════════════════════════════════════════════════════════════
#  Provider
# ═══════════════════════════════════════════════════════════════════════════

class FormatterProvider:
    """
    Select the formatter for a request context.

    Usage::

        provider = FormatterProvider([JSONFormatter(), YAMLFormatter()])
        formatter = provider.get_formatter(ctx)
        body = formatter(ctx, result) if formatter else ...
    """

    def __init__(self, formatters: Optional[Sequence[BaseFormatter]] = None):
        self.formatters: List[BaseFormatter] = list(
            formatters
            if formatters is not None
            else [JSONFormatter(), YAMLFormatter(), PlainTextFormatter(), HTMLFormatter()]
        )

    def get_formatter(self, context: Any) -> Optional[BaseFormatter]:
        """Return the best formatter for the context's request, or None."""
        if not self.formatters:
            return None

        request = context.request

        format_override = request.query_param("format") if hasattr(request, "query_param") else None
        if format_override:
            for formatter in self.formatters:
                if formatter.format_suffix == format_override:
                    return formatter
            return None

        accept = request.header("accept") if hasattr(request, "header") else None

        entries = _parse_accept(accept)
        refused = {media for media, quality in entries if quality <= 0}

        for accept_type, quality in entries:
            if quality <= 0:
                continue
            for formatter in self.formatters:
                if formatter.media_type in refused:
                    continue
                if _media_matches(accept_type, formatter.media_type):
                    return formatter

        return None
