"""
Path matcher - compiles ``:name`` path templates into anchored regexes.

Template syntax:
- ``/users/:id``          one segment, captured as ``id``
- ``/users/:id(\\d+)``     custom segment pattern
- ``/users/:id?``         optional segment (its leading slash is optional too)
- ``/files/*``            unnamed wildcard, captured under ``"0"``, ``"1"``, ...

Matching is case-insensitive and tolerates one trailing slash on the
request path. A template is normalized before compilation so that it never
ends in ``/`` unless it is exactly ``/``.

Performance notes:
- The root template ``/`` answers ``path == "/"`` without touching the regex.
- Decoding only runs on captured segments, after the regex matched.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import unquote

from ..faults import ConfigurationFault, DecodeFault

_DEFAULT_SEGMENT = "[^/]+?"

# Escaped char | :name(pattern)?modifier | bare *
_TOKEN_RE = re.compile(
    r"(\\.)"
    r"|:(\w+)(?:\(((?:\\.|[^\\()])+)\))?(\?)?"
    r"|(\*)"
)

# A '%' that does not start a two-digit hex escape
_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def normalize_path(template: str) -> str:
    """
    Strip trailing slashes from a template, keeping the root ``/``.

    ``normalize_path("/a/b/") == normalize_path("/a/b") == "/a/b"``
    """
    if not template.startswith("/"):
        template = "/" + template
    return template.rstrip("/") or "/"


def decode_param(value: Optional[str]) -> Optional[str]:
    """
    Percent-decode one captured parameter value.

    Raises:
        DecodeFault: If the value holds a malformed escape or the escapes
            do not form valid UTF-8.
    """
    if not isinstance(value, str) or not value:
        return value

    if "%" not in value:
        return value

    if _BAD_ESCAPE_RE.search(value):
        raise DecodeFault(value)

    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        raise DecodeFault(value) from None


def compile_template(template: str) -> Tuple[re.Pattern[str], List[str]]:
    """
    Compile a normalized template into a regex and its parameter names.

    The returned names are ordered by capture group position, which is the
    order they appear in the template.

    Raises:
        ConfigurationFault: If a custom segment pattern is not a valid regex.
    """
    keys: List[str] = []
    parts: List[str] = []
    literal = ""
    wildcard_index = 0
    pos = 0

    for m in _TOKEN_RE.finditer(template):
        literal += template[pos:m.start()]
        pos = m.end()

        escaped, name, pattern, optional, star = m.groups()
        if escaped:
            literal += escaped[1]
            continue

        prefix = ""
        if literal.endswith("/"):
            prefix = "/"
            literal = literal[:-1]
        parts.append(re.escape(literal))
        literal = ""

        if star:
            keys.append(str(wildcard_index))
            wildcard_index += 1
            group = "(.*)"
        else:
            keys.append(name)
            group = f"((?:{pattern}))" if pattern else f"({_DEFAULT_SEGMENT})"

        if optional:
            parts.append(f"(?:{re.escape(prefix)}{group})?")
        else:
            parts.append(f"{re.escape(prefix)}{group}")

    literal += template[pos:]
    parts.append(re.escape(literal))

    # Non-strict: one trailing slash is tolerated on the request path
    source = "^" + "".join(parts) + "(?:/(?=$))?$"

    try:
        regex = re.compile(source, re.IGNORECASE)
    except re.error as e:
        raise ConfigurationFault(
            f"Invalid path template '{template}': {e}",
            metadata={"template": template},
        ) from e

    if regex.groups != len(keys):
        raise ConfigurationFault(
            f"Invalid path template '{template}': capture groups are only "
            "allowed as :name(pattern)",
            metadata={"template": template},
        )

    return regex, keys


class PathMatcher:
    """
    Compiled matcher for one path template.

    Attributes:
        path: Normalized template
        keys: Parameter names in capture order
        regex: Anchored, case-insensitive regex
        fast_slash: True for the root template ``/``
    """

    __slots__ = ("path", "keys", "regex", "fast_slash")

    def __init__(self, template: str):
        self.path = normalize_path(template)
        self.regex, self.keys = compile_template(self.path)
        self.fast_slash = self.path == "/"

    def match(self, path: str) -> Optional[Dict[str, Optional[str]]]:
        """
        Match a concrete request path.

        Returns:
            Mapping of parameter name to decoded value, or None when the
            path does not match. A root match returns an empty dict.

        Raises:
            DecodeFault: If a captured value is malformed.
        """
        if not path:
            return None

        if self.fast_slash and path == "/":
            return {}

        m = self.regex.match(path)
        if m is None:
            return None

        params: Dict[str, Optional[str]] = {}
        for key, raw in zip(self.keys, m.groups()):
            value = decode_param(raw)
            # An unmatched optional capture never hides an earlier binding
            if value is not None or key not in params:
                params[key] = value

        return params

    def __repr__(self) -> str:
        return f"PathMatcher({self.path!r}, keys={self.keys!r})"
