"""Canonical room URL <-> RoomLink.

Canonical form::

    <base>?push=<push_id>[&audience=<audience>]

An empty audience ("no separate viewer key") is written by leaving the
``audience`` parameter out. ``audience=`` with an empty value is never produced
and is rejected when decoding, so every RoomLink has exactly one URL.
"""
import re
from dataclasses import dataclass, field
from typing import Dict
from urllib.parse import urlsplit

from constants import LINK_BASE_URL
from errors import MalformedUrl

PUSH_PARAM = "push"
AUDIENCE_PARAM = "audience"

# RFC 3986 unreserved characters: nothing in a value ever needs escaping
_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9._~-]+$")
IDENTIFIER_CHARSET_DESCRIPTION = "letters, digits, '-', '_', '.' and '~'"


def is_valid_identifier(value: str) -> bool:
    return isinstance(value, str) and bool(_IDENTIFIER_RE.match(value))


@dataclass(frozen=True)
class RoomLink:
    """Publisher/viewer identifier pair behind one session.

    Values are kept out of ``repr`` so a stray log call cannot leak them.
    """

    push_id: str = field(repr=False)
    audience: str = field(default="", repr=False)

    def __post_init__(self):
        if not is_valid_identifier(self.push_id):
            raise ValueError(f"push id must be non-empty and contain only {IDENTIFIER_CHARSET_DESCRIPTION}")
        if self.audience and not is_valid_identifier(self.audience):
            raise ValueError(f"audience may only contain {IDENTIFIER_CHARSET_DESCRIPTION}")


class LinkCodec:
    def __init__(self, base_url: str = LINK_BASE_URL):
        parts = urlsplit(base_url)
        if parts.scheme != "https" or not parts.netloc:
            raise ValueError("link base URL must be an absolute https URL")
        if parts.query or parts.fragment:
            raise ValueError("link base URL must not carry a query or fragment")
        self._scheme = parts.scheme
        self._netloc = parts.netloc.lower()
        self._path = parts.path or "/"
        self.base_url = f"{self._scheme}://{self._netloc}{self._path}"

    def encode(self, link: RoomLink) -> str:
        query = f"{PUSH_PARAM}={link.push_id}"
        if link.audience:
            query += f"&{AUDIENCE_PARAM}={link.audience}"
        return f"{self.base_url}?{query}"

    def decode(self, url: str) -> RoomLink:
        if not isinstance(url, str) or not url:
            raise MalformedUrl("link is empty")
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise MalformedUrl("link is not a valid URL") from e

        if parts.scheme != self._scheme or parts.netloc.lower() != self._netloc or parts.path != self._path:
            raise MalformedUrl("link does not point at the configured room endpoint")
        if parts.fragment or "#" in url:
            raise MalformedUrl("link must not carry a fragment")
        if not parts.query:
            raise MalformedUrl(f"link is missing the '{PUSH_PARAM}' parameter")

        params: Dict[str, str] = {}
        for pair in parts.query.split("&"):
            name, sep, value = pair.partition("=")
            if not sep:
                raise MalformedUrl("link query parameters must be name=value pairs")
            if name not in (PUSH_PARAM, AUDIENCE_PARAM):
                raise MalformedUrl(f"unexpected link parameter '{name}'")
            if name in params:
                raise MalformedUrl(f"link parameter '{name}' is repeated")
            if not is_valid_identifier(value):
                raise MalformedUrl(f"link parameter '{name}' must contain only {IDENTIFIER_CHARSET_DESCRIPTION}")
            params[name] = value

        if PUSH_PARAM not in params:
            raise MalformedUrl(f"link is missing the '{PUSH_PARAM}' parameter")
        return RoomLink(push_id=params[PUSH_PARAM], audience=params.get(AUDIENCE_PARAM, ""))
