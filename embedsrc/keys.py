"""
Collaborators that supply the two decoder keys.

`KeyExtractor` pulls the per-page client key out of embed markup by trying an
ordered list of `KeyPattern` strategies. Embed pages change their markup
without notice, so patterns are data: register a new one instead of editing
the decoder.

`RemoteKeyFetcher` reads the slow-changing server key from a hosted JSON
document. The transport is injected as a zero-argument callable so the
package itself never touches the network.
"""

from __future__ import annotations

import json
import re
import threading
import time
import warnings
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Union

KEYS_URL = "https://raw.githubusercontent.com/yogesh-hacker/MegacloudKeys/refs/heads/main/keys.json"
SERVER_KEY_FIELD = "mega"

_ALNUM = "[0-9a-zA-Z]+"


def _first_group(match: "re.Match[str]") -> Optional[str]:
    return match.group(1)


def _lk_db_parts(match: "re.Match[str]") -> Optional[str]:
    # x, y and z may appear in any order; the key is always x + y + z.
    parts = []
    for name in ("x", "y", "z"):
        found = re.search(rf"{name}:\s+[\"']({_ALNUM})[\"']", match.group(0))
        if found is None:
            return None
        parts.append(found.group(1))
    return "".join(parts)


@dataclass(frozen=True)
class KeyPattern:
    name: str
    regex: "re.Pattern[str]"
    extract: Callable[["re.Match[str]"], Optional[str]] = _first_group

    def apply(self, markup: str) -> Optional[str]:
        match = self.regex.search(markup)
        if match is None:
            return None
        return self.extract(match) or None


DEFAULT_PATTERNS = (
    KeyPattern("meta_gg_fb", re.compile(rf'<meta name="_gg_fb" content="({_ALNUM})">')),
    KeyPattern("comment_is_th", re.compile(rf"<!--\s+_is_th:({_ALNUM})\s+-->")),
    KeyPattern(
        "script_lk_db",
        re.compile(
            r"<script>window\._lk_db\s+=\s+\{"
            r"[xyz]:\s+[\"'][a-zA-Z0-9]+[\"'],\s+"
            r"[xyz]:\s+[\"'][a-zA-Z0-9]+[\"'],\s+"
            r"[xyz]:\s+[\"'][a-zA-Z0-9]+[\"']\};</script>"
        ),
        _lk_db_parts,
    ),
    KeyPattern("div_data_dpi", re.compile(rf'<div\s+data-dpi="({_ALNUM})"\s+.*></div>')),
    KeyPattern("script_nonce", re.compile(rf'<script nonce="({_ALNUM})">')),
    KeyPattern("script_xy_ws", re.compile(rf"<script>window\._xy_ws = ['\"`]({_ALNUM})['\"`];</script>")),
)


class KeyExtractor:
    """
    Try each pattern in order; the first non-empty key wins.

    A pattern whose regex matches but whose extractor yields nothing (for
    example an `_lk_db` block missing one of x/y/z) does not end the search:
    the next pattern is tried instead of returning an empty key.
    """

    def __init__(self, patterns: Optional[Iterable[KeyPattern]] = None) -> None:
        self._patterns: List[KeyPattern] = list(DEFAULT_PATTERNS if patterns is None else patterns)

    @property
    def patterns(self) -> tuple:
        return tuple(self._patterns)

    def register(self, pattern: KeyPattern, *, first: bool = False) -> None:
        if first:
            self._patterns.insert(0, pattern)
        else:
            self._patterns.append(pattern)

    def extract(self, markup: str) -> Optional[str]:
        if not markup:
            return None
        for pattern in self._patterns:
            key = pattern.apply(markup)
            if key:
                return key
        return None

    __call__ = extract


Loader = Callable[[], Union[str, bytes, Mapping[str, Any]]]


class RemoteKeyFetcher:
    """
    Cache one field of a hosted JSON key document.

    `loader` returns the document as text, bytes or an already parsed
    mapping. A successful value is cached until `ttl` seconds pass (forever
    when `ttl` is None). Loader or parse failures are non-fatal: they emit a
    RuntimeWarning and `fetch()` returns None.
    """

    def __init__(
        self,
        loader: Loader,
        field: str = SERVER_KEY_FIELD,
        ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self.field = field
        self.ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._cached: Optional[str] = None
        self._fetched_at = 0.0

    def _fresh(self) -> bool:
        if self._cached is None:
            return False
        if self.ttl is None:
            return True
        return (self._clock() - self._fetched_at) < self.ttl

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None

    def fetch(self) -> Optional[str]:
        with self._lock:
            if self._fresh():
                return self._cached
            try:
                document = self._loader()
                if isinstance(document, bytes):
                    document = document.decode("utf-8")
                if isinstance(document, str):
                    document = json.loads(document)
            except (OSError, ValueError) as exc:
                warnings.warn(f"Server key fetch failed: {exc}", RuntimeWarning, stacklevel=2)
                return None
            value = document.get(self.field) if isinstance(document, Mapping) else None
            if not isinstance(value, str) or not value:
                warnings.warn(f"Server key document has no {self.field!r} field", RuntimeWarning, stacklevel=2)
                return None
            self._cached = value
            self._fetched_at = self._clock()
            return value

    __call__ = fetch


__all__ = [
    "DEFAULT_PATTERNS",
    "KEYS_URL",
    "KeyExtractor",
    "KeyPattern",
    "RemoteKeyFetcher",
]
