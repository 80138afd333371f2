"""
Unified video-source records built from a decoded embed payload.

The decoder hands back plain text. These helpers turn that text (plus the
caption tracks the embed API returns next to the encrypted blob) into the
application's source representation: url, quality label, HLS flag and
optional subtitle tracks.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import MalformedPayloadError

EMBED_ORIGIN = "https://megacloud.blog"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS: Mapping[str, str] = {
    "Referer": f"{EMBED_ORIGIN}/",
    "Origin": EMBED_ORIGIN,
    "User-Agent": USER_AGENT,
    "Accept": "*/*",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass(frozen=True)
class VideoSource:
    url: str
    quality: str = "auto"
    is_m3u8: bool = False
    is_backup: bool = False

    def to_record(self) -> Mapping[str, Any]:
        return {
            "url": self.url,
            "quality": self.quality,
            "isM3U8": self.is_m3u8,
            "isBackup": self.is_backup,
        }

    @classmethod
    def from_entry(cls, entry: Mapping[str, Any]) -> "VideoSource":
        url = entry.get("file") or entry.get("url")
        if not isinstance(url, str) or not url:
            raise MalformedPayloadError("Source entry has no file/url")
        return cls(
            url=url,
            quality=str(entry.get("quality") or "auto"),
            is_m3u8=".m3u8" in url or entry.get("type") == "hls",
        )

    def to_entry(self) -> Dict[str, Any]:
        entry: Dict[str, Any] = {"file": self.url}
        if self.quality != "auto":
            entry["quality"] = self.quality
        if self.is_m3u8:
            entry["type"] = "hls"
        return entry


@dataclass(frozen=True)
class SubtitleTrack:
    url: str
    lang: str

    def to_record(self) -> Mapping[str, str]:
        return {"url": self.url, "lang": self.lang}

    def to_track(self) -> Dict[str, str]:
        return {"file": self.url, "label": self.lang, "kind": "captions"}


@dataclass(frozen=True)
class EpisodeSources:
    sources: Tuple[VideoSource, ...]
    subtitles: Tuple[SubtitleTrack, ...] = ()
    headers: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))

    def to_record(self) -> Dict[str, Any]:
        return {
            "sources": [s.to_record() for s in self.sources],
            "subtitles": [t.to_record() for t in self.subtitles],
            "headers": dict(self.headers),
        }


def caption_tracks(tracks: Optional[Iterable[Any]]) -> Tuple[SubtitleTrack, ...]:
    """Keep only `kind == "captions"` tracks; anything else is thumbnails etc."""
    if not tracks:
        return ()
    out: List[SubtitleTrack] = []
    for track in tracks:
        if not isinstance(track, Mapping) or track.get("kind") != "captions":
            continue
        url = track.get("file")
        if not url:
            continue
        out.append(SubtitleTrack(url=str(url), lang=str(track.get("label") or "")))
    return tuple(out)


def parse_sources(
    plaintext: str,
    tracks: Optional[Iterable[Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
) -> EpisodeSources:
    """
    Parse decoded plaintext into `EpisodeSources`.

    Accepts either a bare JSON list of source entries or an object carrying a
    `sources` list (and optionally its own `tracks`). Any structural problem
    raises `MalformedPayloadError`.
    """
    try:
        data = json.loads(plaintext)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError("Decoded payload is not valid JSON") from exc
    if isinstance(data, Mapping):
        if tracks is None:
            tracks = data.get("tracks")
        data = data.get("sources")
    if not isinstance(data, list):
        raise MalformedPayloadError("Decoded payload does not hold a source list")
    sources = []
    for entry in data:
        if not isinstance(entry, Mapping):
            raise MalformedPayloadError("Source entry is not an object")
        sources.append(VideoSource.from_entry(entry))
    return EpisodeSources(
        sources=tuple(sources),
        subtitles=caption_tracks(tracks),
        headers=dict(headers) if headers is not None else dict(DEFAULT_HEADERS),
    )


def dump_sources(episode: EpisodeSources) -> str:
    """Serialize `episode` to the object form `parse_sources` reads back. Headers are not carried."""
    document: Dict[str, Any] = {"sources": [s.to_entry() for s in episode.sources]}
    if episode.subtitles:
        document["tracks"] = [t.to_track() for t in episode.subtitles]
    return json.dumps(document, separators=(",", ":"))


__all__ = [
    "DEFAULT_HEADERS",
    "EpisodeSources",
    "SubtitleTrack",
    "VideoSource",
    "caption_tracks",
    "dump_sources",
    "parse_sources",
]
