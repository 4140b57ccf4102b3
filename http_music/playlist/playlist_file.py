"""
Playlist documents: JSON on disk or behind an HTTP(S) URL.

Document shape:

    {
      "items": [
        {"name": "Track", "downloaderArg": "http://...", "downloader": "http",
         "metadata": {"duration": 123.4, "size": 1024, "bitrate": 320, "tags": {}}},
        {"name": "Group", "items": [...]}
      ],
      "options": ["--sort", "alphabetical"]
    }

Older documents are upgraded on load (update_playlist_format):
- a bare array is the item list
- the "tracks" key is the old name of "items"
- ``["name", "arg"]`` is a track, ``["name", [...]]`` is a group
"""

import asyncio
import json
import logging
from typing import Any, Dict

import httpx

from http_music.playlist.grouplike import Group, Grouplike, Playlist, Track, TrackMetadata, is_group

logger = logging.getLogger(__name__)


class PlaylistError(Exception):
    """A playlist document couldn't be opened or parsed."""


def _update_item_format(item: Any) -> Dict[str, Any]:
    if isinstance(item, list):
        if len(item) != 2:
            raise PlaylistError(f"Unexpected array-format item of length {len(item)}: {item!r}")
        name, value = item
        if isinstance(value, list):
            return {"name": name, "items": [_update_item_format(child) for child in value]}
        return {"name": name, "downloaderArg": value}

    if not isinstance(item, dict):
        raise PlaylistError(f"Unexpected playlist item: {item!r}")

    item = dict(item)
    if "tracks" in item and "items" not in item:
        item["items"] = item.pop("tracks")
    if isinstance(item.get("items"), list):
        item["items"] = [_update_item_format(child) for child in item["items"]]
        return item

    item.setdefault("name", "")
    item.setdefault("downloaderArg", "")
    return item


def update_playlist_format(document: Any) -> Dict[str, Any]:
    """Upgrade a parsed playlist document to the current format."""
    if isinstance(document, list):
        document = {"items": document}
    elif isinstance(document, dict):
        document = dict(document)
        if "tracks" in document:
            document["items"] = document.pop("tracks")
    else:
        raise PlaylistError(f"Playlist must be a JSON object or array, not {type(document).__name__}")

    document.setdefault("items", [])
    document.setdefault("options", [])
    document["items"] = [_update_item_format(item) for item in document["items"]]
    return document


def _metadata_from_dict(data: Dict[str, Any]) -> TrackMetadata:
    return TrackMetadata(
        duration_seconds=data.get("duration"),
        size_bytes=data.get("size"),
        bitrate=data.get("bitrate"),
        tags=dict(data.get("tags") or {}),
    )


def grouplike_from_dict(data: Dict[str, Any]) -> Grouplike:
    if isinstance(data.get("items"), list):
        return Group(
            items=[grouplike_from_dict(child) for child in data["items"]],
            name=data.get("name", ""),
        )
    metadata = data.get("metadata")
    return Track(
        name=data.get("name", ""),
        downloader_arg=data.get("downloaderArg", ""),
        downloader=data.get("downloader"),
        metadata=_metadata_from_dict(metadata) if isinstance(metadata, dict) else None,
    )


def playlist_from_document(document: Any) -> Playlist:
    """Build a Playlist from a parsed (possibly old-format) JSON document."""
    document = update_playlist_format(document)
    options = document.get("options") or []
    if not isinstance(options, list):
        raise PlaylistError("Playlist options must be an array of strings")
    return Playlist(
        items=[grouplike_from_dict(item) for item in document["items"]],
        name=document.get("name", ""),
        options=[str(option) for option in options],
    )


def parse_playlist(text: str) -> Playlist:
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise PlaylistError(f"Invalid playlist JSON: {e}") from e
    return playlist_from_document(document)


def to_json(node: Grouplike) -> Dict[str, Any]:
    """Serialize a grouplike (or playlist) back to the document format."""
    if is_group(node):
        data: Dict[str, Any] = {}
        if node.name:
            data["name"] = node.name
        data["items"] = [to_json(item) for item in node.items]
        if isinstance(node, Playlist) and node.options:
            data["options"] = list(node.options)
        return data

    data = {"name": node.name, "downloaderArg": node.downloader_arg}
    if node.downloader:
        data["downloader"] = node.downloader
    if node.metadata is not None:
        metadata = {
            "duration": node.metadata.duration_seconds,
            "size": node.metadata.size_bytes,
            "bitrate": node.metadata.bitrate,
            "tags": node.metadata.tags,
        }
        data["metadata"] = {key: value for key, value in metadata.items() if value not in (None, {})}
    return data


def dumps_playlist(node: Grouplike) -> str:
    return json.dumps(to_json(node), indent=2)


def is_url(arg: str) -> bool:
    return arg.startswith("http://") or arg.startswith("https://")


def _read_file(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


async def read_playlist_text(arg: str, timeout: float = 60.0) -> str:
    """
    Read a playlist document from a URL or a local path.

    Raises:
        PlaylistError: If the document can't be fetched or read
    """
    if is_url(arg):
        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=timeout) as client:
                response = await client.get(arg)
                response.raise_for_status()
                return response.text
        except httpx.HTTPError as e:
            raise PlaylistError(f"Could not download playlist {arg}: {e}") from e

    try:
        return await asyncio.to_thread(_read_file, arg)
    except OSError as e:
        raise PlaylistError(f"Could not read playlist {arg}: {e}") from e


async def open_playlist(arg: str, timeout: float = 60.0) -> Playlist:
    """Open and parse the playlist at ``arg`` (path or http(s) URL)."""
    playlist = parse_playlist(await read_playlist_text(arg, timeout))
    logger.info(f"[PLAYLIST] Opened {arg}")
    return playlist


def write_playlist(node: Grouplike, path: str) -> None:
    """
    Write ``node`` as a playlist document to ``path``.

    Raises:
        PlaylistError: If the file can't be written
    """
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write(dumps_playlist(node) + "\n")
    except OSError as e:
        raise PlaylistError(f"Could not write playlist {path}: {e}") from e
    logger.info(f"[PLAYLIST] Saved playlist to {path}")
