"""
Downloaders: turn a track's downloader argument into a local, playable file.

Every downloader is an async callable ``(arg) -> Resource``:
- HTTPDownloader: fetches a URL with httpx into a temporary directory
- YouTubeDownloader: extracts audio with yt-dlp into a temporary directory
- LocalDownloader: hands an existing file path back unchanged
- ConvertingDownloader: wraps another downloader and converts its result to
  WAV with ffmpeg

get_downloader_for() routes an argument to a downloader, either by an explicit
name or by the argument's form.
"""

import asyncio
import logging
import os
import re
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import unquote, urlparse

import httpx

from http_music.broadcast_core.processes import ProcessFailed, run_process

logger = logging.getLogger(__name__)

YOUTUBE_HOSTS = ("youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com", "youtu.be")

_UNSAFE_FILENAME_CHARS = re.compile(r'[\x00-\x1f\x80-\x9f/\\?<>:*|"]')
_RESERVED_FILENAMES = re.compile(r"^\.+$")


class AcquisitionError(Exception):
    """Fetching or converting a track failed."""

    def __init__(self, arg: str, message: str):
        self.arg = arg
        super().__init__(f"{message} ({arg})")


@dataclass(frozen=True)
class Resource:
    """
    A local file ready for playback.

    Attributes:
        path: Local file path
        temporary: True if the file was created by a downloader and must be
            deleted once it has been played (or discarded)
        cleanup_dir: Temporary directory holding the file, removed with it
    """
    path: str
    temporary: bool = False
    cleanup_dir: Optional[str] = None


Downloader = Callable[[str], Awaitable[Resource]]


def sanitize_filename(name: str, replacement: str = "") -> str:
    """Strip characters that aren't allowed in file names."""
    cleaned = _UNSAFE_FILENAME_CHARS.sub(replacement, name).strip()
    if not cleaned or _RESERVED_FILENAMES.match(cleaned):
        return "track"
    return cleaned[:255]


def _delete_resource_files(resource: Resource) -> None:
    if resource.cleanup_dir:
        shutil.rmtree(resource.cleanup_dir, ignore_errors=True)
    elif os.path.exists(resource.path):
        os.remove(resource.path)


async def delete_resource(resource: Resource) -> None:
    """Delete a temporary resource; non-temporary resources are left alone."""
    if not resource.temporary:
        return
    try:
        await asyncio.to_thread(_delete_resource_files, resource)
        logger.debug(f"[ACQUIRE] Deleted {resource.path}")
    except OSError as e:
        logger.warning(f"[ACQUIRE] Could not delete {resource.path}: {e}")


class HTTPDownloader:
    """Download a URL to a temporary file."""

    CHUNK_SIZE = 64 * 1024

    def __init__(self, timeout: float = 60.0, temp_root: Optional[str] = None):
        self.timeout = timeout
        self.temp_root = temp_root

    async def __call__(self, arg: str) -> Resource:
        directory = tempfile.mkdtemp(prefix="http-music-", dir=self.temp_root)
        basename = os.path.basename(urlparse(arg).path)
        out = os.path.join(directory, sanitize_filename(unquote(basename)))

        try:
            async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
                async with client.stream("GET", arg) as response:
                    response.raise_for_status()
                    with open(out, "wb") as f:
                        async for chunk in response.aiter_bytes(self.CHUNK_SIZE):
                            f.write(chunk)
        except (httpx.HTTPError, OSError) as e:
            shutil.rmtree(directory, ignore_errors=True)
            raise AcquisitionError(arg, f"HTTP download failed: {e}") from e
        except asyncio.CancelledError:
            shutil.rmtree(directory, ignore_errors=True)
            raise

        return Resource(path=out, temporary=True, cleanup_dir=directory)


class YouTubeDownloader:
    """Extract a video's audio track to WAV with yt-dlp."""

    def __init__(self, executable: str = "yt-dlp", temp_root: Optional[str] = None):
        self.executable = executable
        self.temp_root = temp_root

    async def __call__(self, arg: str) -> Resource:
        directory = tempfile.mkdtemp(prefix="http-music-", dir=self.temp_root)
        cmd = [
            self.executable,
            "--quiet",
            "--no-playlist",
            "--extract-audio",
            "--audio-format", "wav",
            "--output", os.path.join(directory, "dl.%(ext)s"),
            arg,
        ]
        try:
            await run_process(cmd)
        except (ProcessFailed, FileNotFoundError) as e:
            shutil.rmtree(directory, ignore_errors=True)
            raise AcquisitionError(arg, f"YouTube download failed: {e}") from e
        except asyncio.CancelledError:
            shutil.rmtree(directory, ignore_errors=True)
            raise

        return Resource(path=os.path.join(directory, "dl.wav"), temporary=True, cleanup_dir=directory)


class LocalDownloader:
    """Local files need no download; the path is handed back as-is."""

    async def __call__(self, arg: str) -> Resource:
        path = os.path.expanduser(arg)
        if not os.path.isfile(path):
            raise AcquisitionError(arg, "Local file not found")
        return Resource(path=path, temporary=False)


class ConvertingDownloader:
    """Run another downloader, then convert its result to WAV with ffmpeg."""

    def __init__(self, downloader: Downloader, executable: str = "ffmpeg", temp_root: Optional[str] = None):
        self.downloader = downloader
        self.executable = executable
        self.temp_root = temp_root

    async def __call__(self, arg: str) -> Resource:
        source = await self.downloader(arg)
        directory = tempfile.mkdtemp(prefix="http-music-", dir=self.temp_root)
        out = os.path.join(directory, sanitize_filename(Path(source.path).stem) + ".wav")
        try:
            await run_process([self.executable, "-y", "-i", source.path, out])
        except (ProcessFailed, FileNotFoundError) as e:
            shutil.rmtree(directory, ignore_errors=True)
            raise AcquisitionError(arg, f"Conversion failed: {e}") from e
        except asyncio.CancelledError:
            shutil.rmtree(directory, ignore_errors=True)
            raise
        finally:
            await delete_resource(source)
        return Resource(path=out, temporary=True, cleanup_dir=directory)


DOWNLOADER_NAMES = ("http", "youtube", "local")


def guess_downloader_name(arg: str) -> str:
    """Pick a downloader name from the form of ``arg``."""
    parsed = urlparse(arg)
    if parsed.scheme in ("http", "https"):
        host = (parsed.hostname or "").lower()
        if host in YOUTUBE_HOSTS:
            return "youtube"
        return "http"
    return "local"


class DownloaderRegistry:
    """
    Builds and caches downloaders by name.

    Args:
        timeout: HTTP download timeout in seconds
        temp_root: Parent directory for temporary downloads (system default if None)
        convert: Wrap every downloader in a ConvertingDownloader
    """

    def __init__(self, timeout: float = 60.0, temp_root: Optional[str] = None, convert: bool = False):
        self.timeout = timeout
        self.temp_root = temp_root
        self.convert = convert
        self._cache: Dict[str, Downloader] = {}

    def _build(self, name: str) -> Downloader:
        if name == "http":
            downloader: Downloader = HTTPDownloader(timeout=self.timeout, temp_root=self.temp_root)
        elif name == "youtube":
            downloader = YouTubeDownloader(temp_root=self.temp_root)
        elif name == "local":
            downloader = LocalDownloader()
        else:
            raise KeyError(name)
        if self.convert:
            downloader = ConvertingDownloader(downloader, temp_root=self.temp_root)
        return downloader

    def get(self, name: str) -> Downloader:
        if name not in self._cache:
            self._cache[name] = self._build(name)
        return self._cache[name]

    def get_downloader_for(self, arg: str, method: Optional[str] = None) -> Downloader:
        """
        Resolve the downloader for a track.

        Args:
            arg: The track's downloader argument
            method: Explicit downloader name; guessed from ``arg`` when None

        Raises:
            AcquisitionError: If ``method`` names no known downloader
        """
        name = method or guess_downloader_name(arg)
        try:
            return self.get(name)
        except KeyError:
            raise AcquisitionError(
                arg, f"Unknown downloader: {name} (must be one of: {', '.join(DOWNLOADER_NAMES)})"
            ) from None
