"""
Shared pytest fixtures for http-music contract tests.

Contract tests use test doubles (fakes, stubs) to avoid real dependencies.
Where a file is genuinely needed, it lives under pytest's tmp_path.
"""

import json
import os

import pytest

from http_music.playlist.grouplike import Group
from http_music.tests.contracts.test_doubles import make_track, make_tree


@pytest.fixture
def xyz_tree():
    """The tree {items: [X, {items: [Y, Z]}]}."""
    return Group(items=[make_track("X"), Group(items=[make_track("Y"), make_track("Z")])])


@pytest.fixture
def flat_tree():
    return make_tree("A", "B", "C", "D", "E", "F", "G", "H")


@pytest.fixture
def library_tree():
    """Artist/album tree with group names in crawler style (trailing slash)."""
    return Group(items=[
        Group(name="Jazz/", items=[
            Group(name="Bebop/", items=[make_track("Salt Peanuts"), make_track("Ornithology")]),
            Group(name="Cool/", items=[make_track("So What"), make_track("Take Five")]),
        ]),
        Group(name="Rock/", items=[
            Group(name="Punk/", items=[make_track("Blitzkrieg Bop")]),
        ]),
        make_track("Loose Track"),
    ])


@pytest.fixture
def playlist_file(tmp_path):
    """A playlist document on disk; returns its path."""
    document = {
        "items": [
            {"name": "Jazz", "items": [
                {"name": "So What", "downloaderArg": "/music/so-what.mp3"},
                {"name": "Take Five", "downloaderArg": "/music/take-five.mp3"},
            ]},
            {"name": "Rock", "items": [
                {"name": "Blitzkrieg Bop", "downloaderArg": "/music/bop.mp3"},
            ]},
        ],
    }
    path = tmp_path / "playlist.json"
    path.write_text(json.dumps(document), encoding="utf-8")
    return str(path)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Clear HTTP_MUSIC_* variables and point the .env lookup at tmp_path."""
    original = {key for key in os.environ if key.startswith("HTTP_MUSIC_")}
    for key in original:
        monkeypatch.delenv(key)
    monkeypatch.setenv("HTTP_MUSIC_ENV_FILE", str(tmp_path / "missing.env"))
    yield tmp_path
    # load_dotenv writes straight into os.environ
    for key in [key for key in os.environ if key.startswith("HTTP_MUSIC_")]:
        if key not in original:
            os.environ.pop(key, None)
