"""
Grouplike model for http-music playlists.

A playlist is a tree of grouplikes. A group carries an ordered ``items`` list
of further grouplikes; anything without ``items`` is a track. Groups nest to
any depth and exclusively own their items, so the tree is acyclic.

Pure tree operations live here:
- flatten (depth-first, left-to-right)
- occurrence flattening (tracks paired with their index path in the tree)
- path lookup and path removal on named children
- tree listing for --list-groups / --list-all
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "/"


@dataclass
class TrackMetadata:
    """Optional metadata attached to a track by an upstream probe."""
    duration_seconds: Optional[float] = None
    size_bytes: Optional[int] = None
    bitrate: Optional[int] = None
    tags: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Track:
    """
    A playable leaf of the playlist tree.

    Attributes:
        name: Display name
        downloader_arg: Argument handed to the downloader (URL, path, video id)
        downloader: Explicit downloader name; resolved from the argument when None
        metadata: Optional probed metadata
    """
    name: str = ""
    downloader_arg: str = ""
    downloader: Optional[str] = None
    metadata: Optional[TrackMetadata] = None


@dataclass
class Group:
    """An ordered, named collection of tracks and groups."""
    items: List["Grouplike"] = field(default_factory=list)
    name: str = ""


@dataclass
class Playlist(Group):
    """Root group of an opened playlist document plus its option strings."""
    options: List[str] = field(default_factory=list)


Grouplike = Union[Group, Track]


@dataclass(frozen=True)
class Occurrence:
    """
    One specific appearance of a track in a tree.

    ``path`` is the tuple of item indices leading from the root to the track.
    Two value-equal tracks at different places in the tree have different
    paths, so the path is what identifies "this exact occurrence".
    """
    path: Tuple[int, ...]
    track: Track


def is_group(node: Any) -> bool:
    """A node is a group iff it carries an ``items`` list."""
    return isinstance(getattr(node, "items", None), list)


def is_track(node: Any) -> bool:
    return node is not None and not is_group(node)


def flatten_occurrences(tree: Group, _prefix: Tuple[int, ...] = ()) -> List[Occurrence]:
    """
    Flatten a tree into track occurrences, depth-first and left-to-right.

    Args:
        tree: Root group

    Returns:
        Occurrences in tree order, each carrying its index path
    """
    occurrences: List[Occurrence] = []
    for index, item in enumerate(tree.items):
        path = _prefix + (index,)
        if is_group(item):
            occurrences.extend(flatten_occurrences(item, path))
        else:
            occurrences.append(Occurrence(path=path, track=item))
    return occurrences


def flatten(tree: Group) -> List[Track]:
    """Return every track reachable from ``tree``, in depth-first order."""
    return [occurrence.track for occurrence in flatten_occurrences(tree)]


def parse_path_string(path_string: str) -> List[str]:
    """
    Split a group path string into parts.

    A trailing separator is kept on the final part ("a/b/" -> ["a", "b/"]) so
    that the last part is required to resolve to a group.
    """
    parts = path_string.split(PATH_SEPARATOR)
    result: List[str] = []
    for index, part in enumerate(parts):
        if part:
            result.append(part)
        elif index == len(parts) - 1 and result:
            result[-1] = result[-1] + PATH_SEPARATOR
    return result


def _name_matches(name: str, part: str, case_insensitive: bool) -> bool:
    plain = part.rstrip(PATH_SEPARATOR)
    if case_insensitive:
        name = name.lower()
        plain = plain.lower()
    return name == plain or name == plain + PATH_SEPARATOR


def _find_child(group: Group, part: str, must_be_group: bool) -> Optional[Grouplike]:
    for case_insensitive in (False, True):
        for item in group.items:
            if must_be_group and not is_group(item):
                continue
            if _name_matches(item.name, part, case_insensitive):
                return item
    return None


def find_by_path(tree: Group, path_parts: List[str]) -> Grouplike:
    """
    Find a grouplike by following named children from ``tree``.

    Every part except the last must resolve to a group; the last part may be a
    track unless it ends with the separator. Matching is case-sensitive first,
    then case-insensitive.

    If a part cannot be resolved a warning is logged and the deepest group
    reached so far is returned (for an unresolved first part, ``tree`` itself).

    Args:
        tree: Group to search
        path_parts: Parsed path (see parse_path_string)

    Returns:
        The located node, or the deepest resolved group on failure
    """
    current: Grouplike = tree
    for index, part in enumerate(path_parts):
        is_last = index == len(path_parts) - 1
        must_be_group = not is_last or part.endswith(PATH_SEPARATOR)
        match = _find_child(current, part, must_be_group)
        if match is None:
            logger.warning(f"[PLAYLIST] Not found: \"{part}\"")
            return current
        current = match
    return current


def remove_by_path(tree: Group, path_parts: List[str]) -> bool:
    """
    Remove the grouplike at ``path_parts`` from its parent's items.

    The node is located with find_by_path, its parent likewise. The node is
    spliced out only if the parent holds that exact node; otherwise an error is
    logged and the tree is left untouched.

    Returns:
        True if a node was removed
    """
    if not path_parts:
        logger.error("[PLAYLIST] Cannot remove an empty path")
        return False

    target = find_by_path(tree, path_parts)
    parent_parts = path_parts[:-1]
    parent = find_by_path(tree, parent_parts) if parent_parts else tree

    if is_group(parent):
        for index, item in enumerate(parent.items):
            if item is target:
                del parent.items[index]
                return True

    logger.error(
        f"[PLAYLIST] Group {PATH_SEPARATOR.join(path_parts)} doesn't exist, "
        "so we can't explicitly ignore it."
    )
    return False


def find_by_path_string(tree: Group, path_string: str) -> Grouplike:
    return find_by_path(tree, parse_path_string(path_string))


def remove_by_path_string(tree: Group, path_string: str) -> bool:
    return remove_by_path(tree, parse_path_string(path_string))


def get_playlist_tree_string(tree: Group, show_tracks: bool = False) -> str:
    """
    Render the group hierarchy of ``tree`` as indented text.

    Subgroups are listed by name with their contents prefixed by "| ". Tracks
    are included (before the subgroups of the same level) when ``show_tracks``
    is set.
    """
    def recursive(group: Group) -> str:
        groups = [item for item in group.items if is_group(item)]
        tracks = [item for item in group.items if not is_group(item)]

        children = []
        for child in groups:
            child_string = recursive(child)
            if child_string:
                indented = "\n".join("| " + line for line in child_string.split("\n"))
                children.append("\n" + child.name + "\n" + indented)
            else:
                children.append(child.name)
        children_string = "\n".join(children)

        tracks_string = "\n".join(track.name for track in tracks) if show_tracks else ""

        if tracks_string and children_string:
            return tracks_string + "\n" + children_string
        return children_string or tracks_string

    return recursive(tree)
