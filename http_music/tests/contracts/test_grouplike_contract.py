"""
Contract tests for the grouplike tree model.

Tests map to contract clauses:
- GL1: Group/track discrimination (2 tests)
- GL2: Flattening (3 tests)
- GL3: Path parsing and lookup (6 tests)
- GL4: Path removal (4 tests)
- GL5: Tree listing (2 tests)
"""

import logging

from http_music.playlist.grouplike import (
    Group,
    Track,
    find_by_path_string,
    flatten,
    flatten_occurrences,
    get_playlist_tree_string,
    is_group,
    is_track,
    parse_path_string,
    remove_by_path_string,
)
from http_music.tests.contracts.test_doubles import make_track


class TestGL1_Discrimination:
    """Tests for GL1 — a node is a group iff it carries items."""

    def test_gl1_group_is_detected_by_items(self):
        """GL1: Anything with an items list is a group, even an empty one."""
        assert is_group(Group())
        assert not is_track(Group())

    def test_gl1_track_has_no_items(self):
        """GL1: Nodes without items are tracks."""
        track = Track(name="t", downloader_arg="/t.mp3")
        assert is_track(track)
        assert not is_group(track)


class TestGL2_Flatten:
    """Tests for GL2 — depth-first, left-to-right flattening."""

    def test_gl2_ordered_flatten_example(self, xyz_tree):
        """GL2: {items:[X, {items:[Y,Z]}]} flattens to [X, Y, Z]."""
        assert [track.name for track in flatten(xyz_tree)] == ["X", "Y", "Z"]

    def test_gl2_occurrence_paths_are_index_paths(self, xyz_tree):
        """GL2: Each occurrence carries the item indices leading to it."""
        paths = [occurrence.path for occurrence in flatten_occurrences(xyz_tree)]
        assert paths == [(0,), (1, 0), (1, 1)]

    def test_gl2_value_equal_tracks_are_distinct_occurrences(self):
        """GL2: Equal tracks at different positions keep different paths."""
        tree = Group(items=[make_track("A"), make_track("A")])
        first, second = flatten_occurrences(tree)
        assert first.track == second.track
        assert first != second


class TestGL3_PathLookup:
    """Tests for GL3 — path parsing and lookup by name."""

    def test_gl3_trailing_separator_kept_on_last_part(self):
        """GL3: "a/b/" parses to ["a", "b/"]."""
        assert parse_path_string("a/b/") == ["a", "b/"]
        assert parse_path_string("a/b") == ["a", "b"]

    def test_gl3_finds_nested_group(self, library_tree):
        """GL3: Parts match names equal to them or to them plus "/"."""
        node = find_by_path_string(library_tree, "Jazz/Bebop")
        assert node.name == "Bebop/"

    def test_gl3_case_insensitive_fallback(self, library_tree):
        """GL3: Lookup falls back to a case-insensitive match."""
        node = find_by_path_string(library_tree, "jazz/cool/")
        assert node.name == "Cool/"

    def test_gl3_finds_track_as_last_part(self, library_tree):
        """GL3: The last part may name a track."""
        node = find_by_path_string(library_tree, "Loose Track")
        assert is_track(node)

    def test_gl3_trailing_separator_requires_group(self, library_tree, caplog):
        """GL3: A last part ending with "/" never matches a track."""
        with caplog.at_level(logging.WARNING):
            node = find_by_path_string(library_tree, "Loose Track/")
        assert node is library_tree
        assert 'Not found: "Loose Track/"' in caplog.text

    def test_gl3_unresolved_part_warns_and_returns_deepest_group(self, library_tree, caplog):
        """GL3: An unknown part is non-fatal; lookup stops at the last match."""
        with caplog.at_level(logging.WARNING):
            node = find_by_path_string(library_tree, "Jazz/Swing")
        assert node is library_tree.items[0]
        assert 'Not found: "Swing"' in caplog.text


class TestGL4_PathRemoval:
    """Tests for GL4 — removing a node by path."""

    def test_gl4_removes_top_level_group(self, library_tree):
        """GL4: The located node is spliced out of its parent."""
        assert remove_by_path_string(library_tree, "Rock")
        assert [item.name for item in library_tree.items] == ["Jazz/", "Loose Track"]

    def test_gl4_removes_nested_group(self, library_tree):
        """GL4: Nested paths remove from the nested parent only."""
        assert remove_by_path_string(library_tree, "Jazz/Cool/")
        jazz = library_tree.items[0]
        assert [item.name for item in jazz.items] == ["Bebop/"]

    def test_gl4_unknown_path_leaves_tree_unchanged(self, library_tree, caplog):
        """GL4: A failed removal logs an error and doesn't touch the tree."""
        before = [track.name for track in flatten(library_tree)]
        with caplog.at_level(logging.ERROR):
            assert not remove_by_path_string(library_tree, "Jazz/Swing")
        assert [track.name for track in flatten(library_tree)] == before
        assert "doesn't exist" in caplog.text

    def test_gl4_removal_uses_identity_not_equality(self):
        """GL4: Only the exact located node is removed, not an equal sibling."""
        first = Group(name="Same", items=[])
        second = Group(name="Same", items=[])
        tree = Group(items=[first, second])
        assert remove_by_path_string(tree, "Same")
        assert len(tree.items) == 1
        assert tree.items[0] is second


class TestGL5_TreeListing:
    """Tests for GL5 — indented tree listing."""

    def test_gl5_lists_groups_only_by_default(self):
        """GL5: Without tracks, only group names are listed."""
        tree = Group(items=[
            make_track("t1"),
            Group(name="G", items=[make_track("t2")]),
            Group(name="H", items=[]),
        ])
        assert get_playlist_tree_string(tree) == "G\nH"

    def test_gl5_lists_tracks_indented_under_groups(self):
        """GL5: Children of a group are prefixed with "| "."""
        tree = Group(items=[
            make_track("t1"),
            Group(name="G", items=[make_track("t2")]),
        ])
        listing = get_playlist_tree_string(tree, show_tracks=True)
        assert listing.startswith("t1")
        assert "G\n| t2" in listing
