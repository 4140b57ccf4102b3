"""
Seeded sequencer for http-music.

Turns a playlist tree, a sort mode and a seed into an ordered list of track
occurrences. The result is a pure function of its inputs: the same tree, mode
and seed always produce the same order.

Sort modes:
- ordered: depth-first flatten, tree order kept
- alphabetical: flatten, then stable sort on a normalized name
- shuffle-tracks: flatten, then a seeded Fisher-Yates shuffle
- shuffle-groups: shuffle sibling groups wherever every child of a group is a
  group, then flatten

Randomness comes from random.Random(seed) (MT19937). A shuffle draws
``int(rng.random() * m)`` for m = n..1, swapping the drawn item into slot m-1.
"""

import logging
import random
import re
from typing import List, Sequence, Tuple, TypeVar

from http_music.playlist.grouplike import Group, Occurrence, Track, flatten_occurrences, is_group

logger = logging.getLogger(__name__)

SORT_ORDERED = "ordered"
SORT_ALPHABETICAL = "alphabetical"
SORT_SHUFFLE_TRACKS = "shuffle-tracks"
SORT_SHUFFLE_GROUPS = "shuffle-groups"

SORT_MODES = (SORT_ORDERED, SORT_ALPHABETICAL, SORT_SHUFFLE_TRACKS, SORT_SHUFFLE_GROUPS)

_NON_ALPHANUMERIC = re.compile(r"[^0-9a-z]")
_LEADING_DIGITS = re.compile(r"^[0-9]+")

T = TypeVar("T")


class PickerConfigError(ValueError):
    """Raised for an unknown sort mode or loop mode."""


def validate_sort_mode(sort_mode: str) -> str:
    if sort_mode not in SORT_MODES:
        raise PickerConfigError(
            f"Invalid sort mode: {sort_mode} (must be one of: {', '.join(SORT_MODES)})"
        )
    return sort_mode


def shuffle_list(items: Sequence[T], rng: random.Random) -> List[T]:
    """
    Return a shuffled copy of ``items`` (Fisher-Yates, seeded ``rng``).

    The input is never modified.
    """
    working = list(items)
    m = len(working)
    while m:
        i = int(rng.random() * m)
        m -= 1
        working[m], working[i] = working[i], working[m]
    return working


def normalize_sort_name(name: str) -> str:
    """
    Normalize a track name for alphabetical sorting.

    Trims and lowercases, drops anything that isn't a letter or digit, then
    strips a leading run of digits (track numbers) unless the whole name is
    numeric.
    """
    normalized = _NON_ALPHANUMERIC.sub("", name.strip().lower())
    if normalized.isdigit():
        return normalized
    return _LEADING_DIGITS.sub("", normalized)


def _shuffle_groups(group: Group, prefix: Tuple[int, ...], rng: random.Random) -> List[Occurrence]:
    indexed = list(enumerate(group.items))
    if indexed and all(is_group(item) for _, item in indexed):
        indexed = shuffle_list(indexed, rng)

    occurrences: List[Occurrence] = []
    for index, item in indexed:
        path = prefix + (index,)
        if is_group(item):
            occurrences.extend(_shuffle_groups(item, path, rng))
        else:
            occurrences.append(Occurrence(path=path, track=item))
    return occurrences


def sequence_occurrences(tree: Group, sort_mode: str, seed: int) -> List[Occurrence]:
    """
    Produce the play order of ``tree`` as track occurrences.

    Args:
        tree: Root group (never modified)
        sort_mode: One of SORT_MODES
        seed: Non-negative integer seed for the shuffle modes

    Returns:
        Ordered occurrences; paths always refer to the unshuffled tree

    Raises:
        PickerConfigError: If sort_mode is unknown
    """
    validate_sort_mode(sort_mode)

    if sort_mode == SORT_ORDERED:
        return flatten_occurrences(tree)

    if sort_mode == SORT_ALPHABETICAL:
        return sorted(
            flatten_occurrences(tree),
            key=lambda occurrence: normalize_sort_name(occurrence.track.name),
        )

    rng = random.Random(seed)
    if sort_mode == SORT_SHUFFLE_TRACKS:
        return shuffle_list(flatten_occurrences(tree), rng)

    return _shuffle_groups(tree, (), rng)


def sequence(tree: Group, sort_mode: str, seed: int) -> List[Track]:
    """Ordered tracks of ``tree`` for ``sort_mode`` and ``seed``."""
    return [occurrence.track for occurrence in sequence_occurrences(tree, sort_mode, seed)]


def derive_seed(seed: int) -> int:
    """Next seed in a regeneration chain (used by loop-regenerate)."""
    return random.Random(seed).getrandbits(32)


def generate_seed() -> int:
    seed = random.SystemRandom().getrandbits(32)
    logger.info(f"[SEQUENCER] Generated seed {seed}")
    return seed
