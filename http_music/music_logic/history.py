"""
Picker and history controller for http-music.

The picker chooses ONE track at a time. It only knows the track picked
immediately before (or None for the first pick) plus its own state, which lets
it resume at any occurrence in the play order.

The history controller runs the picker ahead of time and records every pick
in a timeline. Moving back through the timeline never recomputes anything in
front of the current position: like the pages of a book that are written as
it is read, skipping back and then forward again shows the same pages in the
same order.
"""

import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from http_music.music_logic.sequencer import (
    PickerConfigError,
    SORT_ORDERED,
    SORT_SHUFFLE_TRACKS,
    derive_seed,
    generate_seed,
    sequence_occurrences,
    validate_sort_mode,
)
from http_music.playlist.grouplike import Group, Occurrence

logger = logging.getLogger(__name__)

LOOP_SAME_ORDER = "loop-same-order"
LOOP = "loop"
LOOP_REGENERATE = "loop-regenerate"
NO_LOOP = "no-loop"
PICK_RANDOM = "pick-random"

LOOP_MODES = (LOOP, LOOP_SAME_ORDER, LOOP_REGENERATE, NO_LOOP, PICK_RANDOM)

DEFAULT_FILL_SIZE = 50

# Picker names accepted by --picker, mapped to (sort mode, loop mode)
LEGACY_PICKERS: Dict[str, Tuple[str, str]] = {
    "order": (SORT_ORDERED, NO_LOOP),
    "ordered": (SORT_ORDERED, NO_LOOP),
    "order-loop": (SORT_ORDERED, LOOP),
    "ordered-loop": (SORT_ORDERED, LOOP),
    "order-noloop": (SORT_ORDERED, NO_LOOP),
    "ordered-noloop": (SORT_ORDERED, NO_LOOP),
    "order-no-loop": (SORT_ORDERED, NO_LOOP),
    "ordered-no-loop": (SORT_ORDERED, NO_LOOP),
    "shuffle": (SORT_SHUFFLE_TRACKS, PICK_RANDOM),
    "shuffle-loop": (SORT_SHUFFLE_TRACKS, PICK_RANDOM),
    "shuffle-noloop": (SORT_SHUFFLE_TRACKS, NO_LOOP),
    "shuffle-no-loop": (SORT_SHUFFLE_TRACKS, NO_LOOP),
}


def validate_loop_mode(loop_mode: str) -> str:
    if loop_mode not in LOOP_MODES:
        raise PickerConfigError(
            f"Invalid loop mode: {loop_mode} (must be one of: {', '.join(LOOP_MODES)})"
        )
    return loop_mode


def resolve_legacy_picker(name: str) -> Tuple[str, str]:
    """Map a --picker name to (sort mode, loop mode)."""
    try:
        return LEGACY_PICKERS[name]
    except KeyError:
        raise PickerConfigError(
            f"Invalid picker type: {name} (must be one of: {', '.join(LEGACY_PICKERS)})"
        ) from None


@dataclass
class PickerState:
    """
    Scratch state owned by pick_next().

    Callers create it with create_picker_state() and pass it back untouched.
    """
    sort_mode: str
    loop_mode: str
    seed: int
    sequence: Optional[List[Occurrence]] = None
    positions: Dict[Tuple[int, ...], int] = field(default_factory=dict)
    rng: Optional[random.Random] = None


def create_picker_state(sort_mode: str, loop_mode: str, seed: Optional[int] = None) -> PickerState:
    """
    Build picker state, validating both modes.

    Raises:
        PickerConfigError: If either mode is unknown
    """
    validate_sort_mode(sort_mode)
    validate_loop_mode(loop_mode)
    if seed is None:
        seed = generate_seed()
    return PickerState(sort_mode=sort_mode, loop_mode=loop_mode, seed=seed)


def _ensure_sequence(tree: Group, state: PickerState) -> List[Occurrence]:
    if state.sequence is None:
        state.sequence = sequence_occurrences(tree, state.sort_mode, state.seed)
        state.positions = {}
        for position, occurrence in enumerate(state.sequence):
            state.positions.setdefault(occurrence.path, position)
        logger.debug(
            f"[PICKER] Generated sequence of {len(state.sequence)} tracks "
            f"(sort={state.sort_mode}, seed={state.seed})"
        )
    return state.sequence


def _pick_random(tree: Group, state: PickerState) -> Optional[Occurrence]:
    occurrences = _ensure_sequence(tree, state)
    if not occurrences:
        return None
    if state.rng is None:
        state.rng = random.Random(state.seed)
    return occurrences[int(state.rng.random() * len(occurrences))]


def pick_next(tree: Group, previous: Optional[Occurrence], state: PickerState) -> Optional[Occurrence]:
    """
    Pick the occurrence that follows ``previous``.

    Args:
        tree: Playlist tree being played
        previous: The pick made immediately before, or None for the first pick
        state: Picker state from create_picker_state()

    Returns:
        The next occurrence, or None when the sequence has ended
    """
    if state.loop_mode == PICK_RANDOM:
        return _pick_random(tree, state)

    occurrences = _ensure_sequence(tree, state)
    if not occurrences:
        return None

    if previous is None:
        return occurrences[0]

    position = state.positions.get(previous.path)
    if position is None:
        # Not part of this sequence (e.g. picked before the tree changed)
        return occurrences[0]

    if position + 1 < len(occurrences):
        return occurrences[position + 1]

    if state.loop_mode == NO_LOOP:
        return None

    if state.loop_mode == LOOP_REGENERATE:
        state.seed = derive_seed(state.seed)
        state.sequence = None
        logger.info(f"[PICKER] Reached end of sequence, regenerating with seed {state.seed}")
        return _ensure_sequence(tree, state)[0]

    return occurrences[0]


Picker = Callable[[Group, Optional[Occurrence], PickerState], Optional[Occurrence]]


class HistoryController:
    """
    Navigable, cached timeline of picks.

    Attributes:
        timeline: Every pick produced so far (append-only). A trailing None
            marks the end of a non-looping sequence.
        current_index: Position of the current pick; -1 before the first advance
        fill_size: Minimum number of picks kept ahead of the current position
    """

    def __init__(
        self,
        tree: Group,
        picker_state: PickerState,
        picker: Picker = pick_next,
        fill_size: int = DEFAULT_FILL_SIZE,
    ):
        self.tree = tree
        self.picker = picker
        self.picker_state = picker_state
        self.fill_size = fill_size
        self.timeline: List[Optional[Occurrence]] = []
        self.current_index = -1

    @property
    def ended(self) -> bool:
        """True once the picker has signalled the end of the sequence."""
        return bool(self.timeline) and self.timeline[-1] is None

    @property
    def current(self) -> Optional[Occurrence]:
        if 0 <= self.current_index < len(self.timeline):
            return self.timeline[self.current_index]
        return None

    def _add_next_to_timeline(self) -> None:
        last = self.timeline[-1] if self.timeline else None
        self.timeline.append(self.picker(self.tree, last, self.picker_state))

    def fill_timeline(self) -> None:
        # Always load at least the pick at the current index
        target_size = max(self.fill_size, 1) + max(self.current_index, 0)
        while len(self.timeline) < target_size and not self.ended:
            self._add_next_to_timeline()

    def advance(self) -> Optional[Occurrence]:
        """Move forward one pick, topping up the timeline as needed."""
        self.current_index += 1
        self.fill_timeline()
        if self.current_index >= len(self.timeline):
            self.current_index = len(self.timeline) - 1
        pick = self.current
        if pick is None:
            logger.info("[HISTORY] End of playlist reached")
        return pick

    def retreat(self) -> Optional[Occurrence]:
        """Move back one pick; entries ahead of the index are kept as they are."""
        self.current_index = max(self.current_index - 1, 0)
        self.fill_timeline()
        return self.current
