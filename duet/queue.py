import random
from collections.abc import Sequence
from duet.exceptions import OutOfRangeIndex
from duet.logging import log_error, log_queue_operation, queue_logger
from duet.models import QueueState, RepeatMode, Track, TrackKind


def generate_shuffle_order(length: int, anchor: int, rng: random.Random | None = None) -> list[int]:
    """Fisher-Yates permutation of range(length) with ``anchor`` pinned at position 0.

    Args:
        length: Number of items to permute
        anchor: Physical index treated as already current
        rng: Random source (defaults to the module-level generator)

    Returns:
        Permutation whose first element is ``anchor``, or [] for length 0
    """
    if length <= 0:
        return []
    rng = rng or random
    rest = [i for i in range(length) if i != anchor]
    for i in range(len(rest) - 1, 0, -1):
        j = rng.randint(0, i)
        rest[i], rest[j] = rest[j], rest[i]
    return [anchor, *rest]


class QueueManager:
    """Manages the playback queue in-memory (session-only, not persisted).

    The queue holds tracks of a single kind. While shuffle is enabled the
    cursor is a logical position in ``shuffle_order``; otherwise it indexes
    ``items`` directly. Nothing here touches an engine.
    """

    def __init__(self, rng: random.Random | None = None):
        self.kind: TrackKind | None = None
        self.items: list[Track] = []
        self.cursor = -1
        self.collection_label: str | None = None
        self.shuffle_order: list[int] = []
        self.shuffle_enabled = False
        self.repeat_mode = RepeatMode.OFF
        self._rng = rng or random.Random()

    def set_queue(self, items: Sequence[Track], start_index: int = 0, collection_label: str | None = None) -> Track | None:
        """Replace the queue and position the cursor on ``start_index``.

        Args:
            items: Tracks of one kind, in playback order
            start_index: Physical index of the track to start from (clamped)
            collection_label: Name of the local collection for local queues

        Returns:
            The track at the new cursor, or None if ``items`` is empty
        """
        items = list(items)
        kinds = {track.kind for track in items}
        if len(kinds) > 1:
            raise TypeError("a queue holds tracks of a single kind")

        start_index = self._clamp(start_index, len(items))

        self.kind = kinds.pop() if kinds else None
        self.items = items
        self.collection_label = collection_label if self.kind == TrackKind.LOCAL else None
        self.shuffle_order = generate_shuffle_order(len(items), start_index, self._rng) if items else []
        # The anchor sits at logical position 0 of the shuffle order
        self.cursor = 0 if (items and self.shuffle_enabled) else start_index

        log_queue_operation(
            "set_queue",
            kind=self.kind.value if self.kind else None,
            count=len(items),
            start_index=start_index,
            collection=self.collection_label,
            shuffle_enabled=self.shuffle_enabled,
        )
        return self.current()

    def clear(self) -> None:
        """Empty the queue, keeping the shuffle and repeat settings."""
        self.set_queue([])

    def _clamp(self, index: int, length: int) -> int:
        if length == 0:
            return -1
        clamped = max(0, min(index, length - 1))
        if clamped != index:
            log_error(
                queue_logger,
                OutOfRangeIndex(f"index {index} outside 0..{length - 1}"),
                corrected_to=clamped,
            )
        return clamped

    def _physical(self, logical: int) -> int:
        return self.shuffle_order[logical] if self.shuffle_enabled else logical

    def current(self) -> Track | None:
        """Get the track at the cursor, resolved through the shuffle order."""
        if not (0 <= self.cursor < len(self.items)):
            return None
        return self.items[self._physical(self.cursor)]

    def next(self) -> Track | None:
        """Advance to the next track.

        Returns:
            The track that becomes current, or None if there is nothing to advance to
        """
        length = len(self.items)
        if length == 0:
            return None

        if self.repeat_mode == RepeatMode.ONE:
            return self.current()

        next_pos = self.cursor + 1
        if next_pos >= length:
            if self.repeat_mode != RepeatMode.ALL:
                log_queue_operation("next", result="end_of_queue", cursor=self.cursor)
                return None
            next_pos = 0
            if self.shuffle_enabled:
                # Keep the head of the finished cycle so the cycle closes on it
                self.shuffle_order = generate_shuffle_order(length, self.shuffle_order[0], self._rng)
                log_queue_operation("reshuffle_on_wrap", anchor=self.shuffle_order[0], count=length)

        self.cursor = next_pos
        log_queue_operation("next", cursor=self.cursor, physical_index=self._physical(self.cursor))
        return self.items[self._physical(self.cursor)]

    def previous(self) -> Track | None:
        """Step back to the previous track.

        Returns:
            The track that becomes current, or None if at the beginning
        """
        length = len(self.items)
        if length == 0:
            return None

        if self.repeat_mode == RepeatMode.ONE:
            return self.current()

        prev_pos = self.cursor - 1
        if prev_pos < 0:
            if self.repeat_mode != RepeatMode.ALL:
                log_queue_operation("previous", result="start_of_queue", cursor=self.cursor)
                return None
            prev_pos = length - 1

        self.cursor = prev_pos
        log_queue_operation("previous", cursor=self.cursor, physical_index=self._physical(self.cursor))
        return self.items[self._physical(self.cursor)]

    def auto_next(self) -> Track | None:
        """Advance after a track finished on its own.

        Shares the next() path so engine "ended" events and the next button
        can never disagree; under repeat-one this returns the current track.
        """
        log_queue_operation("auto_next", repeat_mode=self.repeat_mode.value)
        return self.next()

    def has_next(self) -> bool:
        if not self.items:
            return False
        return self.repeat_mode != RepeatMode.OFF or self.cursor < len(self.items) - 1

    def has_previous(self) -> bool:
        if not self.items:
            return False
        return self.repeat_mode != RepeatMode.OFF or self.cursor > 0

    def toggle_shuffle(self) -> bool:
        """Toggle shuffle mode on/off and return new state.

        Enabling shuffle anchors the currently playing track at position 0 of
        a fresh order, so it counts as already played. Disabling it moves the
        cursor to the physical index of the current track and sequential
        navigation continues from there.

        Returns:
            New shuffle state (True if enabled)
        """
        if self.shuffle_enabled:
            if self.items:
                self.cursor = self._physical(self.cursor)
            self.shuffle_enabled = False
        else:
            self.shuffle_enabled = True
            if self.items:
                anchor = self.cursor if self.cursor >= 0 else 0
                self.shuffle_order = generate_shuffle_order(len(self.items), anchor, self._rng)
                self.cursor = 0

        log_queue_operation("toggle_shuffle", shuffle_enabled=self.shuffle_enabled, cursor=self.cursor)
        return self.shuffle_enabled

    def cycle_repeat_mode(self) -> RepeatMode:
        """Advance the repeat mode off -> all -> one -> off and return it."""
        self.repeat_mode = self.repeat_mode.cycled()
        log_queue_operation("cycle_repeat_mode", repeat_mode=self.repeat_mode.value)
        return self.repeat_mode

    def index_of(self, track: Track) -> int:
        """Physical index of ``track`` in the queue, or -1."""
        try:
            return self.items.index(track)
        except ValueError:
            return -1

    def __len__(self):
        return len(self.items)

    def state(self) -> QueueState:
        """Immutable snapshot for the UI."""
        return QueueState(
            kind=self.kind,
            items=tuple(self.items),
            cursor=self.cursor,
            collection_label=self.collection_label,
            shuffle_order=tuple(self.shuffle_order),
            shuffle_enabled=self.shuffle_enabled,
            repeat_mode=self.repeat_mode,
        )
