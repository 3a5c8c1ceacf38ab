"""Property-based tests for QueueManager using Hypothesis.

These tests validate invariants and properties of the QueueManager class
that should hold for all valid inputs. They complement unit tests by
discovering edge cases through automated test generation.
"""

import random
import sys
from hypothesis import given, strategies as st
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from duet.models import RemoteTrack, RepeatMode
from duet.queue import QueueManager, generate_shuffle_order


def make_tracks(count):
    return [RemoteTrack(id=f"track-{i}", title=f"Track {i}") for i in range(count)]


queue_sizes = st.integers(min_value=1, max_value=30)
seeds = st.integers(min_value=0, max_value=2**32 - 1)
actions = st.lists(st.sampled_from(['next', 'previous', 'toggle_shuffle', 'cycle_repeat', 'auto_next']), max_size=40)


@st.composite
def queue_with_start(draw):
    size = draw(queue_sizes)
    start = draw(st.integers(min_value=0, max_value=size - 1))
    return size, start


def build(size, start, seed, shuffle=False, repeat=RepeatMode.OFF):
    manager = QueueManager(rng=random.Random(seed))
    if shuffle:
        manager.toggle_shuffle()
    manager.repeat_mode = repeat
    tracks = make_tracks(size)
    manager.set_queue(tracks, start)
    return manager, tracks


class TestShuffleOrderProperties:
    """Properties of the anchored shuffle permutation."""

    @given(length=queue_sizes, data=st.data(), seed=seeds)
    def test_generated_order_is_anchored_permutation(self, length, data, seed):
        anchor = data.draw(st.integers(min_value=0, max_value=length - 1))
        order = generate_shuffle_order(length, anchor, random.Random(seed))
        assert order[0] == anchor
        assert sorted(order) == list(range(length))

    @given(params=queue_with_start(), seed=seeds)
    def test_toggle_shuffle_on_anchors_playing_track(self, params, seed):
        size, start = params
        manager, tracks = build(size, start, seed)
        manager.toggle_shuffle()
        assert tracks[manager.shuffle_order[0]] == tracks[start]
        assert manager.current() == tracks[start]

    @given(params=queue_with_start(), seed=seeds, shuffle=st.booleans())
    def test_set_queue_anchors_start_track(self, params, seed, shuffle):
        size, start = params
        manager, tracks = build(size, start, seed, shuffle=shuffle)
        assert manager.shuffle_order[0] == start
        assert manager.current() == tracks[start]


class TestQueueInvariants:
    """Invariants that must survive any sequence of operations."""

    @given(params=queue_with_start(), seed=seeds, ops=actions)
    def test_order_length_and_cursor_range(self, params, seed, ops):
        size, start = params
        manager, _ = build(size, start, seed)

        for op in ops:
            if op == 'toggle_shuffle':
                manager.toggle_shuffle()
            elif op == 'cycle_repeat':
                manager.cycle_repeat_mode()
            else:
                getattr(manager, op)()

            assert len(manager.shuffle_order) == len(manager.items)
            assert sorted(manager.shuffle_order) == list(range(size))
            assert 0 <= manager.cursor < size
            assert manager.current() is not None


class TestNavigationProperties:
    """Navigation properties for each repeat mode."""

    @given(params=queue_with_start(), seed=seeds, shuffle=st.booleans(), steps=st.integers(min_value=1, max_value=20))
    def test_repeat_one_never_moves(self, params, seed, shuffle, steps):
        size, start = params
        manager, tracks = build(size, start, seed, shuffle=shuffle, repeat=RepeatMode.ONE)
        cursor = manager.cursor
        for _ in range(steps):
            assert manager.next() == tracks[start]
            assert manager.previous() == tracks[start]
        assert manager.cursor == cursor

    @given(size=queue_sizes, seed=seeds)
    def test_repeat_off_visits_each_track_once(self, size, seed):
        manager, tracks = build(size, 0, seed)
        visited = [manager.current()]
        for _ in range(size - 1):
            visited.append(manager.next())
        assert visited == tracks
        assert manager.next() is None

    @given(size=queue_sizes, seed=seeds)
    def test_shuffled_repeat_off_visits_each_track_once(self, size, seed):
        manager, tracks = build(size, 0, seed, shuffle=True)
        visited = [manager.current()]
        for _ in range(size - 1):
            visited.append(manager.next())
        assert sorted(track.id for track in visited) == sorted(track.id for track in tracks)
        assert manager.next() is None

    @given(params=queue_with_start(), seed=seeds, shuffle=st.booleans(), laps=st.integers(min_value=1, max_value=3))
    def test_repeat_all_cycle_closure(self, params, seed, shuffle, laps):
        size, start = params
        manager, _ = build(size, start, seed, shuffle=shuffle, repeat=RepeatMode.ALL)
        original = manager.current()
        for _ in range(laps):
            for _ in range(size):
                track = manager.next()
            assert track == original

    @given(params=queue_with_start(), seed=seeds)
    def test_next_then_previous_returns(self, params, seed):
        size, start = params
        manager, _ = build(size, start, seed, shuffle=True, repeat=RepeatMode.ALL)
        original = manager.current()
        manager.next()
        assert manager.previous() == original

    @given(params=queue_with_start(), seed=seeds, repeat=st.sampled_from(list(RepeatMode)))
    def test_has_next_agrees_with_next(self, params, seed, repeat):
        size, start = params
        manager, _ = build(size, start, seed, repeat=repeat)
        expected = manager.has_next()
        assert (manager.next() is not None) == expected


class TestRepeatModeProperties:
    """Properties of repeat mode cycling."""

    @given(cycles=st.integers(min_value=0, max_value=20))
    def test_three_cycles_return_to_start(self, cycles):
        manager = QueueManager()
        initial = manager.repeat_mode
        for _ in range(cycles * 3):
            manager.cycle_repeat_mode()
        assert manager.repeat_mode == initial
