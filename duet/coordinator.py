from collections.abc import Sequence
from duet.engines import EngineEvent, LocalEngine, PlaybackEngine, RemoteEngine
from duet.logging import coordinator_logger, log_player_action
from duet.models import LocalTrack, PlayerSnapshot, RemoteTrack, RepeatMode, Track, TrackKind
from duet.queue import QueueManager
from eliot import start_action
from typing import Literal


class PlaybackCoordinator:
    """Single "now playing" built from the remote and local engines.

    At most one engine has an active track at any time: the outgoing engine
    is always stopped before the incoming one loads. Natural end-of-track
    events from either engine advance the queue through auto_next().

    Construction is two-phase: the queue manager and both engines are built
    first, then handed in here and the coordinator registers its "ended"
    handler on each engine.
    """

    def __init__(self, queue_manager: QueueManager, remote_engine: RemoteEngine, local_engine: LocalEngine):
        self.queue_manager = queue_manager
        self.remote_engine = remote_engine
        self.local_engine = local_engine
        self._engines: dict[TrackKind, PlaybackEngine] = {
            TrackKind.REMOTE: remote_engine,
            TrackKind.LOCAL: local_engine,
        }

        for engine in (remote_engine, local_engine):
            engine.events.subscribe(EngineEvent.ENDED, lambda engine=engine: self.on_engine_ended(engine))

    def engine_for(self, kind: TrackKind) -> PlaybackEngine:
        return self._engines[kind]

    def _other_engine(self, kind: TrackKind) -> PlaybackEngine:
        return self.local_engine if kind == TrackKind.REMOTE else self.remote_engine

    def _start(self, track: Track) -> None:
        """Stop the other engine, then load and play ``track`` on its own engine."""
        self._other_engine(track.kind).stop()
        engine = self.engine_for(track.kind)
        engine.load(track)
        engine.play()

    # Playback entry points

    def play_remote(
        self,
        track: RemoteTrack,
        items: Sequence[RemoteTrack] | None = None,
        start_index: int | None = None,
        trigger_source: str = "gui",
    ) -> None:
        """Play a catalog track, optionally replacing the queue with ``items``."""
        with start_action(coordinator_logger, "play_remote"):
            log_player_action(
                "play_remote",
                trigger_source=trigger_source,
                track=str(track),
                queue_size=len(items) if items is not None else None,
                description=f"Playing: {track}",
            )
            self.local_engine.stop()
            if items is not None:
                items = list(items)
                if start_index is None:
                    start_index = items.index(track) if track in items else 0
                self.queue_manager.set_queue(items, start_index)
            self.remote_engine.load(track)
            self.remote_engine.play()

    def play_local(
        self,
        collection_name: str,
        track: LocalTrack,
        items: Sequence[LocalTrack] | None = None,
        start_index: int | None = None,
        trigger_source: str = "gui",
    ) -> None:
        """Play a file from ``collection_name``, optionally replacing the queue with ``items``.

        Selecting the file that is already loaded from the same collection
        toggles play/pause instead of reloading it.
        """
        if track.collection_name != collection_name:
            track = track.model_copy(update={'collection_name': collection_name})

        with start_action(coordinator_logger, "play_local"):
            self.remote_engine.stop()

            if self.local_engine.is_current(collection_name, track):
                log_player_action(
                    "play_local_toggle",
                    trigger_source=trigger_source,
                    track=str(track),
                    description=f"{'Pausing' if self.local_engine.state.is_playing else 'Resuming'}: {track}",
                )
                self.local_engine.toggle_play()
                return

            log_player_action(
                "play_local",
                trigger_source=trigger_source,
                track=str(track),
                collection=collection_name,
                queue_size=len(items) if items is not None else None,
                description=f"Playing: {track}",
            )
            if items is not None:
                items = [
                    item if item.collection_name == collection_name else item.model_copy(update={'collection_name': collection_name})
                    for item in items
                ]
                if start_index is None:
                    filenames = [item.filename for item in items]
                    start_index = filenames.index(track.filename) if track.filename in filenames else 0
                self.queue_manager.set_queue(items, start_index, collection_label=collection_name)
            self.local_engine.load(track)
            self.local_engine.play()

    def advance(self, direction: Literal['next', 'previous'], trigger_source: str = "gui") -> Track | None:
        """Move through the queue and play the resolved track on the engine for its kind.

        Returns:
            The track now playing, or None if there was nothing to move to
        """
        with start_action(coordinator_logger, "advance", direction=direction):
            if direction == 'next':
                track = self.queue_manager.next()
            elif direction == 'previous':
                track = self.queue_manager.previous()
            else:
                raise ValueError(f"unknown direction: {direction!r}")

            if track is None:
                log_player_action(
                    f"{direction}_ignored",
                    trigger_source=trigger_source,
                    reason="queue_empty" if not self.queue_manager.items else "queue_boundary",
                    description=f"{direction.capitalize()} pressed with nothing to play",
                )
                return None

            log_player_action(direction, trigger_source=trigger_source, track=str(track), description=f"{direction.capitalize()}: {track}")
            self._start(track)
            return track

    def next(self, trigger_source: str = "gui") -> Track | None:
        return self.advance('next', trigger_source)

    def previous(self, trigger_source: str = "gui") -> Track | None:
        return self.advance('previous', trigger_source)

    def on_engine_ended(self, source_engine: PlaybackEngine) -> Track | None:
        """Auto-advance after ``source_engine`` finished a track on its own.

        Playback continues on the engine matching the queue's kind. At the
        end of a non-repeating queue nothing restarts; the finished track
        stays loaded but paused.
        """
        with start_action(coordinator_logger, "track_ended", engine=source_engine.name):
            track = self.queue_manager.auto_next()
            if track is None:
                log_player_action(
                    "playback_finished",
                    trigger_source="automatic",
                    engine=source_engine.name,
                    description="End of queue reached",
                )
                return None

            log_player_action("auto_next", trigger_source="automatic", track=str(track), description=f"Up next: {track}")
            self._start(track)
            return track

    # Controls for whichever engine is active

    @property
    def active_engine(self) -> PlaybackEngine | None:
        for engine in (self.remote_engine, self.local_engine):
            if engine.is_active:
                return engine
        return None

    def toggle_play(self, trigger_source: str = "gui") -> None:
        engine = self.active_engine
        if engine is None:
            log_player_action("play_pause_ignored", trigger_source=trigger_source, reason="idle")
            return
        log_player_action(
            "play_pause",
            trigger_source=trigger_source,
            track=str(engine.active_track),
            old_state="playing" if engine.state.is_playing else "paused",
            new_state="paused" if engine.state.is_playing else "playing",
        )
        engine.toggle_play()

    def seek(self, seconds: float) -> None:
        engine = self.active_engine
        if engine is not None:
            engine.seek(seconds)

    def set_volume(self, volume: float) -> None:
        engine = self.active_engine
        if engine is not None:
            engine.set_volume(volume)

    def stop(self, reason: str = "user_initiated") -> None:
        """Stop both engines."""
        with start_action(coordinator_logger, "stop_playback"):
            log_player_action(
                "stop",
                trigger_source="gui" if reason == "user_initiated" else "automatic",
                stop_reason=reason,
                description=f"Playback stopped: {reason.replace('_', ' ')}",
            )
            self.remote_engine.stop()
            self.local_engine.stop()

    def toggle_shuffle(self) -> bool:
        enabled = self.queue_manager.toggle_shuffle()
        log_player_action("toggle_shuffle", trigger_source="gui", new_state=enabled, description=f"Shuffle {'on' if enabled else 'off'}")
        return enabled

    def cycle_repeat_mode(self) -> RepeatMode:
        mode = self.queue_manager.cycle_repeat_mode()
        log_player_action("cycle_repeat_mode", trigger_source="gui", new_state=mode.value, description=f"Repeat {mode.value}")
        return mode

    def snapshot(self) -> PlayerSnapshot:
        engine = self.active_engine
        return PlayerSnapshot(
            queue=self.queue_manager.state(),
            remote=self.remote_engine.snapshot(),
            local=self.local_engine.snapshot(),
            active_engine=engine.kind if engine is not None else None,
        )
