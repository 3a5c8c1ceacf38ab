"""Playback engine contract shared by the remote and local engines.

An engine drives one VLC media player for one kind of track. Commands
(load/play/pause/seek/set_volume/stop) update ``state`` immediately; the
device's own progress arrives through VLC events and is re-published on
``events`` as time_update, loaded, ended, error and play_state_changed.

VLC fires its events on an internal thread and libvlc must not be called
back from there, so every native callback goes through ``dispatch``
(normally MainLoop.call_soon). Without a dispatcher callbacks run inline,
which is only suitable for tests with a fake device.
"""

import vlc
from collections.abc import Callable
from duet.config import DEFAULT_VOLUME, VLC_ARGS
from duet.exceptions import DuetError, LoadFailure, PlaybackFailure
from duet.logging import engine_logger, log_engine_event, log_error
from duet.models import EngineState, Track, TrackKind
from eliot import start_action
from enum import Enum
from typing import ClassVar


class EngineEvent(str, Enum):
    TIME_UPDATE = "time_update"
    LOADED = "loaded"
    ENDED = "ended"
    ERROR = "error"
    PLAY_STATE_CHANGED = "play_state_changed"


class EngineEvents:
    """Typed publish-subscribe hub for one engine.

    Callback signatures:
        time_update(position_seconds: float)
        loaded(duration_seconds: float)
        ended()
        error(message: str)
        play_state_changed(is_playing: bool)
    """

    def __init__(self, engine_name: str):
        self.engine_name = engine_name
        self._subscribers: dict[EngineEvent, list[Callable]] = {event: [] for event in EngineEvent}

    def subscribe(self, event: EngineEvent, callback: Callable) -> None:
        self._subscribers[EngineEvent(event)].append(callback)

    def unsubscribe(self, event: EngineEvent, callback: Callable) -> None:
        callbacks = self._subscribers[EngineEvent(event)]
        if callback in callbacks:
            callbacks.remove(callback)

    def on_time_update(self, callback: Callable[[float], None]) -> None:
        self.subscribe(EngineEvent.TIME_UPDATE, callback)

    def on_loaded(self, callback: Callable[[float], None]) -> None:
        self.subscribe(EngineEvent.LOADED, callback)

    def on_ended(self, callback: Callable[[], None]) -> None:
        self.subscribe(EngineEvent.ENDED, callback)

    def on_error(self, callback: Callable[[str], None]) -> None:
        self.subscribe(EngineEvent.ERROR, callback)

    def on_play_state_changed(self, callback: Callable[[bool], None]) -> None:
        self.subscribe(EngineEvent.PLAY_STATE_CHANGED, callback)

    def emit(self, event: EngineEvent, *args) -> None:
        # Copy so a callback may unsubscribe itself
        for callback in list(self._subscribers[event]):
            try:
                callback(*args)
            except Exception as e:
                log_error(engine_logger, e, engine=self.engine_name, event=event.value)


def _call_inline(callback: Callable, *args) -> None:
    callback(*args)


class PlaybackEngine:
    """Base engine wrapping a single VLC media player.

    Subclasses set ``kind``/``track_type`` and implement resolve_url().
    """

    kind: ClassVar[TrackKind]
    track_type: ClassVar[type]
    load_error_message: ClassVar[str] = "Could not load track"
    playback_error_message: ClassVar[str] = "Could not play audio"

    def __init__(self, instance=None, dispatch: Callable | None = None, volume: float = DEFAULT_VOLUME):
        self.instance = instance if instance is not None else vlc.Instance(list(VLC_ARGS))
        self.media_player = self.instance.media_player_new()
        self.events = EngineEvents(self.name)
        self.state = EngineState(volume=self._clamp_volume(volume))
        self._dispatch = dispatch or _call_inline
        # Bumped by load() and stop(); native callbacks from an older generation are dropped
        self._generation = 0
        self._ended_emitted = False

        self._bind(vlc.EventType.MediaPlayerTimeChanged, self._on_time_changed)
        self._bind(vlc.EventType.MediaPlayerLengthChanged, self._on_length_changed)
        self._bind(vlc.EventType.MediaPlayerPlaying, self._on_playing)
        self._bind(vlc.EventType.MediaPlayerPaused, self._on_paused)
        self._bind(vlc.EventType.MediaPlayerEndReached, self._on_end_reached)
        self._bind(vlc.EventType.MediaPlayerEncounteredError, self._on_encountered_error)

    @property
    def name(self) -> str:
        return self.kind.value

    def resolve_url(self, track: Track) -> str:
        """Return the playable URL for ``track``. Raises DuetError on failure."""
        raise NotImplementedError

    # Native event plumbing

    def _bind(self, event_type, handler: Callable[[], None]) -> None:
        def native_callback(event, *args):
            # Runs on VLC's thread: capture the generation now, act later on the loop
            self._dispatch(self._run_if_current, self._generation, handler)

        self.media_player.event_manager().event_attach(event_type, native_callback)

    def _run_if_current(self, generation: int, handler: Callable[[], None]) -> None:
        if generation != self._generation:
            log_engine_event(self.name, "stale_event_dropped", handler=handler.__name__)
            return
        handler()

    def _on_time_changed(self) -> None:
        position = max(0.0, self.media_player.get_time() / 1000)
        self.state.position_seconds = position
        self.events.emit(EngineEvent.TIME_UPDATE, position)

    def _on_length_changed(self) -> None:
        duration = self.media_player.get_length() / 1000
        if duration <= 0:
            return
        self.state.duration_seconds = duration
        self.state.is_loading = False
        log_engine_event(self.name, "loaded", duration=duration, track=str(self.state.active_track))
        self.events.emit(EngineEvent.LOADED, duration)

    def _on_playing(self) -> None:
        self.state.is_loading = False
        self._set_playing(True)

    def _on_paused(self) -> None:
        self._set_playing(False)

    def _on_end_reached(self) -> None:
        # A failed track stays put until the user acts
        if self._ended_emitted or self.state.active_track is None or self.state.error:
            return
        self._ended_emitted = True
        self.state.position_seconds = 0.0
        self._set_playing(False)
        log_engine_event(self.name, "ended", track=str(self.state.active_track))
        self.events.emit(EngineEvent.ENDED)

    def _on_encountered_error(self) -> None:
        self._fail(PlaybackFailure(f"device error while playing {self.state.active_track}"), self.playback_error_message)

    def _set_playing(self, is_playing: bool) -> None:
        if self.state.is_playing == is_playing:
            return
        self.state.is_playing = is_playing
        self.events.emit(EngineEvent.PLAY_STATE_CHANGED, is_playing)

    def _fail(self, error: DuetError, message: str) -> None:
        """Record a load/playback failure. The track stays active so the error is inspectable."""
        log_error(engine_logger, error, engine=self.name, track=str(self.state.active_track))
        self.state.error = message
        self.state.is_loading = False
        self.state.position_seconds = 0.0
        self.state.duration_seconds = 0.0
        self._set_playing(False)
        self.events.emit(EngineEvent.ERROR, message)

    # Commands

    def load(self, track: Track) -> None:
        """Begin loading ``track``, superseding whatever was loaded before.

        Returns immediately; completion is reported through ``loaded`` or ``error``.
        """
        if not isinstance(track, self.track_type):
            raise TypeError(f"{type(self).__name__} cannot load {type(track).__name__}")

        with start_action(engine_logger, "engine_load", engine=self.name, track=str(track)):
            self._generation += 1
            self._ended_emitted = False
            self.state.active_track = track
            self.state.is_loading = True
            self.state.error = None
            self.state.position_seconds = 0.0
            self.state.duration_seconds = 0.0
            self._set_playing(False)

            try:
                url = self.resolve_url(track)
                media = self.instance.media_new(url)
                if media is None:
                    raise LoadFailure(f"unsupported media URL: {url}")
            except LoadFailure as e:
                self._fail(e, self.load_error_message)
                return
            except DuetError as e:
                self._fail(LoadFailure(str(e)), self.load_error_message)
                return

            self.media_player.set_media(media)
            log_engine_event(self.name, "load", track=str(track), url=url)

    def play(self) -> None:
        """Start or resume the loaded track. A failed track stays failed."""
        if self.state.active_track is None:
            log_engine_event(self.name, "play_ignored", reason="nothing_loaded")
            return
        if self.state.error:
            log_engine_event(self.name, "play_ignored", reason="load_failed", error=self.state.error)
            self.events.emit(EngineEvent.ERROR, self.state.error)
            return
        if self.state.is_playing:
            return
        if self._ended_emitted:
            # Replaying a finished track; its next natural end fires ended again
            self._ended_emitted = False
            self.state.position_seconds = 0.0

        if self.media_player.play() == -1:
            self._fail(PlaybackFailure(f"device refused to play {self.state.active_track}"), self.playback_error_message)
            return

        # VLC resets the output volume on media change
        self._apply_volume()
        self._set_playing(True)
        log_engine_event(self.name, "play", track=str(self.state.active_track))

    def pause(self) -> None:
        if not self.state.is_playing:
            return
        self.media_player.set_pause(1)
        self._set_playing(False)
        log_engine_event(self.name, "pause", track=str(self.state.active_track), position=self.state.position_seconds)

    def toggle_play(self) -> None:
        if self.state.is_playing:
            self.pause()
        else:
            self.play()

    def seek(self, seconds: float) -> None:
        """Jump to ``seconds``, clamped to the known duration.

        The position is updated before the device confirms; the next
        time_update from VLC overwrites it.
        """
        if self.state.active_track is None:
            return
        target = max(0.0, min(float(seconds), self.state.duration_seconds))
        self.media_player.set_time(int(target * 1000))
        self.state.position_seconds = target
        log_engine_event(self.name, "seek", position=target, duration=self.state.duration_seconds)

    @staticmethod
    def _clamp_volume(volume: float) -> float:
        return max(0.0, min(1.0, float(volume)))

    def set_volume(self, volume: float) -> None:
        """Set volume (0.0-1.0)."""
        self.state.volume = self._clamp_volume(volume)
        self._apply_volume()

    def _apply_volume(self) -> None:
        level = round(self.state.volume * 100)
        if self.media_player.audio_set_volume(level) == -1:
            log_engine_event(self.name, "volume_not_applied", volume=level)

    def stop(self) -> None:
        """Halt playback and return to idle. Safe to call when already idle."""
        self._generation += 1
        previous = self.state.active_track
        was_playing = self.state.is_playing
        self.media_player.stop()
        self.media_player.set_media(None)
        self.state.reset()
        if was_playing:
            self.events.emit(EngineEvent.PLAY_STATE_CHANGED, False)
        if previous is not None:
            log_engine_event(self.name, "stop", track=str(previous))

    def release(self) -> None:
        """Stop and free the VLC player and instance."""
        self.stop()
        self.media_player.release()
        self.instance.release()
        log_engine_event(self.name, "released")

    def snapshot(self) -> EngineState:
        return self.state.model_copy()

    @property
    def active_track(self) -> Track | None:
        return self.state.active_track

    @property
    def is_active(self) -> bool:
        return self.state.active_track is not None
