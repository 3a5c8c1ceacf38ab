from collections.abc import Callable
from duet.config import DEFAULT_VOLUME
from duet.engines.base import PlaybackEngine
from duet.models import LocalTrack, TrackKind
from duet.services.local_files import LocalFileService


class LocalEngine(PlaybackEngine):
    """Plays files from a named local collection served by the local-file service."""

    kind = TrackKind.LOCAL
    track_type = LocalTrack
    load_error_message = "Could not load file"
    playback_error_message = "Could not play file"

    def __init__(
        self, local_files: LocalFileService, instance=None, dispatch: Callable | None = None, volume: float = DEFAULT_VOLUME
    ):
        self.local_files = local_files
        super().__init__(instance=instance, dispatch=dispatch, volume=volume)

    def resolve_url(self, track: LocalTrack) -> str:
        return self.local_files.stream_url(track.collection_name, track.filename)

    @property
    def current_collection(self) -> str | None:
        track = self.state.active_track
        return track.collection_name if track is not None else None

    def is_current(self, collection_name: str, track: LocalTrack) -> bool:
        """True if ``track`` from ``collection_name`` is the loaded track."""
        return self.current_collection == collection_name and self.state.active_track == track
