from collections.abc import Callable
from duet.config import DEFAULT_VOLUME
from duet.engines.base import PlaybackEngine
from duet.models import RemoteTrack, TrackKind
from duet.services.catalog import CatalogService


class RemoteEngine(PlaybackEngine):
    """Streams catalog tracks by identifier through the catalog service."""

    kind = TrackKind.REMOTE
    track_type = RemoteTrack
    load_error_message = "Could not load track"
    playback_error_message = "Could not play audio"

    def __init__(self, catalog: CatalogService, instance=None, dispatch: Callable | None = None, volume: float = DEFAULT_VOLUME):
        self.catalog = catalog
        super().__init__(instance=instance, dispatch=dispatch, volume=volume)

    def resolve_url(self, track: RemoteTrack) -> str:
        return self.catalog.stream_url(track.id)
