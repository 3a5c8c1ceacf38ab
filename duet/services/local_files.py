"""Local-file service client: collections of downloaded files and their stream URLs."""

from duet.exceptions import LoadFailure
from duet.models import LocalCollection, LocalTrack
from duet.services.client import ServiceClient, quote_segment


class LocalFileService(ServiceClient):
    """Client for files stored in named local collections on the backend."""

    def stream_url(self, collection_name: str, filename: str) -> str:
        """Playable audio URL scoped by collection and filename."""
        if not collection_name or not filename:
            raise LoadFailure("local track needs both a collection and a filename")
        return self.url_for(f"/api/local/stream/{quote_segment(collection_name)}/{quote_segment(filename)}")

    def list_collections(self) -> list[LocalCollection]:
        data = self._get('/api/local/playlists')
        return [LocalCollection.model_validate(item) for item in data.get('playlists', [])]

    def list_tracks(self, collection_name: str) -> list[LocalTrack]:
        """Tracks of one collection, each tagged with the collection name."""
        data = self._get(f"/api/local/playlist/{quote_segment(collection_name)}")
        return [LocalTrack.model_validate({**item, 'collection_name': collection_name}) for item in data.get('tracks', [])]
