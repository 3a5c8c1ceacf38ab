"""Catalog service client: search, recommendations, podcasts and stream URLs."""

from duet.exceptions import LoadFailure
from duet.models import LikedSongs, Playlist, PlaylistDetail, Podcast, RemoteTrack, StreamInfo
from duet.services.client import ServiceClient, quote_segment
from typing import Literal

SearchType = Literal['songs', 'podcasts', 'episodes']


class CatalogService(ServiceClient):
    """Client for the remote music/podcast catalog."""

    def stream_url(self, track_id: str) -> str:
        """Playable audio URL for a catalog track identifier."""
        if not track_id:
            raise LoadFailure("remote track has no identifier")
        return self.url_for(f"/api/stream/{quote_segment(track_id)}")

    def stream_info(self, track_id: str) -> StreamInfo:
        return StreamInfo.model_validate(self._get(f"/api/stream-info/{quote_segment(track_id)}"))

    def search(self, query: str, search_type: SearchType = 'songs') -> list[RemoteTrack]:
        data = self._get('/api/search', params={'q': query, 'type': search_type})
        return [RemoteTrack.model_validate(item) for item in data.get('results', [])]

    def search_by_genre(self, genre: str) -> list[RemoteTrack]:
        data = self._get(f"/api/search/genre/{quote_segment(genre)}")
        return [RemoteTrack.model_validate(item) for item in data.get('results', [])]

    def home(self) -> list[RemoteTrack]:
        """Recommendations shown when there is no search query."""
        data = self._get('/api/home')
        return [RemoteTrack.model_validate(item) for item in data.get('results', [])]

    def podcast(self, podcast_id: str) -> Podcast:
        return Podcast.model_validate(self._get(f"/api/podcast/{quote_segment(podcast_id)}"))

    # Library endpoints require an authenticated backend session

    def library_playlists(self) -> list[Playlist]:
        data = self._get('/api/library/playlists')
        return [Playlist.model_validate(item) for item in data.get('playlists', [])]

    def liked_songs(self, limit: int = 100) -> LikedSongs:
        return LikedSongs.model_validate(self._get('/api/library/liked-songs', params={'limit': limit}))

    def playlist_detail(self, playlist_id: str) -> PlaylistDetail:
        return PlaylistDetail.model_validate(self._get(f"/api/library/playlist/{quote_segment(playlist_id)}"))
