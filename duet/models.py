"""Track, queue and engine state models."""

from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import ClassVar, Union


class TrackKind(str, Enum):
    """Which engine a track (or queue) belongs to."""

    REMOTE = "remote"
    LOCAL = "local"


class RepeatMode(str, Enum):
    """Navigation wrap policy at queue boundaries."""

    OFF = "off"
    ALL = "all"
    ONE = "one"

    def cycled(self) -> 'RepeatMode':
        """Return the next mode in the off -> all -> one -> off cycle."""
        order = [RepeatMode.OFF, RepeatMode.ALL, RepeatMode.ONE]
        return order[(order.index(self) + 1) % len(order)]


class _TrackBase(BaseModel):
    """Immutable track value compared by identity key rather than by all fields."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: ClassVar[TrackKind]

    @property
    def key(self) -> tuple:
        raise NotImplementedError

    def __eq__(self, other):
        if not isinstance(other, _TrackBase):
            return NotImplemented
        return self.kind == other.kind and self.key == other.key

    def __hash__(self):
        return hash((self.kind, self.key))


class RemoteTrack(_TrackBase):
    """A catalog track (song or podcast episode) streamed by identifier."""

    kind: ClassVar[TrackKind] = TrackKind.REMOTE

    id: str = Field(alias="videoId", min_length=1)
    title: str
    artist: str = ""
    thumbnail: str | None = None
    duration_hint: float | None = Field(None, alias="durationSeconds")
    duration_text: str | None = Field(None, alias="duration")
    podcast_id: str | None = Field(None, alias="podcastId")
    item_type: str | None = Field(None, alias="type")
    date: str | None = None
    description: str | None = None

    @property
    def key(self) -> tuple:
        return (self.id,)

    def __str__(self):
        return f"{self.artist} - {self.title}" if self.artist else self.title


class LocalTrack(_TrackBase):
    """A file stored inside a named local collection."""

    kind: ClassVar[TrackKind] = TrackKind.LOCAL

    collection_name: str
    filename: str
    title: str
    size_bytes: int = Field(0, alias="size", ge=0)
    extension: str | None = None

    @property
    def key(self) -> tuple:
        return (self.collection_name, self.filename)

    def __str__(self):
        return f"{self.collection_name}/{self.filename}"


Track = Union[RemoteTrack, LocalTrack]


class QueueState(BaseModel):
    """Read-only snapshot of the queue manager.

    Only one kind of queue is populated at a time; ``kind`` is None while the
    queue is empty.
    """

    model_config = ConfigDict(frozen=True)

    kind: TrackKind | None = None
    items: tuple[Track, ...] = ()
    cursor: int = -1
    collection_label: str | None = None
    shuffle_order: tuple[int, ...] = ()
    shuffle_enabled: bool = False
    repeat_mode: RepeatMode = RepeatMode.OFF

    @property
    def remote_items(self) -> tuple[Track, ...]:
        return self.items if self.kind == TrackKind.REMOTE else ()

    @property
    def local_items(self) -> tuple[Track, ...]:
        return self.items if self.kind == TrackKind.LOCAL else ()


class EngineState(BaseModel):
    """Mutable per-engine playback state; engines hand out copies."""

    active_track: Track | None = None
    is_playing: bool = False
    is_loading: bool = False
    position_seconds: float = 0.0
    duration_seconds: float = 0.0
    volume: float = 1.0
    error: str | None = None

    def reset(self) -> None:
        """Return to the idle shape. Volume is a device setting and survives."""
        self.active_track = None
        self.is_playing = False
        self.is_loading = False
        self.position_seconds = 0.0
        self.duration_seconds = 0.0
        self.error = None


class PlayerSnapshot(BaseModel):
    """Everything a UI needs to render the player."""

    model_config = ConfigDict(frozen=True)

    queue: QueueState
    remote: EngineState
    local: EngineState
    active_engine: TrackKind | None = None


# Catalog service responses


class StreamInfo(BaseModel):
    url: str
    content_type: str = Field("", alias="contentType")
    duration: float = 0
    title: str = ""

    model_config = ConfigDict(populate_by_name=True)


class Podcast(BaseModel):
    podcast_id: str = Field(alias="podcastId")
    title: str
    author: str = ""
    description: str = ""
    thumbnail: str | None = None
    episodes: list[RemoteTrack] = []

    model_config = ConfigDict(populate_by_name=True)


class Playlist(BaseModel):
    playlist_id: str = Field(alias="playlistId")
    title: str
    thumbnail: str | None = None
    track_count: int = Field(0, alias="trackCount")

    model_config = ConfigDict(populate_by_name=True)


class PlaylistDetail(Playlist):
    description: str = ""
    tracks: list[RemoteTrack] = []


class LikedSongs(BaseModel):
    title: str = ""
    track_count: int = Field(0, alias="trackCount")
    tracks: list[RemoteTrack] = []

    model_config = ConfigDict(populate_by_name=True)


# Local-file service responses


class LocalCollection(BaseModel):
    name: str
    folder: str = ""
    track_count: int = Field(0, alias="trackCount")
    total_size: int = Field(0, alias="totalSize")

    model_config = ConfigDict(populate_by_name=True)


# Auth service responses


class AuthStatus(BaseModel):
    authenticated: bool = False
    message: str = ""
