from duet.engines.base import EngineEvent, EngineEvents, PlaybackEngine
from duet.engines.local import LocalEngine
from duet.engines.remote import RemoteEngine

__all__ = [
    'EngineEvent',
    'EngineEvents',
    'LocalEngine',
    'PlaybackEngine',
    'RemoteEngine',
]
