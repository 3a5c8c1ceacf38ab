"""duet: queue, engines and coordinator for a remote/local music and podcast player."""

__version__ = "0.1.0"
