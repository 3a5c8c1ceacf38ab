"""Wiring for a complete player: service clients, engines, queue and coordinator."""

from collections.abc import Callable
from duet.config import DEFAULT_VOLUME, ServiceConfig
from duet.coordinator import PlaybackCoordinator
from duet.engines import LocalEngine, RemoteEngine
from duet.logging import app_logger
from duet.loop import MainLoop
from duet.queue import QueueManager
from duet.services import AuthService, CatalogService, LocalFileService
from eliot import log_message, start_action


class Player:
    """Owns every long-lived component of one player session.

    Components are bound to a single backend. Switching backends means
    releasing this player and building a new one with build_player().
    """

    def __init__(
        self,
        loop: MainLoop,
        service_config: ServiceConfig,
        catalog: CatalogService,
        local_files: LocalFileService,
        auth: AuthService,
        queue_manager: QueueManager,
        remote_engine: RemoteEngine,
        local_engine: LocalEngine,
        coordinator: PlaybackCoordinator,
    ):
        self.loop = loop
        self.service_config = service_config
        self.catalog = catalog
        self.local_files = local_files
        self.auth = auth
        self.queue_manager = queue_manager
        self.remote_engine = remote_engine
        self.local_engine = local_engine
        self.coordinator = coordinator

    def release(self) -> None:
        """Stop playback and free native players and HTTP sessions."""
        with start_action(app_logger, "release_player"):
            self.coordinator.stop(reason="shutdown")
            for engine in (self.remote_engine, self.local_engine):
                engine.release()
            for client in (self.catalog, self.local_files, self.auth):
                client.close()
            log_message(message_type="player_released", message="Player resources released")


def build_player(
    service_config: ServiceConfig | None = None,
    loop: MainLoop | None = None,
    instance_factory: Callable | None = None,
    volume: float = DEFAULT_VOLUME,
) -> Player:
    """Build a player in two phases.

    Services, the queue manager and both engines are created first with no
    references to each other; the coordinator is created last and registers
    itself for each engine's "ended" event.

    Args:
        service_config: Backend connection settings (defaults from the environment)
        loop: Main loop that receives native engine callbacks (a new one if omitted)
        instance_factory: Zero-argument callable returning a VLC instance per engine
        volume: Initial engine volume (0.0-1.0)

    Returns:
        The assembled Player
    """
    service_config = service_config or ServiceConfig()
    loop = loop or MainLoop()

    with start_action(app_logger, "build_player", base_url=service_config.base_url):
        catalog = CatalogService(service_config)
        local_files = LocalFileService(service_config)
        auth = AuthService(service_config)

        queue_manager = QueueManager()
        remote_engine = RemoteEngine(
            catalog,
            instance=instance_factory() if instance_factory else None,
            dispatch=loop.call_soon,
            volume=volume,
        )
        local_engine = LocalEngine(
            local_files,
            instance=instance_factory() if instance_factory else None,
            dispatch=loop.call_soon,
            volume=volume,
        )

        coordinator = PlaybackCoordinator(queue_manager, remote_engine, local_engine)
        log_message(message_type="player_init", message="Player components setup completed")

    return Player(
        loop=loop,
        service_config=service_config,
        catalog=catalog,
        local_files=local_files,
        auth=auth,
        queue_manager=queue_manager,
        remote_engine=remote_engine,
        local_engine=local_engine,
        coordinator=coordinator,
    )
