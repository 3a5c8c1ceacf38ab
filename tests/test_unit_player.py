"""Unit tests for build_player wiring."""

import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from duet.loop import MainLoop
from duet.player import build_player
from tests.mocks import MockInstance


class TestBuildPlayer:
    def test_components_share_config_and_loop(self, service_config):
        loop = MainLoop()
        player = build_player(service_config, loop=loop, instance_factory=MockInstance, volume=0.5)

        assert player.loop is loop
        assert player.catalog.base_url == "http://backend.test"
        assert player.remote_engine.catalog is player.catalog
        assert player.local_engine.local_files is player.local_files
        assert player.coordinator.queue_manager is player.queue_manager
        assert player.remote_engine.instance is not player.local_engine.instance
        assert player.remote_engine.state.volume == 0.5

    def test_native_events_go_through_loop(self, service_config, remote_tracks):
        player = build_player(service_config, instance_factory=MockInstance)
        player.coordinator.play_remote(remote_tracks[0], remote_tracks)

        player.remote_engine.media_player._simulate_end()
        assert player.remote_engine.state.active_track == remote_tracks[0]

        player.loop.run_pending()
        assert player.remote_engine.state.active_track == remote_tracks[1]

    def test_release(self, service_config, remote_tracks):
        player = build_player(service_config, instance_factory=MockInstance)
        player.coordinator.play_remote(remote_tracks[0])
        player.release()

        assert player.coordinator.active_engine is None
        assert player.remote_engine.media_player.released is True
        assert player.local_engine.instance.released is True
