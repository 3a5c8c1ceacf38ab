import pytest
import random
import socket
import sys
import threading
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from duet.api import APIServer
from duet.config import ServiceConfig
from duet.coordinator import PlaybackCoordinator
from duet.engines import LocalEngine, RemoteEngine
from duet.models import LocalTrack, RemoteTrack
from duet.player import build_player
from duet.queue import QueueManager
from duet.services import CatalogService, LocalFileService
from hypothesis import settings
from tests.helpers.api_client import APIClient
from tests.mocks import MockInstance

# Register Hypothesis profiles
settings.register_profile("fast", max_examples=50, deadline=None)
settings.register_profile("thorough", max_examples=1000, deadline=None)
settings.load_profile("fast")  # Default to fast profile

TEST_BACKEND = "http://backend.test"


def pytest_collection_modifyitems(items):
    """Automatically order tests: unit tests first, then property tests, then E2E tests.

    Individual tests marked with @pytest.mark.order("last") will run at the very end.
    """
    for item in items:
        # Skip if item already has explicit order marker
        if hasattr(item, 'get_closest_marker') and item.get_closest_marker('order'):
            continue

        # Assign order based on test file name
        test_file = str(item.fspath)
        if 'test_unit_' in test_file:
            item.add_marker(pytest.mark.order(1))
        elif 'test_props_' in test_file:
            item.add_marker(pytest.mark.order(2))
        elif 'test_e2e_' in test_file:
            item.add_marker(pytest.mark.order(3))


# === Track fixtures ===


@pytest.fixture
def remote_tracks():
    """Three catalog tracks A, B, C."""
    return [
        RemoteTrack(id="vid-a", title="Alpha", artist="Artist One"),
        RemoteTrack(id="vid-b", title="Bravo", artist="Artist Two"),
        RemoteTrack(id="vid-c", title="Charlie", artist="Artist Three"),
    ]


@pytest.fixture
def local_tracks():
    """Two files in the "MyMix" collection."""
    return [
        LocalTrack(collection_name="MyMix", filename="x.mp3", title="Track X", size_bytes=1024),
        LocalTrack(collection_name="MyMix", filename="y.mp3", title="Track Y", size_bytes=2048),
    ]


# === Player component fixtures ===


@pytest.fixture
def service_config():
    return ServiceConfig(base_url=TEST_BACKEND, timeout=1.0)


@pytest.fixture
def catalog(service_config):
    return CatalogService(service_config)


@pytest.fixture
def local_files(service_config):
    return LocalFileService(service_config)


@pytest.fixture
def remote_engine(catalog):
    """RemoteEngine on a mock VLC instance with inline event dispatch."""
    return RemoteEngine(catalog, instance=MockInstance())


@pytest.fixture
def local_engine(local_files):
    """LocalEngine on a mock VLC instance with inline event dispatch."""
    return LocalEngine(local_files, instance=MockInstance())


@pytest.fixture
def queue_manager():
    return QueueManager(rng=random.Random(1234))


@pytest.fixture
def coordinator(queue_manager, remote_engine, local_engine):
    return PlaybackCoordinator(queue_manager, remote_engine, local_engine)


# === API server fixtures ===


def _free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(('localhost', 0))
        return sock.getsockname()[1]


@pytest.fixture
def running_player(service_config):
    """Player on mock VLC with its main loop running in a background thread.

    Yields:
        Player: The running player
    """
    player = build_player(service_config, instance_factory=MockInstance)
    loop_thread = threading.Thread(target=player.loop.run_forever, kwargs={'poll_interval': 0.01}, daemon=True, name="TestMainLoop")
    loop_thread.start()

    yield player

    player.loop.stop()
    loop_thread.join(timeout=2)
    player.release()


@pytest.fixture
def api_client(running_player):
    """Start an API server for the running player and provide a client for it.

    Yields:
        APIClient: Client connected to the test server
    """
    port = _free_port()
    server = APIServer(running_player, port=port, command_timeout=2.0)
    result = server.start()
    if result['status'] != 'success':
        raise RuntimeError(f"API server failed to start: {result}")

    client = APIClient(host='localhost', port=port)
    if not client.wait_for_api(timeout=5.0):
        server.stop()
        raise RuntimeError("API server failed to start within 5 seconds")

    yield client

    server.stop()
