import json
import socket
import threading
import traceback
from contextlib import suppress
from duet.config import API_COMMAND_TIMEOUT, API_SERVER_PORT
from duet.exceptions import ServiceError
from duet.logging import api_logger, log_api_request
from duet.models import LocalTrack, RemoteTrack, TrackKind
from eliot import log_message, start_action
from pydantic import ValidationError
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from duet.player import Player


def _dump(model) -> dict[str, Any]:
    return model.model_dump(mode='json')


class APIServer:
    """Socket-based JSON API for controlling the duet player.

    Each connection carries one JSON object with an ``action`` key plus
    parameters and receives one JSON response. Player commands run on the
    main loop; catalog and library lookups run on the connection thread
    because they only talk to the backend.
    """

    def __init__(self, player: 'Player', port: int = API_SERVER_PORT, command_timeout: float = API_COMMAND_TIMEOUT):
        """Initialize the API server.

        Args:
            player: The Player instance to control
            port: Port to listen on (default 5555)
            command_timeout: Seconds to wait for the main loop to run a command
        """
        self.player = player
        self.port = port
        self.command_timeout = command_timeout
        self.server_socket: socket.socket | None = None
        self.server_thread: threading.Thread | None = None
        self.running = False

        # Command handlers mapping
        self.command_handlers = {
            # Playback controls
            'play_remote': self._handle_play_remote,
            'play_local': self._handle_play_local,
            'play_pause': self._handle_play_pause,
            'stop': self._handle_stop,
            'next': self._handle_next,
            'previous': self._handle_previous,
            # Slider controls
            'seek': self._handle_seek,
            'set_volume': self._handle_set_volume,
            # Utility controls
            'toggle_shuffle': self._handle_toggle_shuffle,
            'cycle_repeat': self._handle_cycle_repeat,
            # Info queries
            'get_status': self._handle_get_status,
            'get_queue': self._handle_get_queue,
            # Backend lookups
            'search': self._handle_search,
            'home': self._handle_home,
            'local_collections': self._handle_local_collections,
            'local_tracks': self._handle_local_tracks,
            'auth_status': self._handle_auth_status,
        }
        # Handlers that never touch player state and may block on HTTP
        self.off_loop_actions = {'search', 'home', 'local_collections', 'local_tracks', 'auth_status'}

    def start(self):
        """Start the API server in a background thread."""
        if self.running:
            return {'status': 'error', 'message': 'Server already running'}

        with start_action(api_logger, "start_api_server", port=self.port):
            try:
                self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                self.server_socket.bind(('localhost', self.port))
                self.server_socket.listen(5)
                # Periodic accept timeout so the running flag is re-checked
                self.server_socket.settimeout(1.0)

                self.running = True
                self.server_thread = threading.Thread(target=self._handle_clients, daemon=True, name="APIServerThread")
                self.server_thread.start()

                log_message(message_type="api_server_started", port=self.port)
                return {'status': 'success', 'message': f'API server started on port {self.port}'}

            except OSError as e:
                log_message(message_type="api_server_start_failed", error=str(e))
                return {'status': 'error', 'message': f'Failed to start server: {str(e)}'}

    def stop(self):
        """Stop the API server."""
        if not self.running:
            return {'status': 'error', 'message': 'Server not running'}

        with start_action(api_logger, "stop_api_server"):
            self.running = False

            if self.server_socket:
                with suppress(OSError):
                    self.server_socket.close()
                self.server_socket = None

            if self.server_thread and self.server_thread.is_alive():
                self.server_thread.join(timeout=2)

            log_message(message_type="api_server_stopped")
            return {'status': 'success', 'message': 'API server stopped'}

    def _handle_clients(self):
        """Handle incoming client connections."""
        while self.running:
            try:
                try:
                    client_socket, address = self.server_socket.accept()
                except TimeoutError:
                    continue

                client_thread = threading.Thread(target=self._handle_client_request, args=(client_socket, address), daemon=True)
                client_thread.start()

            except OSError as e:
                if self.running:  # Only log if we're still supposed to be running
                    log_message(message_type="client_accept_error", error=str(e))

    def _handle_client_request(self, client_socket: socket.socket, address):
        """Handle a single client request.

        Args:
            client_socket: The client's socket connection
            address: The client's address
        """
        try:
            data = client_socket.recv(65536).decode('utf-8')
            if not data:
                return

            try:
                command = json.loads(data)
            except json.JSONDecodeError as e:
                response = {'status': 'error', 'message': f'Invalid JSON: {str(e)}'}
                client_socket.sendall(json.dumps(response).encode('utf-8'))
                return

            if not isinstance(command, dict):
                response = {'status': 'error', 'message': 'Command must be a JSON object'}
                client_socket.sendall(json.dumps(response).encode('utf-8'))
                return

            with start_action(api_logger, "handle_api_command", action=command.get('action', 'unknown'), address=str(address)):
                response = self.handle_command(command)
                client_socket.sendall(json.dumps(response).encode('utf-8'))

        except (OSError, UnicodeDecodeError) as e:
            log_message(message_type="client_request_error", error=str(e))
            error_response = {'status': 'error', 'message': str(e)}
            with suppress(OSError):
                client_socket.sendall(json.dumps(error_response).encode('utf-8'))

        finally:
            with suppress(OSError):
                client_socket.close()

    def handle_command(self, command: dict[str, Any]) -> dict[str, Any]:
        """Execute a command and return the response.

        Args:
            command: The command dictionary with 'action' and optional parameters

        Returns:
            Response dictionary with 'status' and optional data
        """
        action = command.get('action')

        if not action:
            return {'status': 'error', 'message': 'No action specified'}

        handler = self.command_handlers.get(action)

        if not handler:
            return {
                'status': 'error',
                'message': f'Unknown action: {action}',
                'available_actions': list(self.command_handlers.keys()),
            }

        log_api_request(action, parameters={k: v for k, v in command.items() if k != 'action'})

        loop = self.player.loop
        if action in self.off_loop_actions or not loop.running or loop.in_loop_thread():
            return self._run_handler(handler, command)

        # Execute handler on the main loop and wait for it
        result = {'status': 'pending'}
        event = threading.Event()

        def execute_on_main_loop():
            try:
                result.update(self._run_handler(handler, command))
            finally:
                event.set()

        loop.call_soon(execute_on_main_loop)

        if event.wait(timeout=self.command_timeout):
            return result
        return {'status': 'error', 'message': 'Command execution timed out'}

    def _run_handler(self, handler, command: dict[str, Any]) -> dict[str, Any]:
        try:
            return handler(command)
        except ValidationError as e:
            return {
                'status': 'error',
                'message': f'Invalid parameters: {e.error_count()} validation error(s)',
                'errors': [f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in e.errors()],
            }
        except ServiceError as e:
            return {'status': 'error', 'message': str(e), 'status_code': e.status_code}
        except Exception as e:
            return {'status': 'error', 'message': str(e), 'traceback': traceback.format_exc()}

    # === Playback Control Handlers ===

    def _handle_play_remote(self, command: dict[str, Any]) -> dict[str, Any]:
        """Play a catalog track, optionally replacing the queue with ``items``."""
        track_data = command.get('track')
        if not track_data:
            return {'status': 'error', 'message': 'No track specified'}

        track = RemoteTrack.model_validate(track_data)
        items = command.get('items')
        if items is not None:
            items = [RemoteTrack.model_validate(item) for item in items]
        self.player.coordinator.play_remote(track, items, command.get('start_index'), trigger_source="api")
        return {'status': 'success', 'track': _dump(track)}

    def _handle_play_local(self, command: dict[str, Any]) -> dict[str, Any]:
        """Play a file from a local collection and queue the whole collection."""
        collection = command.get('collection')
        filename = command.get('filename')
        if not collection or not filename:
            return {'status': 'error', 'message': 'Both collection and filename are required'}

        items = self.player.local_files.list_tracks(collection)
        track = next((item for item in items if item.filename == filename), None)
        if track is None:
            return {'status': 'error', 'message': f'File not found in collection: {filename}'}

        self.player.coordinator.play_local(collection, track, items, trigger_source="api")
        return {'status': 'success', 'track': _dump(track), 'queue_size': len(items)}

    def _handle_play_pause(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle play/pause toggle command."""
        coordinator = self.player.coordinator
        if coordinator.active_engine is None:
            return {'status': 'error', 'message': 'Nothing is loaded'}
        coordinator.toggle_play(trigger_source="api")
        return {'status': 'success', 'is_playing': coordinator.active_engine.state.is_playing}

    def _handle_stop(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle stop command."""
        self.player.coordinator.stop()
        return {'status': 'success'}

    def _navigate(self, direction: str) -> dict[str, Any]:
        track = self.player.coordinator.advance(direction, trigger_source="api")
        if track is None:
            return {'status': 'success', 'track': None, 'message': 'No track to move to'}
        return {'status': 'success', 'track': _dump(track)}

    def _handle_next(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle next track command."""
        return self._navigate('next')

    def _handle_previous(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle previous track command."""
        return self._navigate('previous')

    # === Slider Control Handlers ===

    def _handle_seek(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle absolute seek command (seconds)."""
        position = command.get('position')
        if position is None:
            return {'status': 'error', 'message': 'No position specified'}

        try:
            position = float(position)
        except (ValueError, TypeError) as e:
            return {'status': 'error', 'message': f'Invalid position value: {str(e)}'}

        engine = self.player.coordinator.active_engine
        if engine is None:
            return {'status': 'error', 'message': 'Nothing is loaded'}
        self.player.coordinator.seek(position)
        return {'status': 'success', 'position': engine.state.position_seconds}

    def _handle_set_volume(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle volume setting command (0-100)."""
        volume = command.get('volume')
        if volume is None:
            return {'status': 'error', 'message': 'No volume specified'}

        try:
            volume = float(volume)
            if not 0 <= volume <= 100:
                return {'status': 'error', 'message': 'Volume must be between 0 and 100'}

            self.player.coordinator.set_volume(volume / 100)
            return {'status': 'success', 'volume': volume}
        except (ValueError, TypeError) as e:
            return {'status': 'error', 'message': f'Invalid volume value: {str(e)}'}

    # === Utility Control Handlers ===

    def _handle_toggle_shuffle(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle shuffle toggle command."""
        shuffle_enabled = self.player.coordinator.toggle_shuffle()
        return {'status': 'success', 'shuffle_enabled': shuffle_enabled}

    def _handle_cycle_repeat(self, command: dict[str, Any]) -> dict[str, Any]:
        """Handle repeat mode cycle command."""
        mode = self.player.coordinator.cycle_repeat_mode()
        return {'status': 'success', 'repeat_mode': mode.value}

    # === Info Query Handlers ===

    def _handle_get_status(self, command: dict[str, Any]) -> dict[str, Any]:
        """Get current player status."""
        snapshot = self.player.coordinator.snapshot()
        engines = {TrackKind.REMOTE: snapshot.remote, TrackKind.LOCAL: snapshot.local}
        engine = engines.get(snapshot.active_engine)

        status = {
            'active_engine': snapshot.active_engine.value if snapshot.active_engine else None,
            'is_playing': engine.is_playing if engine else False,
            'is_loading': engine.is_loading if engine else False,
            'current_time': engine.position_seconds if engine else 0.0,
            'duration': engine.duration_seconds if engine else 0.0,
            'volume': round(engine.volume * 100) if engine else None,
            'error': engine.error if engine else None,
            'current_track': _dump(engine.active_track) if engine and engine.active_track else None,
            'shuffle_enabled': snapshot.queue.shuffle_enabled,
            'repeat_mode': snapshot.queue.repeat_mode.value,
        }
        return {'status': 'success', 'data': status}

    def _handle_get_queue(self, command: dict[str, Any]) -> dict[str, Any]:
        """Get the current queue in playback order."""
        state = self.player.queue_manager.state()
        current = self.player.queue_manager.current()
        queue_items = [
            {'index': index, 'current': track == current, **_dump(track)}
            for index, track in enumerate(state.items)
        ]
        return {
            'status': 'success',
            'data': queue_items,
            'count': len(queue_items),
            'kind': state.kind.value if state.kind else None,
            'collection': state.collection_label,
        }

    # === Backend Lookup Handlers ===

    def _handle_search(self, command: dict[str, Any]) -> dict[str, Any]:
        """Search the catalog."""
        query = command.get('query', '').strip()
        if not query:
            return {'status': 'error', 'message': 'No query specified'}

        search_type = command.get('type', 'songs')
        if search_type not in ('songs', 'podcasts', 'episodes'):
            return {'status': 'error', 'message': f'Unknown search type: {search_type}'}

        results = self.player.catalog.search(query, search_type)
        return {'status': 'success', 'query': query, 'data': [_dump(track) for track in results], 'count': len(results)}

    def _handle_home(self, command: dict[str, Any]) -> dict[str, Any]:
        """Get catalog recommendations."""
        results = self.player.catalog.home()
        return {'status': 'success', 'data': [_dump(track) for track in results], 'count': len(results)}

    def _handle_local_collections(self, command: dict[str, Any]) -> dict[str, Any]:
        collections = self.player.local_files.list_collections()
        return {'status': 'success', 'data': [_dump(collection) for collection in collections], 'count': len(collections)}

    def _handle_local_tracks(self, command: dict[str, Any]) -> dict[str, Any]:
        collection = command.get('collection')
        if not collection:
            return {'status': 'error', 'message': 'No collection specified'}

        tracks: list[LocalTrack] = self.player.local_files.list_tracks(collection)
        return {'status': 'success', 'collection': collection, 'data': [_dump(track) for track in tracks], 'count': len(tracks)}

    def _handle_auth_status(self, command: dict[str, Any]) -> dict[str, Any]:
        return {'status': 'success', 'authenticated': self.player.auth.is_authenticated()}
