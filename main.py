#!/usr/bin/env python

import signal
import sys
from duet.api import APIServer
from duet.config import API_SERVER_ENABLED, API_SERVER_PORT, BACKEND_URL, LOG_FILE, LOG_LEVEL
from duet.logging import app_logger, log_error, setup_logging
from duet.player import build_player
from duet.services import check_connection
from eliot import log_message, start_action


def setup_api_server(player):
    """Start the API server if enabled. Returns the server or None."""
    if not API_SERVER_ENABLED:
        log_message(message_type="api_server_disabled", message="API server is disabled in configuration")
        return None

    api_server = APIServer(player, port=API_SERVER_PORT)
    result = api_server.start()
    if result['status'] != 'success':
        log_message(
            message_type="api_server_failed",
            error=result.get('message', 'Unknown error'),
            message="Failed to start API server",
        )
        return None

    log_message(message_type="api_server_initialized", port=API_SERVER_PORT, message="API server successfully started")
    return api_server


def main():
    setup_logging(LOG_LEVEL, LOG_FILE)
    player = None
    api_server = None

    with start_action(app_logger, "application_startup"):
        try:
            log_message(message_type="application_init", message="Starting duet player")

            if not check_connection(BACKEND_URL):
                log_message(message_type="backend_unreachable", backend_url=BACKEND_URL, message=f"Backend not reachable at {BACKEND_URL}")

            player = build_player()
            api_server = setup_api_server(player)

            # Ctrl+C and SIGTERM end the loop from the signal handler
            signal.signal(signal.SIGINT, lambda signum, frame: player.loop.stop())
            signal.signal(signal.SIGTERM, lambda signum, frame: player.loop.stop())

            log_message(message_type="application_ready", message="Application startup completed, entering main loop")

        except Exception as e:
            log_error(app_logger, e, context="application_startup")
            print(f"Error in main: {e}")
            if player is not None:
                player.release()
            sys.exit(1)

    try:
        player.loop.run_forever()
    finally:
        with start_action(app_logger, "application_shutdown"):
            if api_server is not None:
                api_server.stop()
            player.release()


if __name__ == "__main__":
    main()
