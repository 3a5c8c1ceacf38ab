"""
Logging configuration for the duet player using eliot.

Queue mutations, engine transitions and coordinator commands are logged as
structured eliot messages. A human-readable destination prints the useful
subset to stdout; the optional log file receives the raw JSON stream.
"""

import eliot
import logging
import sys
from eliot import Logger, log_message, start_action, write_traceback
from eliot.stdlib import EliotHandler
from pathlib import Path


class HumanReadableDestination:
    """Destination that formats logs in a human-readable format."""

    # Noisy message types that are only interesting in the JSON log
    skip_messages = {
        "queue_operation",
        "engine_event",
        "service_request",
    }

    def __init__(self, file):
        self.file = file

    def __call__(self, message):
        """Format and write log message."""
        # Skip internal Eliot messages (action start/status messages)
        if message.get("action_type") and not message.get("message_type"):
            return

        msg_type = message.get("message_type", "")
        if msg_type in self.skip_messages:
            return

        action = message.get("action", msg_type)
        description = message.get("description", "")
        trigger = message.get("trigger_source", "")

        if msg_type == "player_action":
            if not trigger:
                return
            track = message.get("track", "")
            if description:
                output = f"[{trigger.upper()}] {description}"
            elif track:
                output = f"[{trigger.upper()}] {action}: {track}"
            else:
                output = f"[{trigger.upper()}] {action}"
        elif msg_type == "api_request":
            output = f"[API] {action}"
            if description:
                output += f": {description}"
        elif msg_type == "error_occurred":
            output = f"[ERROR] {message.get('error_type', 'Error')}: {message.get('error_message', '')}"
        elif description:
            output = description
        elif "message" in message:
            output = message["message"]
        else:
            return

        if output and output.strip():
            self.file.write(output + "\n")
            self.file.flush()


def setup_logging(log_level: str = "INFO", log_file: str | None = None) -> None:
    """
    Set up eliot logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to (always logs to stdout as well)
    """
    eliot.add_destination(HumanReadableDestination(sys.stdout))

    # Raw JSON format for machine parsing
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        eliot.to_file(open(log_path, "a"))

    # Route stdlib logging (requests, urllib3) through eliot
    logger = logging.getLogger()
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    logger.addHandler(EliotHandler())

    log_message(
        message_type="logging_setup", log_level=log_level, log_file=log_file or "stdout", message="Eliot logging configured"
    )


def get_logger(name: str) -> Logger:
    """
    Get an eliot logger instance for a specific component.

    The returned Logger is meant for start_action() contexts; messages are
    written with eliot.log_message() or the helpers below.
    """
    return Logger()


# Global logger instances for different components
app_logger = get_logger("duet_app")
queue_logger = get_logger("duet_queue")
engine_logger = get_logger("duet_engine")
coordinator_logger = get_logger("duet_coordinator")
service_logger = get_logger("duet_service")
api_logger = get_logger("duet_api")


def log_queue_operation(operation: str, **context):
    """
    Log queue operations with context.

    Args:
        operation: Queue operation (set_queue, next, previous, toggle_shuffle, etc.)
        **context: Additional context data
    """
    log_message(message_type="queue_operation", operation=operation, **context)


def log_player_action(action: str, **context):
    """
    Log player actions with context.

    Args:
        action: Player action (play_remote, next, seek, etc.)
        **context: Additional context data, usually including trigger_source
    """
    log_message(message_type="player_action", action=action, **context)


def log_engine_event(engine: str, event: str, **context):
    """
    Log an engine state transition or native device event.

    Args:
        engine: Engine kind ("remote" or "local")
        event: Event name (load, play, ended, error, ...)
        **context: Additional context data
    """
    log_message(message_type="engine_event", engine=engine, event=event, **context)


def log_service_request(method: str, path: str, **context):
    """
    Log an outgoing HTTP request to a backend service.

    Args:
        method: HTTP method
        path: Request path relative to the service base URL
        **context: Additional context data (status code, params)
    """
    log_message(message_type="service_request", method=method, path=path, **context)


def log_error(logger: Logger, error: Exception, **context):
    """
    Log errors with full context and traceback.

    Args:
        logger: Eliot logger instance
        error: Exception that occurred
        **context: Additional context data
    """
    if sys.exc_info()[0] is not None:
        write_traceback(logger, exc_info=sys.exc_info())
    log_message(message_type="error_occurred", error_message=str(error), error_type=type(error).__name__, **context)


def log_api_request(action: str, trigger_source: str = "api", **context):
    """
    Log API requests with context.

    Args:
        action: API action being performed
        trigger_source: Source of the request (default: "api")
        **context: Additional context data (request parameters, response, etc.)
    """
    log_message(message_type="api_request", action=action, trigger_source=trigger_source, **context)


__all__ = [
    'api_logger',
    'app_logger',
    'coordinator_logger',
    'engine_logger',
    'get_logger',
    'log_api_request',
    'log_engine_event',
    'log_error',
    'log_player_action',
    'log_queue_operation',
    'log_service_request',
    'queue_logger',
    'service_logger',
    'setup_logging',
    'start_action',
]
