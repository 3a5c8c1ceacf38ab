from decouple import Csv, config
from pydantic import BaseModel, ConfigDict, field_validator


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith('/') else url


# Backend Configuration
BACKEND_URL = _strip_trailing_slash(config('DUET_BACKEND_URL', default='http://localhost:8000'))
HTTP_TIMEOUT = config('DUET_HTTP_TIMEOUT', default=10.0, cast=float)
CONNECTION_TEST_TIMEOUT = config('DUET_CONNECTION_TEST_TIMEOUT', default=5.0, cast=float)

# Player Configuration
DEFAULT_VOLUME = config('DUET_DEFAULT_VOLUME', default=1.0, cast=float)
VLC_ARGS = config('DUET_VLC_ARGS', default='--no-video,--quiet', cast=Csv())
MAIN_LOOP_POLL_INTERVAL = 0.1  # seconds

# Logging Configuration
LOG_LEVEL = config('DUET_LOG_LEVEL', default='INFO')
LOG_FILE = config('DUET_LOG_FILE', default=None)

# API Server Configuration
API_SERVER_ENABLED = config('DUET_API_SERVER_ENABLED', default=False, cast=bool)
API_SERVER_PORT = config('DUET_API_SERVER_PORT', default=5555, cast=int)
API_COMMAND_TIMEOUT = config('DUET_API_COMMAND_TIMEOUT', default=5.0, cast=float)

# Test Configuration
TEST_TIMEOUT = config('TEST_TIMEOUT', default=0.5, cast=float)


class ServiceConfig(BaseModel):
    """Connection settings handed to every service client at construction.

    Instances are immutable. Pointing the player at another backend means
    building a new config (and new clients) with :meth:`with_base_url`.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = BACKEND_URL
    timeout: float = HTTP_TIMEOUT

    @field_validator('base_url')
    @classmethod
    def _normalize_base_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("base_url must not be empty")
        return _strip_trailing_slash(value)

    def with_base_url(self, base_url: str) -> 'ServiceConfig':
        return ServiceConfig(base_url=base_url, timeout=self.timeout)
