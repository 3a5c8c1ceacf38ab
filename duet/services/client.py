"""Shared HTTP plumbing for the backend service clients."""

import requests
from duet.config import CONNECTION_TEST_TIMEOUT, ServiceConfig
from duet.exceptions import ServiceError
from duet.logging import log_error, log_service_request, service_logger
from typing import Any
from urllib.parse import quote


def quote_segment(value: str) -> str:
    """URL-encode a single path segment (slashes included)."""
    return quote(value, safe='')


class ServiceClient:
    """Base client bound to one backend for its whole lifetime.

    Pointing at another backend means constructing a new client from
    ``config.with_base_url(...)``; clients never mutate their base URL.
    """

    def __init__(self, config: ServiceConfig | None = None, session: requests.Session | None = None):
        self.config = config or ServiceConfig()
        self.session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self.config.base_url

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, decode: bool = True, **kwargs) -> Any:
        """Send a request and decode the JSON body (unless ``decode`` is False).

        Raises:
            ServiceError: On connection failure, non-2xx status or invalid JSON
        """
        kwargs.setdefault('timeout', self.config.timeout)
        try:
            response = self.session.request(method, self.url_for(path), **kwargs)
            response.raise_for_status()
            data = response.json() if decode else None
        except requests.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            log_error(service_logger, e, method=method, path=path, status_code=status_code)
            raise ServiceError(f"{method} {path} failed with status {status_code}", status_code=status_code) from e
        except (requests.RequestException, ValueError) as e:
            log_error(service_logger, e, method=method, path=path)
            raise ServiceError(f"{method} {path} failed: {e}") from e

        log_service_request(method, path, status_code=response.status_code, params=kwargs.get('params'))
        return data

    def _get(self, path: str, params: dict | None = None) -> Any:
        return self._request('GET', path, params=params)

    def _post(self, path: str, payload: dict | None = None) -> Any:
        return self._request('POST', path, json=payload)

    def close(self) -> None:
        self.session.close()


def check_connection(url: str, timeout: float = CONNECTION_TEST_TIMEOUT) -> bool:
    """Return True if a backend answers ``GET /`` at ``url``."""
    client = ServiceClient(ServiceConfig(base_url=url, timeout=timeout))
    try:
        client._request('GET', '/', decode=False)
        return True
    except ServiceError:
        return False
    finally:
        client.close()
