"""Auth service client. Only the authenticated flag matters to the player."""

from duet.exceptions import ServiceError
from duet.models import AuthStatus
from duet.services.client import ServiceClient


class AuthService(ServiceClient):
    def status(self) -> AuthStatus:
        return AuthStatus.model_validate(self._get('/api/auth/status'))

    def is_authenticated(self) -> bool:
        """Authenticated flag, treating an unreachable backend as logged out."""
        try:
            return self.status().authenticated
        except ServiceError:
            return False

    def login(self, headers_raw: str) -> AuthStatus:
        data = self._post('/api/auth/login', {'headers_raw': headers_raw})
        return AuthStatus(authenticated=bool(data.get('success')), message=data.get('message', ''))

    def logout(self) -> AuthStatus:
        data = self._post('/api/auth/logout')
        return AuthStatus(authenticated=not data.get('success', False), message=data.get('message', ''))
