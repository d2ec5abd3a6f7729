"""Authentication service

Thin caller over APIClient for the /auth endpoints. Token handling lives in
the client; this service only tracks the signed-in user.
"""

import logging
from typing import Optional

from caresphere.core.api.client import APIClient, HTTPMethod
from caresphere.core.api.endpoints import Endpoints
from caresphere.core.api.models import (
    EmptyResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    User,
)
from caresphere.core.exceptions import APIError

logger = logging.getLogger(__name__)


class AuthenticationService:
    """Sign-in state for one APIClient.

    Attributes:
        current_user: User returned by the last login, register or profile load
        last_error: Error of the last failed operation, cleared on the next one
    """

    def __init__(self, client: APIClient):
        self._client = client
        self.current_user: Optional[User] = None
        self.last_error: Optional[APIError] = None

    @property
    def is_authenticated(self) -> bool:
        return self._client.is_authenticated and self.current_user is not None

    @property
    def is_loading(self) -> bool:
        return self._client.is_loading

    async def login(self, email: str, password: str, remember_me: bool = True) -> User:
        """Sign in and adopt the returned tokens.

        Raises:
            APIError: the backend rejected the credentials or was unreachable
        """
        request = LoginRequest(email=email, password=password, remember_me=remember_me)
        response = await self._authenticate(Endpoints.Auth.LOGIN, request)
        logger.info("User logged in", extra={"user_id": response.user.id})
        return response.user

    async def register(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        organization_id: Optional[str] = None,
        organization_name: Optional[str] = None,
    ) -> User:
        """Create an account and sign in with it.

        Raises:
            APIError: registration failed
        """
        request = RegisterRequest(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            organization_id=organization_id,
            organization_name=organization_name,
        )
        response = await self._authenticate(Endpoints.Auth.REGISTER, request)
        logger.info("User registered", extra={"user_id": response.user.id})
        return response.user

    async def register_full_name(self, full_name: str, email: str, password: str) -> User:
        """register() taking a single name; the first word is the first name."""
        first_name, _, last_name = full_name.strip().partition(" ")
        return await self.register(
            email=email,
            password=password,
            first_name=first_name,
            last_name=" ".join(last_name.split()),
        )

    async def _authenticate(self, endpoint, request) -> LoginResponse:
        self.last_error = None
        try:
            response = await self._client.request(
                endpoint, method=HTTPMethod.POST, body=request, response_type=LoginResponse
            )
        except APIError as e:
            self.last_error = e
            raise

        self._client.set_credentials(response.access_token, response.refresh_token)
        self.current_user = response.user
        return response

    async def logout(self) -> None:
        """Sign out. Local credentials are cleared even when the server call fails."""
        try:
            await self._client.request(
                Endpoints.Auth.LOGOUT, method=HTTPMethod.POST, response_type=EmptyResponse
            )
        except APIError as e:
            logger.warning(f"Logout request failed: {e}", extra={"error_code": e.error_code})

        self._client.clear_credentials()
        self.current_user = None
        self.last_error = None

    async def load_current_user(self) -> Optional[User]:
        """Fetch the profile for the stored credentials.

        Returns:
            Optional[User]: The user, or None when not signed in. A failed
            profile load signs the user out and records ``last_error``.
        """
        if not self._client.is_authenticated:
            self.current_user = None
            return None

        try:
            user = await self._client.request(Endpoints.Auth.PROFILE, response_type=User)
        except APIError as e:
            logger.warning(f"Failed to load current user: {e}", extra={"error_code": e.error_code})
            self.last_error = e
            self._client.clear_credentials()
            self.current_user = None
            return None

        self.current_user = user
        self.last_error = None
        return user
