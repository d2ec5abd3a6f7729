"""Wire models for the CareSphere REST API

Dataclasses mirroring the backend's JSON payloads. Wire keys are camelCase;
every model converts explicitly through from_dict()/to_dict().
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from caresphere.core.api.coding import format_datetime, parse_datetime, parse_optional_datetime

# ============================================================================
# Envelope
# ============================================================================


@dataclass(frozen=True)
class PaginationInfo:
    page: int
    page_size: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaginationInfo":
        return cls(
            page=int(data["page"]),
            page_size=int(data["pageSize"]),
            has_next=bool(data["hasNext"]),
            has_previous=bool(data["hasPrevious"]),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "pageSize": self.page_size,
            "hasNext": self.has_next,
            "hasPrevious": self.has_previous,
        }


@dataclass(frozen=True)
class ResponseMetadata:
    timestamp: Optional[datetime] = None
    request_id: Optional[str] = None
    version: Optional[str] = None
    pagination: Optional[PaginationInfo] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ResponseMetadata":
        pagination = data.get("pagination")
        return cls(
            timestamp=parse_optional_datetime(data.get("timestamp")),
            request_id=data.get("requestId"),
            version=data.get("version"),
            pagination=PaginationInfo.from_dict(pagination) if pagination else None,
        )


@dataclass(frozen=True)
class APIErrorResponse:
    """Error object carried by a ``success: false`` envelope."""

    code: str
    message: str
    details: Optional[Dict[str, Any]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "APIErrorResponse":
        return cls(code=str(data["code"]), message=str(data["message"]), details=data.get("details"))


@dataclass(frozen=True)
class APIResponse:
    """Response envelope.

    ``data`` is left as parsed JSON; decode_response() converts it into the
    caller's response type.
    """

    success: bool
    data: Any = None
    error: Optional[APIErrorResponse] = None
    metadata: Optional[ResponseMetadata] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "APIResponse":
        error = data.get("error")
        metadata = data.get("metadata")
        return cls(
            success=data["success"],
            data=data.get("data"),
            error=APIErrorResponse.from_dict(error) if error else None,
            metadata=ResponseMetadata.from_dict(metadata) if metadata else None,
        )


@dataclass(frozen=True)
class EmptyResponse:
    """Response type for endpoints that return nothing useful (``{}`` or no body)."""

    accepts_empty_body = True

    @classmethod
    def from_dict(cls, data: Any) -> "EmptyResponse":
        if not isinstance(data, dict):
            raise TypeError(f"Expected object, got {type(data).__name__}")
        return cls()


# ============================================================================
# Users
# ============================================================================


class UserRole(Enum):
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    MINISTRY_LEADER = "ministry_leader"
    VOLUNTEER = "volunteer"
    MEMBER = "member"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass(frozen=True)
class User:
    """Authenticated user as returned by /auth/login and /auth/profile."""

    id: str
    email: str
    first_name: str
    last_name: str
    role: UserRole
    organization_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime
    profile_image_url: Optional[str] = None
    phone_number: Optional[str] = None
    last_login_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            first_name=data["firstName"],
            last_name=data["lastName"],
            role=UserRole(data["role"]),
            organization_id=data["organizationId"],
            is_active=bool(data["isActive"]),
            created_at=parse_datetime(data["createdAt"]),
            updated_at=parse_datetime(data["updatedAt"]),
            profile_image_url=data.get("profileImageURL"),
            phone_number=data.get("phoneNumber"),
            last_login_at=parse_optional_datetime(data.get("lastLoginAt")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role.value,
            "organizationId": self.organization_id,
            "isActive": self.is_active,
            "profileImageURL": self.profile_image_url,
            "phoneNumber": self.phone_number,
            "createdAt": format_datetime(self.created_at),
            "updatedAt": format_datetime(self.updated_at),
            "lastLoginAt": format_datetime(self.last_login_at) if self.last_login_at else None,
        }


# ============================================================================
# Authentication
# ============================================================================


def _require_token(data: Dict[str, Any], key: str) -> str:
    token = data[key]
    if not isinstance(token, str) or not token:
        raise ValueError(f"{key} must be a non-empty string")
    return token


@dataclass(frozen=True)
class LoginRequest:
    email: str
    password: str
    remember_me: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"email": self.email, "password": self.password, "rememberMe": self.remember_me}


@dataclass(frozen=True)
class RegisterRequest:
    email: str
    password: str
    first_name: str
    last_name: str
    organization_id: Optional[str] = None
    # set to create a new organization during sign-up
    organization_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "email": self.email,
            "password": self.password,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "organizationId": self.organization_id,
            "organizationName": self.organization_name,
        }


@dataclass(frozen=True)
class LoginResponse:
    """Response of /auth/login and /auth/register."""

    user: User
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoginResponse":
        expires_in = data.get("expiresIn")
        return cls(
            user=User.from_dict(data["user"]),
            access_token=_require_token(data, "accessToken"),
            refresh_token=data.get("refreshToken"),
            expires_in=int(expires_in) if expires_in is not None else None,
        )


@dataclass(frozen=True)
class RefreshTokenRequest:
    refresh_token: str

    def to_dict(self) -> Dict[str, Any]:
        return {"refreshToken": self.refresh_token}


@dataclass(frozen=True)
class RefreshTokenResponse:
    """Response of /auth/refresh; the refresh token is only present when rotated."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RefreshTokenResponse":
        expires_in = data.get("expiresIn")
        return cls(
            access_token=_require_token(data, "accessToken"),
            refresh_token=data.get("refreshToken"),
            expires_in=int(expires_in) if expires_in is not None else None,
        )
