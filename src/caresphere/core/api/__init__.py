"""
CareSphere API Package

APIClient, its transport, endpoint catalog, wire models and JSON coding.
"""

from caresphere.core.api.client import APIClient, CredentialPair, HTTPMethod, RetryState
from caresphere.core.api.coding import decode_response, encode_body, encode_json
from caresphere.core.api.endpoints import Endpoint, Endpoints
from caresphere.core.api.models import (
    APIErrorResponse,
    APIResponse,
    EmptyResponse,
    LoginRequest,
    LoginResponse,
    PaginationInfo,
    RefreshTokenRequest,
    RefreshTokenResponse,
    RegisterRequest,
    ResponseMetadata,
    User,
    UserRole,
)
from caresphere.core.api.transport import (
    AiohttpTransport,
    OutboundRequest,
    Transport,
    TransportResponse,
)

__all__ = [
    # client
    "APIClient",
    "CredentialPair",
    "HTTPMethod",
    "RetryState",
    # transport
    "Transport",
    "AiohttpTransport",
    "OutboundRequest",
    "TransportResponse",
    # endpoints
    "Endpoint",
    "Endpoints",
    # coding
    "encode_json",
    "encode_body",
    "decode_response",
    # models
    "APIResponse",
    "APIErrorResponse",
    "ResponseMetadata",
    "PaginationInfo",
    "EmptyResponse",
    "User",
    "UserRole",
    "LoginRequest",
    "RegisterRequest",
    "LoginResponse",
    "RefreshTokenRequest",
    "RefreshTokenResponse",
]
