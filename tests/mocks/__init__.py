"""CareSphere Test Mocks Package"""

from .mock_transport import BASE_URL, MockTransport, echo, json_response

__all__ = [
    "BASE_URL",
    "MockTransport",
    "echo",
    "json_response",
]
