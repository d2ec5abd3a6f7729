"""
CareSphere Core Package

Component base classes, the exception hierarchy and the API client.
"""

from caresphere.core.base import CareSphereComponent, ComponentState
from caresphere.core.exceptions import APIError, CareSphereError, ErrorKind

__all__ = [
    "CareSphereComponent",
    "ComponentState",
    "CareSphereError",
    "APIError",
    "ErrorKind",
]
