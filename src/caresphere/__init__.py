"""
CareSphere network access layer

Authenticated, retrying JSON client for the CareSphere REST backend, with
token refresh, a typed error taxonomy and the authentication service built
on top of it.
"""

__version__ = "0.1.0"
__author__ = "CareSphere"
__license__ = "MIT"

from caresphere.bootstrap import configure_logging, create_api_client, create_auth_service
from caresphere.configuration.config_manager import APIConfiguration, ConfigManager
from caresphere.core.api.client import APIClient, HTTPMethod
from caresphere.core.api.endpoints import Endpoint, Endpoints
from caresphere.core.base import CareSphereComponent, ComponentState
from caresphere.core.exceptions import APIError, CareSphereError, ConfigurationError, ErrorKind
from caresphere.services.auth_service import AuthenticationService
from caresphere.utils.logger_manager import LoggerManager

__all__ = [
    # version
    "__version__",
    "__author__",
    "__license__",
    # base classes
    "CareSphereComponent",
    "ComponentState",
    # errors
    "CareSphereError",
    "ConfigurationError",
    "APIError",
    "ErrorKind",
    # client
    "APIClient",
    "HTTPMethod",
    "Endpoint",
    "Endpoints",
    # configuration
    "APIConfiguration",
    "ConfigManager",
    # services
    "AuthenticationService",
    "LoggerManager",
    # composition
    "configure_logging",
    "create_api_client",
    "create_auth_service",
]
