"""
CareSphere Services Package

Feature services built on APIClient.
"""

from caresphere.services.auth_service import AuthenticationService

__all__ = ["AuthenticationService"]
