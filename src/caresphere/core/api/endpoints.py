"""API endpoint descriptors

An Endpoint is a pure value naming one logical backend operation. It is
resolved to an absolute URL by joining its path with the configured base URL.
The Endpoints catalog groups every operation the application calls.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlsplit

from caresphere.core.exceptions import InvalidURLError


@dataclass(frozen=True)
class Endpoint:
    """Path (optionally with a query string) relative to the base URL."""

    path: str

    def url_for(self, base_url: str) -> str:
        """Join this endpoint with ``base_url``.

        Args:
            base_url: Absolute http(s) URL of the backend

        Returns:
            str: Absolute request URL

        Raises:
            InvalidURLError: the result is not an absolute http(s) URL
        """
        url = f"{base_url.rstrip('/')}/{self.path.lstrip('/')}" if self.path else base_url
        if any(ch.isspace() for ch in url):
            raise InvalidURLError(url=url)
        try:
            parts = urlsplit(url)
        except ValueError as e:
            raise InvalidURLError(url=url, cause=e) from e
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise InvalidURLError(url=url)
        return url

    def __str__(self) -> str:
        return self.path


def _with_query(path: str, **params: Optional[str]) -> str:
    query = {key: value for key, value in params.items() if value is not None}
    if not query:
        return path
    return f"{path}?{urlencode(query)}"


class Endpoints:
    """Catalog of backend operations, grouped by feature."""

    class Auth:
        LOGIN = Endpoint("/auth/login")
        REGISTER = Endpoint("/auth/register")
        REFRESH = Endpoint("/auth/refresh")
        LOGOUT = Endpoint("/auth/logout")
        PROFILE = Endpoint("/auth/profile")

    class Members:
        LIST = Endpoint("/members")
        CREATE = Endpoint("/members")
        SEARCH = Endpoint("/members/search")

        @staticmethod
        def get(member_id: str) -> Endpoint:
            return Endpoint(f"/members/{member_id}")

        update = get
        delete = get

        @staticmethod
        def notes(member_id: str) -> Endpoint:
            return Endpoint(f"/members/{member_id}/notes")

        @staticmethod
        def activities(member_id: str) -> Endpoint:
            return Endpoint(f"/members/{member_id}/activities")

    class Messages:
        LIST = Endpoint("/messages")
        CREATE = Endpoint("/messages")

        @staticmethod
        def get(message_id: str) -> Endpoint:
            return Endpoint(f"/messages/{message_id}")

        update = get
        delete = get

        @staticmethod
        def send(message_id: str) -> Endpoint:
            return Endpoint(f"/messages/{message_id}/send")

        @staticmethod
        def analytics(message_id: str) -> Endpoint:
            return Endpoint(f"/messages/{message_id}/analytics")

    class Templates:
        LIST = Endpoint("/templates")
        CREATE = Endpoint("/templates")

        @staticmethod
        def get(template_id: str) -> Endpoint:
            return Endpoint(f"/templates/{template_id}")

        update = get
        delete = get

    class Automation:
        RULES = Endpoint("/automation/rules")
        CREATE_RULE = Endpoint("/automation/rules")

        @staticmethod
        def get_rule(rule_id: str) -> Endpoint:
            return Endpoint(f"/automation/rules/{rule_id}")

        update_rule = get_rule
        delete_rule = get_rule

        @staticmethod
        def logs(rule_id: Optional[str] = None) -> Endpoint:
            if rule_id is None:
                return Endpoint("/automation/logs")
            return Endpoint(f"/automation/rules/{rule_id}/logs")

        @staticmethod
        def execute(rule_id: str) -> Endpoint:
            return Endpoint(f"/automation/rules/{rule_id}/execute")

    class Analytics:
        DASHBOARD = Endpoint("/analytics/dashboard")
        MEMBERS = Endpoint("/analytics/members")
        MESSAGES = Endpoint("/analytics/messages")
        AUTOMATION = Endpoint("/analytics/automation")
        ENGAGEMENT = Endpoint("/analytics/engagement")
        REPORTS = Endpoint("/analytics/reports")

    class Settings:
        SENDER_RESOLVED = Endpoint("/settings/senders/resolved")

        @staticmethod
        def sender_list(scope: Optional[str] = None, reference_id: Optional[str] = None) -> Endpoint:
            return Endpoint(_with_query("/settings/senders", scope=scope, reference_id=reference_id))

        @staticmethod
        def sender_create(scope: str, reference_id: Optional[str] = None) -> Endpoint:
            return Endpoint(_with_query("/settings/senders", scope=scope, reference_id=reference_id))

        sender_update = sender_create
        sender_delete = sender_create
