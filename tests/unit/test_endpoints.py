"""Endpoint descriptor and catalog tests"""

import pytest

from caresphere.core.api.endpoints import Endpoint, Endpoints
from caresphere.core.exceptions import InvalidURLError

BASE = "https://caresphere.example.com"


@pytest.mark.unit
class TestEndpoint:
    """URL resolution"""

    @pytest.mark.parametrize(
        "base_url, path, expected",
        [
            (BASE, "/members", f"{BASE}/members"),
            (f"{BASE}/", "/members", f"{BASE}/members"),
            (BASE, "members", f"{BASE}/members"),
            (f"{BASE}/api", "/members", f"{BASE}/api/members"),
            ("http://localhost:3000", "/auth/login", "http://localhost:3000/auth/login"),
        ],
    )
    def test_url_for(self, base_url, path, expected):
        assert Endpoint(path).url_for(base_url) == expected

    def test_empty_path_is_base(self):
        assert Endpoint("").url_for(BASE) == BASE

    @pytest.mark.parametrize(
        "base_url, path",
        [
            ("", "/members"),
            ("caresphere.example.com", "/members"),
            ("ftp://caresphere.example.com", "/members"),
            (BASE, "/members/with space"),
            ("https://", "/members"),
        ],
    )
    def test_invalid(self, base_url, path):
        with pytest.raises(InvalidURLError):
            Endpoint(path).url_for(base_url)

    def test_is_immutable_value(self):
        assert Endpoint("/members") == Endpoints.Members.LIST
        with pytest.raises(AttributeError):
            Endpoints.Members.LIST.path = "/other"

    def test_str(self):
        assert str(Endpoints.Auth.LOGIN) == "/auth/login"


@pytest.mark.unit
class TestCatalog:
    """Endpoints catalog"""

    def test_auth(self):
        assert Endpoints.Auth.LOGIN.path == "/auth/login"
        assert Endpoints.Auth.REGISTER.path == "/auth/register"
        assert Endpoints.Auth.REFRESH.path == "/auth/refresh"
        assert Endpoints.Auth.LOGOUT.path == "/auth/logout"
        assert Endpoints.Auth.PROFILE.path == "/auth/profile"

    def test_members(self):
        assert Endpoints.Members.get("m-1").path == "/members/m-1"
        assert Endpoints.Members.update("m-1") == Endpoints.Members.delete("m-1")
        assert Endpoints.Members.notes("m-1").path == "/members/m-1/notes"
        assert Endpoints.Members.activities("m-1").path == "/members/m-1/activities"
        assert Endpoints.Members.SEARCH.path == "/members/search"

    def test_messages_and_templates(self):
        assert Endpoints.Messages.send("x").path == "/messages/x/send"
        assert Endpoints.Messages.analytics("x").path == "/messages/x/analytics"
        assert Endpoints.Templates.get("t").path == "/templates/t"

    def test_automation(self):
        assert Endpoints.Automation.logs().path == "/automation/logs"
        assert Endpoints.Automation.logs("r").path == "/automation/rules/r/logs"
        assert Endpoints.Automation.execute("r").path == "/automation/rules/r/execute"

    def test_analytics(self):
        assert Endpoints.Analytics.DASHBOARD.path == "/analytics/dashboard"

    def test_sender_settings_query(self):
        assert Endpoints.Settings.sender_list().path == "/settings/senders"
        assert (
            Endpoints.Settings.sender_list("organization", "org-1").path
            == "/settings/senders?scope=organization&reference_id=org-1"
        )
        assert Endpoints.Settings.sender_create("user").path == "/settings/senders?scope=user"
        assert Endpoints.Settings.SENDER_RESOLVED.path == "/settings/senders/resolved"

    def test_query_values_are_escaped(self):
        path = Endpoints.Settings.sender_list("a b", "x&y").path
        assert path == "/settings/senders?scope=a+b&reference_id=x%26y"
