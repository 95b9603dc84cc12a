"""Tests for settings parsing."""

import pytest

from templeadmin.core.config import DEFAULT_PUBLIC_ROUTES, Settings


class TestPublicRoutes:

    def test_defaults(self):
        routes = Settings(public_routes=DEFAULT_PUBLIC_ROUTES).public_routes_list
        assert ("POST", "^/api/login$") in routes
        assert all(method == "GET" for method, _ in routes[1:])

    def test_custom_list(self):
        settings = Settings(public_routes=r"get ^/api/ping$; POST ^/api/login$;")
        assert settings.public_routes_list == [
            ("GET", "^/api/ping$"),
            ("POST", "^/api/login$"),
        ]

    def test_entry_without_pattern(self):
        settings = Settings(public_routes="GET")
        with pytest.raises(ValueError, match="Invalid public route entry"):
            settings.public_routes_list

    def test_empty_means_nothing_public(self):
        assert Settings(public_routes="").public_routes_list == []


class TestSettings:

    def test_cors_origins_list(self):
        settings = Settings(cors_origins="https://a.example, https://b.example,")
        assert settings.cors_origins_list == ["https://a.example", "https://b.example"]

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "15")
        assert Settings().access_token_expire_minutes == 15
