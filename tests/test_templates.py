"""Tests for Jinja2 template configuration and static file serving."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient

from epets.api.templates import (
    TEMPLATES_DIR,
    format_date,
    format_datetime,
    format_number,
    get_templates,
)


class TestStaticFiles:
    def test_admin_css_served(self, client: TestClient) -> None:
        response = client.get("/static/css/admin.css")

        assert response.status_code == 200
        assert "text/css" in response.headers["content-type"]

    def test_missing_file(self, client: TestClient) -> None:
        assert client.get("/static/css/missing.css").status_code == 404


class TestHealth:
    def test_health_is_public(self, test_app, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestFilters:
    """Display formatting in the London time zone."""

    def test_format_datetime_summer_time(self):
        value = datetime(2016, 7, 1, 9, 30, tzinfo=UTC)

        assert format_datetime(value) == "01 July 2016 10:30"

    def test_format_datetime_naive_is_utc(self):
        assert format_datetime(datetime(2016, 12, 1, 9, 30)) == "01 December 2016 09:30"

    def test_format_date_crosses_midnight(self):
        value = datetime(2016, 7, 31, 23, 30, tzinfo=UTC)

        assert format_date(value) == "01 August 2016"
        assert format_date(value, time_zone="UTC") == "31 July 2016"

    @pytest.mark.parametrize("formatter", [format_date, format_datetime, format_number])
    def test_none_is_blank(self, formatter):
        assert formatter(None) == ""

    def test_format_number(self):
        assert format_number(1234567) == "1,234,567"


class TestTemplates:
    def test_directory_exists(self):
        assert TEMPLATES_DIR.is_dir()

    def test_filters_registered(self):
        env = get_templates().env

        for name in ("format_date", "format_datetime", "format_number"):
            assert name in env.filters
        assert "get_state_label" in env.globals

    @pytest.mark.parametrize(
        "name",
        [
            "base.html",
            "admin/login.html",
            "admin/dashboard.html",
            "admin/profile/edit.html",
            "admin/archived/petitions/index.html",
            "admin/archived/petitions/show.html",
        ],
    )
    def test_templates_load(self, name):
        assert get_templates().get_template(name) is not None
