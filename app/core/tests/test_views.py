"""Tests for core infrastructure views."""

from unittest.mock import patch

from django.db import DatabaseError


class TestHealthCheck:
    """Tests for the /health/ endpoint."""

    def test_healthy_when_database_answers(self, client, db):
        response = client.get("/health/")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "database": "connected"}

    def test_unhealthy_when_database_fails(self, client, db):
        """
        A failing database query reports 503.

        Why it matters: Load balancers stop routing to an instance that
        cannot reach its database.
        """
        with patch("core.views.connection.cursor", side_effect=DatabaseError("down")):
            response = client.get("/health/")

        assert response.status_code == 503
        assert response.json()["database"] == "disconnected"
