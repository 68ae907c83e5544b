"""
Tests for API authentication.
"""


class TestAuthenticationDisabled:
    """Tests when AUTH_API_KEY is not configured."""

    def test_public_endpoint_accessible(self, client):
        """Health check should be accessible without auth."""
        response = client.get("/status")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["auth_enabled"] is False

    def test_protected_endpoint_accessible_without_auth(self, client):
        """Protected endpoints should work when auth is disabled."""
        response = client.post("/cache/maintenance/enforce-limit")
        assert response.status_code == 200

    def test_protected_endpoint_accessible_with_random_key(self, client):
        """Protected endpoints should work with any key when auth is disabled."""
        response = client.post("/cache/maintenance/enforce-limit", headers={"X-API-Key": "random-key"})
        assert response.status_code == 200


class TestAuthenticationEnabled:
    """Tests when AUTH_API_KEY is configured."""

    def test_public_endpoint_accessible_without_auth(self, client_with_auth):
        """Health check should be accessible without auth even when enabled."""
        response = client_with_auth.get("/status")
        assert response.status_code == 200
        assert response.json()["auth_enabled"] is True

    def test_read_endpoints_do_not_require_key(self, client_with_auth):
        """Offline reads stay available without a key."""
        assert client_with_auth.get("/cache/stats").status_code == 200
        assert client_with_auth.get("/cache/stories").status_code == 200

    def test_protected_endpoint_rejects_missing_key(self, client_with_auth, test_db):
        """Mutating endpoints should return 401 without API key."""
        response = client_with_auth.post("/cache/stories/7")
        assert response.status_code == 401
        assert "Missing API key" in response.json()["detail"]
        assert test_db.stories.count() == 0

    def test_protected_endpoint_rejects_invalid_key(self, client_with_auth):
        """Protected endpoints should return 401 with wrong API key."""
        response = client_with_auth.delete("/cache", headers={"X-API-Key": "wrong-key"})
        assert response.status_code == 401
        assert "Invalid API key" in response.json()["detail"]

    def test_protected_endpoint_accepts_valid_key(self, client_with_auth, test_db):
        """Protected endpoints should work with correct API key."""
        response = client_with_auth.post(
            "/cache/stories/7", headers={"X-API-Key": "test-secret-key-12345"}
        )
        assert response.status_code == 200
        assert test_db.stories.exists(7)

    def test_401_includes_www_authenticate_header(self, client_with_auth):
        """401 responses should include WWW-Authenticate header."""
        response = client_with_auth.delete("/cache/stories/7")
        assert response.status_code == 401
        assert response.headers.get("WWW-Authenticate") == "ApiKey"
