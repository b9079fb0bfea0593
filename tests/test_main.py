def test_root_and_health(client):
    root = client.get("/")
    assert root.status_code == 200
    assert root.json()["status"] == "ok"
    assert root.json()["env"] == "test"

    health = client.get("/health")
    assert health.json() == {"status": "healthy"}


def test_cors_preflight_allows_credentials(client):
    response = client.options(
        "/api/auth/request-otp",
        headers={
            "Origin": "http://app.example.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("http://app.example.com", "*")
    assert response.headers["access-control-allow-credentials"] == "true"
    assert "PATCH" in response.headers["access-control-allow-methods"]


def test_origins_wildcard_outside_production(app_settings):
    assert app_settings.origins_list == ["*"]

    production = app_settings.model_copy(
        update={"APP_ENV": "production", "CORS_ALLOWED_ORIGINS": "https://a.example.com, ,https://b.example.com"}
    )
    assert production.origins_list == ["https://a.example.com", "https://b.example.com"]


def test_non_positive_otp_settings_fall_back(app_settings):
    broken = app_settings.model_copy(update={"OTP_TTL_SECONDS": 0, "OTP_MAX_ATTEMPTS": -1})

    assert broken.otp_ttl_seconds == 300
    assert broken.otp_max_attempts == 5


def test_unknown_route_is_404(client):
    response = client.get("/api/auth/nope")

    assert response.status_code == 404
