import pytest

from kyctrust.api import helpers as helpers_module

CORS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


def _assert_cors(response):
    for header, value in CORS.items():
        assert response.headers.get(header) == value


@pytest.mark.parametrize(
    "path",
    [
        "/api/services",
        "/api/orders",
        "/api/site-settings",
        "/api/landing-customization",
        "/api",
        "/api/get-supabase-config",
    ],
)
def test_options_preflight_is_empty_200_with_cors(client, fake_supabase, path):
    response = client.options(path)

    assert response.status_code == 200
    assert response.data == b""
    _assert_cors(response)
    assert fake_supabase.calls == []


def test_every_response_carries_cors_headers(client):
    _assert_cors(client.get("/api/services"))
    _assert_cors(client.put("/api/services"))
    _assert_cors(client.open("/api/services", method="PATCH"))


def test_unregistered_method_lists_registered_methods(client):
    response = client.open("/api/services", method="PATCH")

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET, POST, PUT, DELETE"
    assert response.get_json() == {"error": "Method PATCH Not Allowed"}


def test_site_settings_cannot_be_deleted(client, fake_supabase):
    response = client.delete("/api/site-settings?id=1")

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET, POST, PUT"
    assert fake_supabase.calls == []


@pytest.mark.parametrize(
    "path, allow",
    [
        ("/api/site-settings", "GET, POST, PUT"),
        ("/api/landing-customization", "GET, POST, PUT, DELETE"),
        ("/api", "GET"),
    ],
)
def test_method_outside_routed_set_lists_registered_methods(
    client, fake_supabase, path, allow
):
    response = client.open(path, method="TRACE")

    assert response.status_code == 405
    assert response.headers["Allow"] == allow
    assert response.get_json() == {"error": "Method TRACE Not Allowed"}
    _assert_cors(response)
    assert fake_supabase.calls == []


def test_head_is_served_by_get_handler(client):
    response = client.head("/api/services")

    assert response.status_code == 200
    assert response.data == b""


def test_unhandled_exception_becomes_generic_500(client, monkeypatch):
    def explode(resource, queryer=None):
        raise RuntimeError("database exploded")

    monkeypatch.setattr(helpers_module, "fetch_rows", explode)

    response = client.get("/api/services")

    assert response.status_code == 500
    assert response.get_json() == {
        "error": "Internal Server Error",
        "message": "database exploded",
    }
    _assert_cors(response)


def test_index_describes_platform(client):
    response = client.get("/api")

    assert response.status_code == 200
    payload = response.get_json()
    assert payload["message"] == "KYCtrust Platform API"
    assert payload["status"] == "active"
    assert payload["endpoints"]["services"] == "/api/services"
    assert payload["features"]["visualPageBuilder"] is True


def test_index_rejects_writes(client):
    response = client.post("/api", json={})

    assert response.status_code == 405
    assert response.headers["Allow"] == "GET"
    _assert_cors(response)


def test_supabase_config_reports_configured(client):
    response = client.get("/api/get-supabase-config")

    assert response.status_code == 200
    assert response.get_json() == {
        "configured": True,
        "supabaseUrl": "http://localhost",
        "message": "Supabase is properly configured",
    }


def test_supabase_config_flags_placeholders(app, client):
    app.config["SUPABASE_URL"] = "https://your-project.supabase.co"

    payload = client.get("/api/get-supabase-config").get_json()

    assert payload["configured"] is False
    assert payload["needsConfiguration"] is True
    assert payload["supabaseUrl"] is None


def test_supabase_config_reports_missing_settings(app, client):
    app.config["SUPABASE_ANON_KEY"] = None

    payload = client.get("/api/get-supabase-config").get_json()

    assert payload["configured"] is False


def test_unknown_path_is_json_404(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert "error" in response.get_json()
