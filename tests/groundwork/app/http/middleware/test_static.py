"""Tests for static route middleware."""

import pytest

from groundwork.app.http.middleware import NO_CACHE_HEADERS, route_matches
from groundwork.app.http.middleware.static import cors_headers
from groundwork.config import CorsPolicy


@pytest.mark.unit
class TestRouteMatches:
    @pytest.mark.parametrize(
        "route,path,expected",
        [
            ("/", "/a/b.js", "/a/b.js"),
            ("/assets", "/assets", "/"),
            ("/assets", "/assets/app.js", "/app.js"),
            ("/assets/", "/assets/app.js", "/app.js"),
            ("/assets", "/assetsx/app.js", None),
            ("/assets", "/other", None),
        ],
    )
    def test_matches(self, route, path, expected):
        assert route_matches(route, path) == expected


@pytest.mark.unit
class TestCorsHeaders:
    def test_simple(self):
        assert cors_headers(CorsPolicy()) == {"access-control-allow-origin": "*"}

    def test_preflight(self):
        headers = cors_headers(
            CorsPolicy(allow_headers=("X-Token",), max_age=600), preflight=True
        )
        assert headers["access-control-allow-methods"] == "GET, HEAD, OPTIONS"
        assert headers["access-control-allow-headers"] == "X-Token"
        assert headers["access-control-max-age"] == "600"


@pytest.fixture
def site(temp_dir):
    public = temp_dir / "public"
    (public / "docs").mkdir(parents=True)
    (public / "index.html").write_text("<h1>home</h1>")
    (public / "app.js").write_text("console.log(1)")
    (public / "docs" / "index.html").write_text("docs")
    (temp_dir / "shell.html").write_text("shell")
    return temp_dir


@pytest.mark.integration
class TestStaticServing:
    def test_directory_route(self, build, site):
        built = build(**{"server.static": [str(site / "public")]})
        response = built.client.get("/app.js")
        assert response.status_code == 200
        assert response.text == "console.log(1)"

    def test_index_html(self, build, site):
        built = build(**{"server.static": [str(site / "public")]})
        assert built.client.get("/").text == "<h1>home</h1>"
        assert built.client.get("/docs/").text == "docs"

    def test_prefixed_route(self, build, site):
        built = build(
            **{"server.static": [{"route": "/assets", "path": str(site / "public")}]}
        )
        assert built.client.get("/assets/app.js").text == "console.log(1)"
        assert built.client.get("/app.js").status_code == 404

    def test_missing_file_falls_through(self, build, site):
        built = build(**{"server.static": [str(site / "public")]})
        built.router.add_api_route("/api/ping", lambda: {"pong": True})
        assert built.client.get("/api/ping").json() == {"pong": True}

    def test_traversal_not_served(self, build, site):
        built = build(**{"server.static": [str(site / "public")]})
        response = built.client.get("/..%2Fshell.html")
        assert response.text != "shell"

    def test_file_route(self, build, site):
        built = build(
            **{
                "server.static": [
                    {"route": "/app", "path": str(site / "shell.html"), "file": True}
                ]
            }
        )
        assert built.client.get("/app").text == "shell"
        assert built.client.get("/app/deep/link").text == "shell"

    def test_last_declared_route_checked_first(self, build, site):
        built = build(
            **{
                "server.static": [
                    {"route": "/", "path": str(site / "shell.html"), "file": True},
                    str(site / "public"),
                ]
            }
        )
        assert built.client.get("/app.js").text == "console.log(1)"
        assert built.client.get("/missing").text == "shell"

    def test_static_bypasses_no_cache(self, build, site):
        built = build(**{"server.static": [str(site / "public")]})
        response = built.client.get("/app.js")
        assert response.headers.get("pragma") != NO_CACHE_HEADERS["pragma"]

    def test_post_passes_through(self, build, site):
        built = build(**{"server.static": [str(site / "public")]})
        built.router.add_api_route("/app.js", lambda: {"posted": True}, methods=["POST"])
        assert built.client.post("/app.js").json() == {"posted": True}

    def test_cors(self, build, site):
        built = build(
            **{
                "server.static": [
                    {
                        "route": "/",
                        "path": str(site / "public"),
                        "cors": {"allow_origin": "https://example.com", "max_age": 60},
                    }
                ]
            }
        )
        response = built.client.get("/app.js")
        assert response.headers["access-control-allow-origin"] == "https://example.com"

        preflight = built.client.options("/app.js")
        assert preflight.status_code == 204
        assert preflight.headers["access-control-max-age"] == "60"

    def test_gated_until_started(self, build, site):
        built = build(started=False, **{"server.static": [str(site / "public")]})
        assert built.client.get("/app.js").status_code == 503
