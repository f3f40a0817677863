import pytest
from fastapi.testclient import TestClient

from camouflage.errors import ConfigurationError
from camouflage.server import create_app


class TestCreateApp:
    def test_healthz_without_rewriting(self):
        client = TestClient(create_app(static_dir=""))

        response = client.get("http://example.org/healthz")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_invalid_options_fail_before_first_request(self):
        with pytest.raises(ConfigurationError):
            create_app({"url": "/not/absolute"}, static_dir="")

    def test_static_files_are_rewritten(self, tmp_path):
        (tmp_path / "index.html").write_text(
            '<a href="http://example.com/base/page.html">page</a>'
        )
        app = create_app(
            {"url": "http://example.com/base/", "rewriteContent": True},
            static_dir=str(tmp_path),
        )
        client = TestClient(app)

        response = client.get("http://example.org/")

        assert response.status_code == 200
        assert response.text == '<a href="http://example.org/page.html">page</a>'
        assert "content-length" not in response.headers

    def test_healthz_through_rewrite(self):
        client = TestClient(
            create_app({"url": "http://example.com/base/"}, static_dir="")
        )

        response = client.get("http://example.org/healthz")

        assert response.status_code == 200
