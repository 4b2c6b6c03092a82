"""Unit tests for origin allow-list and same-site checks."""

import pytest

from herbario.api.middleware.origin_guard import check_request_origin, origin_of

ALLOWED = ["http://localhost:3000", "https://herbario.example.org"]


class TestOriginOf:

    @pytest.mark.parametrize(
        "url,expected",
        [
            ("http://localhost:3000/form?x=1", "http://localhost:3000"),
            ("https://herbario.example.org/admin/", "https://herbario.example.org"),
            ("https://HERBARIO.example.org", "https://herbario.example.org"),
            ("ftp://herbario.example.org/", None),
            ("not a url", None),
            ("http://[::1", None),
            ("", None),
        ],
    )
    def test_origin_of(self, url, expected):
        assert origin_of(url) == expected


class TestCheckRequestOrigin:

    def test_allowed_origin(self):
        assert check_request_origin("POST", "http://localhost:3000", None, ALLOWED) is None

    def test_trailing_slash_on_origin(self):
        assert check_request_origin("PUT", "http://localhost:3000/", None, ALLOWED) is None

    @pytest.mark.parametrize("method", ["GET", "POST", "PUT", "DELETE"])
    def test_foreign_origin_rejected_for_any_method(self, method):
        reason = check_request_origin(method, "https://evil.example", None, ALLOWED)

        assert reason == "origin_not_allowed"

    def test_foreign_origin_wins_over_allowed_referer(self):
        reason = check_request_origin(
            "POST",
            "https://evil.example",
            "http://localhost:3000/form",
            ALLOWED,
        )

        assert reason == "origin_not_allowed"

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS"])
    def test_safe_methods_without_headers(self, method):
        assert check_request_origin(method, None, None, ALLOWED) is None

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE"])
    def test_unsafe_methods_need_proof_of_origin(self, method):
        assert check_request_origin(method, None, None, ALLOWED) == "origin_missing"

    def test_referer_fallback(self):
        referer = "https://herbario.example.org/contribuir"

        assert check_request_origin("POST", None, referer, ALLOWED) is None

    def test_foreign_referer(self):
        reason = check_request_origin("DELETE", None, "https://evil.example/page", ALLOWED)

        assert reason == "referer_not_allowed"

    def test_unparsable_referer(self):
        reason = check_request_origin("PUT", None, "::garbage::", ALLOWED)

        assert reason == "referer_unparsable"

    def test_port_matters(self):
        reason = check_request_origin("POST", "http://localhost:3001", None, ALLOWED)

        assert reason == "origin_not_allowed"
