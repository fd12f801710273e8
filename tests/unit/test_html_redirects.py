"""
Unit tests for client-side redirect extraction.
"""

import pytest

from qrious.services.html_redirects import (
    JavaScriptRedirectExtractor, MetaRefreshExtractor, find_client_redirect
)
from qrious.services.redirect_interfaces import RedirectType


class TestMetaRefresh:

    @pytest.fixture
    def extractor(self):
        return MetaRefreshExtractor()

    def test_standard_tag(self, extractor):
        html = '<meta http-equiv="refresh" content="0; url=https://example.com/next">'
        assert extractor.extract(html) == "https://example.com/next"

    def test_attribute_order_and_case(self, extractor):
        html = "<META CONTENT='5;URL=https://example.com/x' HTTP-EQUIV='Refresh'>"
        assert extractor.extract(html) == "https://example.com/x"

    def test_quoted_url_inside_content(self, extractor):
        html = """<meta http-equiv="refresh" content="0;url='https://example.com/q'">"""
        assert extractor.extract(html) == "https://example.com/q"

    def test_entities_are_unescaped(self, extractor):
        html = '<meta http-equiv="refresh" content="0; url=https://example.com/?a=1&amp;b=2">'
        assert extractor.extract(html) == "https://example.com/?a=1&b=2"

    def test_refresh_without_url(self, extractor):
        assert extractor.extract('<meta http-equiv="refresh" content="30">') is None

    def test_other_meta_tags_ignored(self, extractor):
        html = '<meta name="description" content="url=https://example.com/">'
        assert extractor.extract(html) is None


class TestJavaScript:

    @pytest.fixture
    def extractor(self):
        return JavaScriptRedirectExtractor()

    @pytest.mark.parametrize("script,expected", [
        ('window.location.href = "https://a.example/";', "https://a.example/"),
        ("window.location.replace('https://b.example/')", "https://b.example/"),
        ('window.location="https://c.example/"', "https://c.example/"),
        ("location.href = '/relative'", "/relative"),
        ('location.replace("https://d.example/")', "https://d.example/"),
    ])
    def test_patterns(self, extractor, script, expected):
        assert extractor.extract(f"<script>{script}</script>") == expected

    def test_first_pattern_wins(self, extractor):
        html = (
            "<script>location.href='https://second.example/';"
            "window.location.href='https://first.example/';</script>"
        )
        assert extractor.extract(html) == "https://first.example/"

    def test_dynamic_target_not_detected(self, extractor):
        assert extractor.extract("<script>window.location.href = base + path;</script>") is None


class TestFindClientRedirect:

    def test_meta_refresh_before_javascript(self):
        html = (
            '<meta http-equiv="refresh" content="0; url=https://meta.example/">'
            "<script>window.location.href='https://js.example/'</script>"
        )
        assert find_client_redirect(html) == (RedirectType.META_REFRESH, "https://meta.example/")

    def test_javascript_only(self):
        html = "<script>window.location.replace('https://js.example/')</script>"
        assert find_client_redirect(html) == (RedirectType.JAVASCRIPT, "https://js.example/")

    @pytest.mark.parametrize("content", [None, "", "<html><body>Hello</body></html>"])
    def test_nothing_found(self, content):
        assert find_client_redirect(content) is None
