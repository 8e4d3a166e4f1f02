"""
Tests for configuration and WebSocket URL rewriting.

Run with: pytest tests/test_config.py -v
"""
import pytest

from chrome_capture.config import DEFAULT_PORT, CaptureConfig, rewrite_ws_url


# =============================================================================
# URL rewriting
# =============================================================================

class TestRewriteWsUrl:
    """Tests for rewrite_ws_url."""

    def test_rewrites_host_and_port(self):
        """Reported host and port are replaced, path kept."""
        assert rewrite_ws_url(
            "ws://localhost:9222/devtools/page/ABC", "192.168.1.20", 9333
        ) == "ws://192.168.1.20:9333/devtools/page/ABC"

    def test_devtools_page_url(self):
        """A discovery URL on another port is pointed at the configured endpoint."""
        assert rewrite_ws_url(
            "ws://localhost:9999/devtools/page/abc", "127.0.0.1", 9222
        ) == "ws://127.0.0.1:9222/devtools/page/abc"

    def test_defaults(self):
        """Without overrides the default host and port are used."""
        assert rewrite_ws_url("ws://0.0.0.0:1234/devtools/browser/x") == "ws://127.0.0.1:9222/devtools/browser/x"

    def test_url_without_port(self):
        """A URL without an explicit port gains the configured one."""
        assert rewrite_ws_url("wss://chrome.internal/devtools/page/1", "h", 1) == "wss://h:1/devtools/page/1"

    def test_query_preserved(self):
        """Query strings survive the rewrite."""
        assert rewrite_ws_url("ws://a:1/p?x=1", "b", 2) == "ws://b:2/p?x=1"

    def test_userinfo_preserved(self):
        """Credentials in the reported URL are carried over."""
        assert rewrite_ws_url(
            "ws://user:secret@localhost:9999/devtools/page/abc", "127.0.0.1", 9222
        ) == "ws://user:secret@127.0.0.1:9222/devtools/page/abc"

    def test_ipv6_host_bracketed(self):
        """IPv6 hosts are bracketed in the netloc."""
        assert rewrite_ws_url("ws://localhost:9222/p", "::1", 9222) == "ws://[::1]:9222/p"

    @pytest.mark.parametrize("value", [None, "", "not a url", "/devtools/page/1", "ws://host:notaport/x"])
    def test_unparseable_input_returned_unchanged(self, value):
        """Missing or malformed input is passed through as-is."""
        assert rewrite_ws_url(value, "h", 1) == value


# =============================================================================
# CaptureConfig
# =============================================================================

class TestCaptureConfig:
    """Tests for environment-driven configuration."""

    def test_from_env(self, monkeypatch, tmp_path):
        """Host, port and capture dir come from the environment."""
        monkeypatch.setenv("CHROME_WS_HOST", "chrome")
        monkeypatch.setenv("CHROME_WS_PORT", "9333")
        monkeypatch.setenv("CHROME_CAPTURE_DIR", str(tmp_path))

        config = CaptureConfig.from_env()

        assert config.host == "chrome"
        assert config.port == 9333
        assert config.capture_parent == str(tmp_path)
        assert config.http_base == "http://chrome:9333"

    def test_bad_port_falls_back(self, monkeypatch):
        """A non-numeric port is ignored."""
        monkeypatch.setenv("CHROME_WS_PORT", "abc")

        assert CaptureConfig.from_env().port == DEFAULT_PORT

    def test_overrides_win(self, monkeypatch):
        """Explicit overrides beat the environment."""
        monkeypatch.setenv("CHROME_WS_HOST", "chrome")

        config = CaptureConfig.from_env(host="other", debug=True)

        assert config.host == "other"
        assert config.debug is True

    def test_rewrite_uses_config(self):
        """CaptureConfig.rewrite applies its own host and port."""
        config = CaptureConfig(host="h", port=5)

        assert config.rewrite("ws://x:1/p") == "ws://h:5/p"
