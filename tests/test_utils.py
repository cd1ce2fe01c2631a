import pytest

from secretlink import utils


class TestParsers:

    @pytest.mark.parametrize("raw, minutes", [
        ("15", 15), ("-5", -5), ("30m", 30), ("2H", 120), ("1d", 1440), ("1.5h", 90), (45, 45),
    ])
    def test_parse_minutes(self, raw, minutes):
        assert utils.parse_minutes(raw) == minutes

    @pytest.mark.parametrize("raw", ["", "soon", "10s", "h"])
    def test_parse_minutes_rejects(self, raw):
        with pytest.raises(ValueError):
            utils.parse_minutes(raw)

    @pytest.mark.parametrize("raw, size", [("8192", 8192), ("8kb", 8192), ("1MB", 1048576), ("512 b", 512)])
    def test_parse_file_size(self, raw, size):
        assert utils.parse_file_size(raw) == size

    @pytest.mark.parametrize("raw, value", [
        ("1", True), ("true", True), ("Yes", True), ("on", True),
        ("0", False), ("false", False), ("", False), ("off", False), (True, True),
    ])
    def test_parse_bool(self, raw, value):
        assert utils.parse_bool(raw) is value

    def test_parse_bool_rejects(self):
        with pytest.raises(ValueError):
            utils.parse_bool("maybe")

    def test_parse_disks(self):
        assert utils.parse_disks("media=/data/media; local = /data/app,") == {
            "media": "/data/media",
            "local": "/data/app",
        }

    @pytest.mark.parametrize("raw", ["media", "=/data", "media="])
    def test_parse_disks_rejects(self, raw):
        with pytest.raises(ValueError):
            utils.parse_disks(raw)


class TestUrls:

    @pytest.mark.parametrize("value, expected", [
        ("http://a/b", True), ("HTTPS://a", True), ("/path", False), ("ftp://a", False), ("media/http://x", False),
    ])
    def test_is_absolute_url(self, value, expected):
        assert utils.is_absolute_url(value) is expected

    def test_url_host(self):
        assert utils.url_host("https://Example.COM:8443/x") == "example.com"
        assert utils.url_host("http:///x") is None
        assert utils.url_host("http://[::1") is None

    def test_token_fingerprint(self):
        assert utils.token_fingerprint("abc") == utils.token_fingerprint("abc")
        assert len(utils.token_fingerprint("abc")) == 64

    def test_format_time(self):
        assert utils.format_time(1530) == "1 days, 1 hours, 30 minutes"
