"""Unit tests for honeypot bot detection and severity classification."""

import pytest

from services.honeypot import classify_severity, detect_bot

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class TestDetectBot:
    def test_missing_user_agent_is_bot(self):
        assert detect_bot(None) == (True, None)
        assert detect_bot("") == (True, None)

    @pytest.mark.parametrize(
        "user_agent,name",
        [
            ("Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)", "Googlebot"),
            ("Mozilla/5.0 AppleWebKit/537.36 (KHTML, like Gecko; compatible; GPTBot/1.0)", "GPTBot"),
            ("curl/8.4.0", "curl"),
            ("python-requests/2.31.0", "python-requests"),
            ("sqlmap/1.7", "sqlmap"),
        ],
    )
    def test_known_signatures(self, user_agent, name):
        assert detect_bot(user_agent) == (True, name)

    def test_generic_keyword(self):
        assert detect_bot("AcmeCrawler/1.0") == (True, None)

    def test_browser(self):
        assert detect_bot(CHROME_UA) == (False, None)


class TestClassifySeverity:
    CRITICAL = ["wp-admin", ".env", "phpmyadmin"]

    def test_exact_match(self):
        assert classify_severity("/wp-admin", self.CRITICAL) == "critical"

    def test_nested_path(self):
        assert classify_severity("/wp-admin/setup-config.php", self.CRITICAL) == "critical"

    def test_query_string_ignored(self):
        assert classify_severity("/.env?debug=1", self.CRITICAL) == "critical"

    def test_case_insensitive(self):
        assert classify_severity("/PhpMyAdmin/", self.CRITICAL) == "critical"

    def test_prefix_of_word_is_not_critical(self):
        assert classify_severity("/wp-administrator", self.CRITICAL) == "warning"

    def test_other_paths_warn(self):
        assert classify_severity("/cgi-bin/test", self.CRITICAL) == "warning"
