"""
Unit tests for webhook destination validation
"""

import pytest

from webhook_caller.config.settings import DEFAULT_ALLOWED_DOMAINS
from webhook_caller.services.destination_validator import (
    BLOCKED_ADDRESS,
    HTTPS_ONLY,
    INVALID_FORMAT,
    DestinationValidator,
    is_blocked_host,
)


@pytest.fixture
def validator() -> DestinationValidator:
    return DestinationValidator()


class TestSchemeCheck:
    @pytest.mark.parametrize(
        "url",
        [
            "http://hooks.slack.com/services/x",
            "ftp://hooks.slack.com/services/x",
            "ws://hooks.slack.com/services/x",
            "wss://hooks.slack.com/services/x",
            "file:///etc/passwd",
            "hooks.slack.com/services/x",
        ],
    )
    def test_non_https_rejected(self, validator, url):
        verdict = validator.validate(url)

        assert verdict.valid is False
        assert verdict.reason == HTTPS_ONLY
        assert verdict.url is None

    def test_scheme_is_case_insensitive(self, validator):
        verdict = validator.validate("HTTPS://hooks.slack.com/services/x")

        assert verdict.valid is True


class TestFormatCheck:
    @pytest.mark.parametrize("url", ["", "   ", None, 42, ["https://hooks.slack.com"]])
    def test_non_string_or_empty_rejected(self, validator, url):
        verdict = validator.validate(url)

        assert verdict.valid is False
        assert verdict.reason == INVALID_FORMAT

    def test_invalid_port_rejected(self, validator):
        verdict = validator.validate("https://hooks.slack.com:notaport/services/x")

        assert verdict.valid is False
        assert verdict.reason == INVALID_FORMAT

    def test_missing_host_rejected(self, validator):
        verdict = validator.validate("https:///services/x")

        assert verdict.valid is False
        assert verdict.reason == INVALID_FORMAT


class TestBlocklist:
    @pytest.mark.parametrize(
        "host",
        [
            "localhost",
            "LOCALHOST",
            "127.0.0.1",
            "127.255.0.9",
            "10.0.0.5",
            "172.16.0.1",
            "172.24.10.10",
            "172.31.255.255",
            "192.168.1.1",
            "169.254.1.1",
            "169.254.169.254",
            "0.0.0.0",
            "metadata.google.internal",
            "metadata.aws.internal",
        ],
    )
    def test_blocked_hosts(self, validator, host):
        verdict = validator.validate(f"https://{host}/latest/meta-data")

        assert verdict.valid is False
        assert verdict.reason == BLOCKED_ADDRESS

    @pytest.mark.parametrize("host", ["[::1]", "[fe80::1]", "[fc00::1]", "[fd00::abcd]"])
    def test_blocked_ipv6_hosts(self, validator, host):
        verdict = validator.validate(f"https://{host}/hook")

        assert verdict.valid is False
        assert verdict.reason == BLOCKED_ADDRESS

    def test_blocklist_checked_before_allowlist(self):
        validator = DestinationValidator(
            allowed_domains=["10.0.0.5", "localhost", "metadata.google.internal"]
        )

        for host in ("10.0.0.5", "localhost", "metadata.google.internal"):
            verdict = validator.validate(f"https://{host}/hook")
            assert verdict.reason == BLOCKED_ADDRESS

    def test_trailing_dot_does_not_bypass_blocklist(self, validator):
        verdict = validator.validate("https://localhost./hook")

        assert verdict.reason == BLOCKED_ADDRESS

    def test_adjacent_private_range_is_not_blocked(self):
        # 172.32/16 is public address space
        assert is_blocked_host("172.32.0.1") is False
        assert is_blocked_host("172.15.0.1") is False


class TestAllowlist:
    @pytest.mark.parametrize(
        "url",
        [
            "https://hooks.slack.com/services/T000/B000/XXXX",
            "https://discord.com/api/webhooks/1/abc",
            "https://hooks.zapier.com/hooks/catch/1/abc",
            "https://maker.ifttt.com/trigger/event/with/key/k",
            "https://webhook.site/0000-1111",
            "https://HOOKS.SLACK.COM/services/x",
            "https://hooks.slack.com:443/services/x",
        ],
    )
    def test_allowlisted_domains_accepted(self, validator, url):
        verdict = validator.validate(url)

        assert verdict.valid is True
        assert verdict.reason is None
        assert verdict.url is not None

    def test_subdomain_of_allowlisted_domain_accepted(self, validator):
        verdict = validator.validate("https://sub.hooks.slack.com/services/x")

        assert verdict.valid is True
        assert verdict.url.host == "sub.hooks.slack.com"

    @pytest.mark.parametrize(
        "host",
        [
            "slack.com",  # parent of an allowlisted entry
            "evilhooks.slack.com",
            "hooks.slack.com.evil.example",
            "example.com",
        ],
    )
    def test_unlisted_domains_rejected_with_host_and_allowlist(self, validator, host):
        verdict = validator.validate(f"https://{host}/services/x")

        assert verdict.valid is False
        assert f"Domain '{host}'" in verdict.reason
        assert "Allowed domains: " + ", ".join(DEFAULT_ALLOWED_DOMAINS) in verdict.reason

    def test_userinfo_does_not_spoof_host(self, validator):
        verdict = validator.validate("https://hooks.slack.com@attacker.example/x")

        assert verdict.valid is False
        assert "Domain 'attacker.example'" in verdict.reason

    def test_public_ip_not_allowlisted(self, validator):
        verdict = validator.validate("https://172.32.0.1/hook")

        assert verdict.valid is False
        assert "Domain '172.32.0.1'" in verdict.reason

    def test_custom_allowlist_replaces_default(self):
        validator = DestinationValidator(allowed_domains=["Hooks.Example.com."])

        assert validator.validate("https://hooks.example.com/x").valid is True
        assert validator.validate("https://hooks.slack.com/x").valid is False

    def test_parsed_url_preserved(self, validator):
        verdict = validator.validate("https://hooks.slack.com/services/x?token=abc")

        assert verdict.url.scheme == "https"
        assert verdict.url.path == "/services/x"
        assert verdict.url.params["token"] == "abc"
