"""Tests for index_tail.config.WatchConfig."""

from __future__ import annotations

import re

import pytest

from index_tail.config import DEFAULT_WORKER_COMMAND, WatchConfig
from index_tail.exceptions import ConfigError
from index_tail.selector import Order


def test_from_options_defaults():
    config = WatchConfig.from_options("^a", "http://h/logs")

    assert config.pattern.pattern == "^a"
    assert config.order is Order.ASC
    assert config.scan_interval == 5
    assert config.refresh_interval == 300
    assert config.worker_command == DEFAULT_WORKER_COMMAND
    assert config.verify_tls is False
    assert config.stop_timeout is None


def test_from_options_accepts_compiled_pattern_and_order_strings():
    pattern = re.compile("log$")
    config = WatchConfig.from_options(pattern, "http://h/logs", order="DESC")
    assert config.pattern is pattern
    assert config.order is Order.DESC


def test_from_options_splits_worker_command():
    config = WatchConfig.from_options("a", "http://h", worker_command="bash '/opt/tail url.sh'")
    assert config.worker_command == ("bash", "/opt/tail url.sh")


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"pattern": "("}, "Invalid pattern"),
        ({"url": ""}, "listing URL is required"),
        ({"order": "newest"}, "Invalid order"),
        ({"worker_command": ""}, "worker command must not be empty"),
        ({"scan_interval": 0}, "scan_interval must be > 0"),
        ({"refresh_interval": -1}, "refresh_interval must be > 0"),
        ({"request_timeout": 0}, "request_timeout must be > 0"),
        ({"stop_timeout": -0.5}, "stop_timeout must be >= 0"),
    ],
)
def test_from_options_rejects_bad_values(kwargs, message):
    options = {"pattern": "a", "url": "http://h"}
    options.update(kwargs)
    with pytest.raises(ConfigError, match=message):
        WatchConfig.from_options(**options)


def test_config_error_is_a_value_error():
    with pytest.raises(ValueError):
        WatchConfig.from_options("[", "http://h")


class TestCredentials:
    def test_requires_both_parts(self):
        assert WatchConfig.from_options("a", "http://h", user="bob").credentials is None
        assert WatchConfig.from_options("a", "http://h", password="pw").credentials is None

    def test_pair_when_complete(self):
        config = WatchConfig.from_options("a", "http://h", user="bob", password="pw")
        assert config.credentials == ("bob", "pw")


class TestWorkerArgv:
    def test_minimal(self):
        config = WatchConfig.from_options("a", "http://h", worker_command=("tailurl",))
        argv = config.worker_argv("http://h/a.log")
        assert argv == ["tailurl", "-s", "5", "-f", "http://h/a.log"]

    def test_with_credentials_and_scan(self):
        config = WatchConfig.from_options(
            "a",
            "http://h",
            worker_command=("tailurl",),
            user="bob",
            password="pw",
            scan_interval=2,
        )
        assert config.worker_argv("http://h/a.log") == [
            "tailurl",
            "-u",
            "bob",
            "-p",
            "pw",
            "-s",
            "2",
            "-f",
            "http://h/a.log",
        ]

    def test_user_and_password_are_independent(self):
        config = WatchConfig.from_options("a", "http://h", worker_command=("t",), password="pw")
        assert config.worker_argv("u") == ["t", "-p", "pw", "-s", "5", "-f", "u"]
