"""Тесты ClientConfig."""

import pytest

from http_fetch.core.config import DEFAULT_MAX_REDIRECTS, DEFAULT_TIMEOUT, ClientConfig


def test_defaults():
    config = ClientConfig()

    assert config.timeout == DEFAULT_TIMEOUT
    assert config.max_redirects == DEFAULT_MAX_REDIRECTS
    assert config.allow_redirects is True
    assert config.verify_ssl is True
    assert config.logging is None


def test_create_accepts_plain_dicts():
    config = ClientConfig.create(timeout=5, headers={"User-Agent": "svc/1.0"})

    assert config.timeout == 5.0
    assert config.headers["User-Agent"] == "svc/1.0"


def test_headers_are_frozen():
    config = ClientConfig.create(headers={"A": "1"})

    with pytest.raises(TypeError):
        config.headers["B"] = "2"


def test_config_is_immutable():
    config = ClientConfig()

    with pytest.raises(Exception):  # frozen dataclass
        config.timeout = 1


@pytest.mark.parametrize("kwargs,match", [
    ({"timeout": 0}, "timeout must be positive"),
    ({"timeout": -1}, "timeout must be positive"),
    ({"max_redirects": -1}, "max_redirects must be non-negative"),
])
def test_validation(kwargs, match):
    with pytest.raises(ValueError, match=match):
        ClientConfig(**kwargs)


def test_with_timeout_returns_new_config():
    config = ClientConfig()
    updated = config.with_timeout(2)

    assert updated.timeout == 2.0
    assert config.timeout == DEFAULT_TIMEOUT


def test_with_headers_merges():
    config = ClientConfig.create(headers={"A": "1"}).with_headers({"B": "2"})

    assert dict(config.headers) == {"A": "1", "B": "2"}
