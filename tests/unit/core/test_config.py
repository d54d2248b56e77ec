"""Unit tests for configuration dataclasses."""

import pytest

from wikiflow.core import BotPassword, ClientConfig, RetryPolicy, StreamConfig
from wikiflow.core.constants import EVENTSTREAMS_BASE_URL


class TestRetryPolicy:
    def test_delays_grow_and_cap(self):
        policy = RetryPolicy(base_delay=1.0, multiplier=2.0, max_delay=5.0, jitter=0.0)
        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_jitter_stays_in_band(self):
        policy = RetryPolicy(base_delay=10.0, jitter=0.2)
        for _ in range(50):
            assert 8.0 <= policy.delay_for(1) <= 12.0

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_attempts": 0},
            {"base_delay": -1},
            {"multiplier": 0.5},
            {"jitter": 1.0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig(api_url="https://en.wikipedia.org/w/api.php")
        assert config.max_concurrency == 4
        assert config.maxlag == 5
        assert config.retry == RetryPolicy()
        assert config.credentials is None

    @pytest.mark.parametrize(
        "url",
        ["ftp://example.org/api.php", "https://example.org/w/api.php?format=json"],
    )
    def test_bad_url_rejected(self, url):
        with pytest.raises(ValueError):
            ClientConfig(api_url=url)

    def test_concurrency_must_be_positive(self):
        with pytest.raises(ValueError):
            ClientConfig(api_url="https://example.org/w/api.php", max_concurrency=0)

    def test_bot_password_repr_hides_password(self):
        credentials = BotPassword("Example@bot", "s3cret")
        assert "s3cret" not in repr(credentials)


class TestStreamConfig:
    def test_default_stream_is_recentchange(self):
        assert StreamConfig().stream_id == "recentchange"

    def test_for_stream(self):
        config = StreamConfig.for_stream("revision-score", heartbeat_timeout=5.0)
        assert config.url == f"{EVENTSTREAMS_BASE_URL}/revision-score"
        assert config.stream_id == "revision-score"
        assert config.heartbeat_timeout == 5.0
