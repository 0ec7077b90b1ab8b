import pytest
from pydantic import ValidationError

from throttle.settings import BucketSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("BUCKET_RATE", "BUCKET_CAPACITY", "BUCKET_INITIAL_TOKENS"):
        monkeypatch.delenv(name, raising=False)


class TestBucketSettings:
    def test_defaults(self):
        settings = BucketSettings()
        assert settings.rate == 10.0
        assert settings.capacity == 10
        assert settings.initial_tokens is None

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BUCKET_RATE", "2.5")
        monkeypatch.setenv("BUCKET_CAPACITY", "40")
        monkeypatch.setenv("BUCKET_INITIAL_TOKENS", "7")
        settings = BucketSettings()
        assert settings.rate == 2.5
        assert settings.capacity == 40
        assert settings.initial_tokens == 7

    def test_zero_values_accepted(self):
        settings = BucketSettings(rate=0, capacity=0, initial_tokens=0)
        assert settings.rate == 0
        assert settings.capacity == 0

    def test_negative_rate_rejected(self):
        with pytest.raises(ValidationError, match="rate"):
            BucketSettings(rate=-1)

    def test_negative_capacity_rejected(self, monkeypatch):
        monkeypatch.setenv("BUCKET_CAPACITY", "-5")
        with pytest.raises(ValidationError, match="capacity"):
            BucketSettings()

    def test_negative_initial_tokens_rejected(self):
        with pytest.raises(ValidationError, match="initial_tokens"):
            BucketSettings(initial_tokens=-1)

    def test_non_integer_capacity_rejected(self):
        with pytest.raises(ValidationError, match="capacity"):
            BucketSettings(capacity="lots")
