"""Ortam değişkeni yapılandırması unit testleri."""

from slotting.config import DEFAULT_CACHE_TTL, DEFAULT_REGION, load_settings


class TestLoadSettings:
    """Gereksiz / hatalı değerlerde varsayılana düşme."""

    def test_defaults(self, monkeypatch):
        for name in ("AWS_DEFAULT_REGION", "SLOTTING_TABLE_PREFIX", "DYNAMODB_ENDPOINT_URL",
                     "SLOTTING_CACHE_TTL", "SLOTTING_UTILIZATION_WEIGHT", "SLOTTING_LEVEL_2_MAX_WEIGHT"):
            monkeypatch.delenv(name, raising=False)
        settings = load_settings()
        assert settings.region == DEFAULT_REGION
        assert settings.endpoint_url is None
        assert settings.cache_ttl_seconds == DEFAULT_CACHE_TTL
        assert settings.scoring.utilization_weight == 2.0
        assert settings.scoring.level_max_weights["2"] == 1000.0

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("AWS_DEFAULT_REGION", "eu-west-1")
        monkeypatch.setenv("SLOTTING_TABLE_PREFIX", "dev-")
        monkeypatch.setenv("DYNAMODB_ENDPOINT_URL", "http://localhost:8000")
        monkeypatch.setenv("SLOTTING_TX_ATTEMPTS", "9")
        monkeypatch.setenv("SLOTTING_HEIGHT_WEIGHT", "4.5")
        monkeypatch.setenv("SLOTTING_LEVEL_2_MAX_WEIGHT", "1200")
        settings = load_settings()
        assert settings.region == "eu-west-1"
        assert settings.table_prefix == "dev-"
        assert settings.endpoint_url == "http://localhost:8000"
        assert settings.max_transaction_attempts == 9
        assert settings.scoring.height_weight == 4.5
        assert settings.scoring.level_max_weights["2"] == 1200.0

    def test_malformed_value_falls_back(self, monkeypatch):
        monkeypatch.setenv("SLOTTING_CACHE_TTL", "otuz")
        monkeypatch.setenv("SLOTTING_TX_ATTEMPTS", "0")
        settings = load_settings()
        assert settings.cache_ttl_seconds == DEFAULT_CACHE_TTL
        assert settings.max_transaction_attempts == 1
