from nhl_ingest.config.settings import load_settings, settings
from nhl_ingest.logging.setup import sensitive_data_filter


def test_invalid_log_level_falls_back_to_info(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "chatty")
    assert load_settings().log_level == "INFO"


def test_log_level_is_upper_cased(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    assert load_settings().log_level == "DEBUG"


def test_environment_overrides_defaults(monkeypatch):
    monkeypatch.setenv("REQUESTS_PER_MINUTE", "60")
    monkeypatch.setenv("ACTIVE_GRACE_YEARS", "2")
    loaded = load_settings()
    assert loaded.requests_per_minute == 60
    assert loaded.active_grace_years == 2
    assert loaded.batch_size == 50


def test_filter_masks_storage_key_and_sensitive_extras(monkeypatch):
    monkeypatch.setattr(settings, "supabase_key", "super-secret-key")
    record = {
        "message": "Connecting with super-secret-key",
        "extra": {"api_key": "abc", "table": "players", "nested": {"token": "t"}},
    }

    assert sensitive_data_filter(record) is True
    assert record["message"] == "Connecting with ********"
    assert record["extra"] == {
        "api_key": "********",
        "table": "players",
        "nested": {"token": "********"},
    }
