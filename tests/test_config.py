import pytest

from src.core.exceptions import ConfigurationError
from src.shared.config import load_settings


def test_defaults(settings):
    assert settings.R2_BUCKET_NAME == "comics"
    assert settings.R2_ORDERS_BUCKET == "orders"
    assert settings.PROJECT_ID == "test-project"
    assert settings.queue_names == ["orders", "confirmation_emails", "confirmations"]
    assert settings.QUEUE_RETRY_LIMIT == 3
    assert settings.presigned_url_expiry_seconds == 24 * 3600
    assert settings.stale_file_max_age_seconds == 3600
    assert settings.R2_SECRET_ACCESS_KEY.get_secret_value() == "test-secret"
    assert "test-secret" not in repr(settings)


def test_project_id_fallback(monkeypatch):
    monkeypatch.delenv("GOOGLE_CLOUD_PROJECT", raising=False)
    monkeypatch.setenv("GCP_PROJECT_ID", "other-project")

    assert load_settings(env_file=None).PROJECT_ID == "other-project"


@pytest.mark.parametrize("mode", ["unset", "empty"])
def test_missing_credential_is_reported_by_name(monkeypatch, mode):
    if mode == "unset":
        monkeypatch.delenv("R2_ACCESS_KEY_ID")
    else:
        monkeypatch.setenv("R2_ACCESS_KEY_ID", "  ")

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(env_file=None)

    assert exc_info.value.missing == ["R2_ACCESS_KEY_ID"]
    assert exc_info.value.retriable is False


def test_all_missing_credentials_are_reported(monkeypatch):
    for name in ("R2_ACCOUNT_ID", "R2_ENDPOINT"):
        monkeypatch.delenv(name)

    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(env_file=None)

    assert exc_info.value.missing == ["R2_ACCOUNT_ID", "R2_ENDPOINT"]


@pytest.mark.parametrize("raw, expected", [("1", 5), ("20", 20), ("500", 100)])
def test_max_delivery_attempts_is_clamped(monkeypatch, raw, expected):
    monkeypatch.setenv("QUEUE_MAX_DELIVERY_ATTEMPTS", raw)

    assert load_settings(env_file=None).QUEUE_MAX_DELIVERY_ATTEMPTS == expected
