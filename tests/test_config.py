import pytest

from spotix import config


def test_complete_config_passes():
    config.validate_config()


@pytest.mark.parametrize("name", config.REQUIRED_SETTINGS)
def test_missing_secret_fails_fast(monkeypatch, name):
    monkeypatch.setattr(config, name, None)

    with pytest.raises(RuntimeError, match=name):
        config.validate_config()


def test_all_missing_are_reported(monkeypatch):
    monkeypatch.setattr(config, "PAYSTACK_SECRET_KEY", "")
    monkeypatch.setattr(config, "AUTH_SECRET_KEY", None)

    with pytest.raises(RuntimeError) as exc:
        config.validate_config()
    assert "PAYSTACK_SECRET_KEY" in str(exc.value)
    assert "AUTH_SECRET_KEY" in str(exc.value)
