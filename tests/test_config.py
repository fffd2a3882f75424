from wotc_portal_bot.config import Config, DevelopmentConfig, ProductionConfig, get_config


def test_defaults(monkeypatch):
    monkeypatch.delenv("MAX_CONCURRENT_JOBS", raising=False)
    monkeypatch.delenv("POLL_INTERVAL_SECONDS", raising=False)

    cfg = Config()

    assert cfg.MAX_CONCURRENT_JOBS == 5
    assert cfg.POLL_INTERVAL_SECONDS == 60.0
    assert cfg.STALE_JOB_TIMEOUT_MINUTES == 60.0


def test_environment_overrides_and_bad_values(monkeypatch):
    monkeypatch.setenv("MAX_CONCURRENT_JOBS", "9")
    monkeypatch.setenv("RETRY_DELAY_BASE_SECONDS", "not-a-number")
    monkeypatch.setenv("HEADLESS", "off")

    cfg = Config()

    assert cfg.MAX_CONCURRENT_JOBS == 9
    assert cfg.RETRY_DELAY_BASE_SECONDS == 5.0
    assert cfg.HEADLESS is False


def test_portal_credentials_from_environment(monkeypatch):
    monkeypatch.setenv("AZ_PORTAL_USERNAME", "bot@example.com")
    monkeypatch.setenv("AZ_PORTAL_PASSWORD", "s3cret")
    monkeypatch.delenv("TX_PORTAL_USERNAME", raising=False)
    monkeypatch.delenv("TX_PORTAL_PASSWORD", raising=False)

    cfg = Config()

    assert cfg.portal_credentials("az") == {"username": "bot@example.com", "password": "s3cret"}
    assert cfg.portal_credentials("TX") == {"username": "", "password": ""}


def test_to_dict_masks_secrets(monkeypatch):
    monkeypatch.setenv("WEBHOOK_SECRET", "shh")
    monkeypatch.delenv("CSDC_PIN", raising=False)

    values = Config().to_dict()

    assert values["WEBHOOK_SECRET"] == "***"
    assert values["CSDC_PIN"] == ""


def test_environment_selection(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("POLL_INTERVAL_SECONDS", raising=False)

    monkeypatch.setenv("WOTC_BOT_ENV", "development")
    dev = get_config()
    assert isinstance(dev, DevelopmentConfig)
    assert dev.LOG_LEVEL == "DEBUG"
    assert dev.POLL_INTERVAL_SECONDS == 10.0

    monkeypatch.setenv("WOTC_BOT_ENV", "production")
    assert isinstance(get_config(), ProductionConfig)

    monkeypatch.delenv("WOTC_BOT_ENV")
    assert type(get_config()) is Config
