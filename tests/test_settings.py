from config.settings import Settings


def test_defaults(monkeypatch):
    for name in ("LLM_PROVIDER", "OFFER_ADVANCED_ANALYSIS", "REPORT_ID_PREFIX", "LLM_MAX_TOKENS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    cfg = Settings()
    assert cfg.LLM_PROVIDER == "mock"
    assert cfg.OFFER_ADVANCED_ANALYSIS is True
    assert cfg.REPORT_ID_PREFIX == "SCA"
    assert cfg.LLM_MAX_TOKENS == 2000
    assert cfg.LOG_LEVEL == "INFO"


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "anthropic")
    monkeypatch.setenv("OFFER_ADVANCED_ANALYSIS", "off")
    monkeypatch.setenv("LLM_REQUEST_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    cfg = Settings()
    assert cfg.LLM_PROVIDER == "anthropic"
    assert cfg.OFFER_ADVANCED_ANALYSIS is False
    assert cfg.LLM_REQUEST_TIMEOUT_SECONDS == 12.5
    assert cfg.LOG_LEVEL == "DEBUG"
