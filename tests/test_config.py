from textile_ledger.config import DEFAULT_MODEL, DEFAULT_TEMPERATURE, Settings


def test_defaults_without_env(tmp_path):
    s = Settings.load(env_file=tmp_path / "missing.env")
    assert s.api_key is None
    assert s.model == DEFAULT_MODEL
    assert s.temperature == DEFAULT_TEMPERATURE
    assert s.log_level == "INFO"


def test_env_file_is_read(tmp_path, monkeypatch):
    env = tmp_path / "ledger.env"
    env.write_text("GEMINI_API_KEY=from-file\nTEXTILE_LEDGER_MODEL=gemini-test\n", encoding="utf-8")
    monkeypatch.setenv("TEXTILE_LEDGER_LOG_LEVEL", "debug")

    s = Settings.load(env_file=env)
    assert s.api_key == "from-file"
    assert s.model == "gemini-test"
    assert s.log_level == "DEBUG"


def test_real_env_wins_over_file(tmp_path, monkeypatch):
    env = tmp_path / "ledger.env"
    env.write_text("GEMINI_API_KEY=from-file\n", encoding="utf-8")
    monkeypatch.setenv("GEMINI_API_KEY", "from-env")
    assert Settings.load(env_file=env).api_key == "from-env"


def test_fallback_key_names_and_bad_temperature(tmp_path, monkeypatch):
    monkeypatch.setenv("API_KEY", "legacy")
    monkeypatch.setenv("TEXTILE_LEDGER_TEMPERATURE", "warm")
    s = Settings.load(env_file=tmp_path / "missing.env")
    assert s.api_key == "legacy"
    assert s.temperature == DEFAULT_TEMPERATURE
