import pytest


@pytest.fixture(autouse=True)
def token_log_path(tmp_path, monkeypatch):
    log_path = tmp_path / "token_usage.json"
    monkeypatch.setenv("TOKEN_USAGE_LOG_PATH", str(log_path))
    monkeypatch.delenv("TOKEN_USAGE_LIMIT", raising=False)
    return log_path
