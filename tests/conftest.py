import os

import pytest

ENV_PREFIXES = ("CONCUR_", "TRIPIT_")
ENV_NAMES = ("MCP_API_TOKEN", "SENTRY_DSN", "ENABLE_OTEL", "ENABLE_CORS", "PORT", "LOG_LEVEL")


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch, tmp_path):
    for name in list(os.environ):
        if name.startswith(ENV_PREFIXES) or name in ENV_NAMES:
            monkeypatch.delenv(name, raising=False)
    # keep a developer's ./.env out of Settings()
    monkeypatch.chdir(tmp_path)
