import pytest
from travel_expense_mcp import otel as otel_mod


@pytest.fixture(autouse=True)
def _reset_otel_state(monkeypatch: pytest.MonkeyPatch):
    otel_mod._otel_initialized = False
    otel_mod._tracer_provider = None
    monkeypatch.delenv("OTEL_EXPORTER_OTLP_HEADERS", raising=False)
    yield
    otel_mod._otel_initialized = False
    otel_mod._tracer_provider = None


def test_disabled_by_default():
    assert otel_mod.is_otel_enabled() is False
    assert otel_mod.init_otel() is False


@pytest.mark.parametrize("value", ["1", "true", "YES", " on "])
def test_truthy_values_enable(monkeypatch, value):
    monkeypatch.setenv("ENABLE_OTEL", value)
    assert otel_mod.is_otel_enabled() is True


def test_parse_otlp_headers():
    headers = otel_mod.parse_otlp_headers("Authorization=Bearer%20abc, x-dataset=traces,bad,=x")

    assert headers == {"Authorization": "Bearer abc", "x-dataset": "traces"}
    assert otel_mod.parse_otlp_headers(None) == {}


def test_instrument_app_is_noop_when_uninitialised():
    app = object()
    assert otel_mod.instrument_app(app) is app
