from __future__ import annotations

from types import SimpleNamespace

import openai
import pytest

from loan_compare.config import DEFAULT_LOANS, DEFAULT_SETTINGS
from loan_compare.data_models import GlobalSettings
from loan_compare.engine import compute_many
from loan_compare.narrative import (
    CONNECTION_ERROR_MESSAGE,
    EMPTY_ANALYSIS_MESSAGE,
    MISSING_KEY_MESSAGE,
    NarrativeError,
    NarrativeService,
    build_analysis_prompt,
)


class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


@pytest.fixture
def results():
    return compute_many(DEFAULT_LOANS, DEFAULT_SETTINGS)


def test_prompt_lists_every_option(results):
    prompt = build_analysis_prompt(results, DEFAULT_SETTINGS)
    assert "OPCIÓN 1: Crédito Pyme Citibanamex" in prompt
    assert "OPCIÓN 3: Financiamiento Dueño" in prompt
    assert "Tasa ISR: 30%" in prompt
    assert "IVA en intereses: SÍ (16%)" in prompt
    assert "Tiene una deuda actual de aprox $6,527,242.00" in prompt
    # The smallest offer only refinances; the others add working capital.
    assert "0 (Solo Refinancia)" in prompt
    assert "$272,758.00" in prompt
    assert "Fijo Manual de Usuario" in prompt
    assert "36 Meses (3.0 Años)" in prompt


def test_prompt_without_vat(results):
    prompt = build_analysis_prompt(results, GlobalSettings(apply_iva_to_interest=False))
    assert "IVA en intereses: NO" in prompt


def test_generate_returns_model_text(results):
    completions = FakeCompletions(reply="## Recomendación\nOpción 3.")
    service = NarrativeService(_client(completions), model="test-model", timeout_s=5)
    assert service.generate(results, DEFAULT_SETTINGS) == "## Recomendación\nOpción 3."
    (call,) = completions.calls
    assert call["model"] == "test-model"
    assert call["timeout"] == 5
    assert "OPCIÓN 2: REVOLVENTE BANAMEX" in call["messages"][0]["content"]


def test_generate_falls_back_on_empty_reply(results):
    service = NarrativeService(_client(FakeCompletions(reply="")), model="m", timeout_s=1)
    assert service.generate(results, DEFAULT_SETTINGS) == EMPTY_ANALYSIS_MESSAGE


def test_sdk_failure_becomes_recoverable_error(results):
    service = NarrativeService(_client(FakeCompletions(error=openai.OpenAIError("boom"))), model="m", timeout_s=1)
    with pytest.raises(NarrativeError) as excinfo:
        service.generate(results, DEFAULT_SETTINGS)
    assert str(excinfo.value) == CONNECTION_ERROR_MESSAGE
    assert isinstance(excinfo.value.__cause__, openai.OpenAIError)


def test_missing_api_key(monkeypatch, results):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    service = NarrativeService(model="m", timeout_s=1)
    with pytest.raises(NarrativeError, match="API Key"):
        service.generate(results, DEFAULT_SETTINGS)
    assert MISSING_KEY_MESSAGE.startswith("No hay API Key")
