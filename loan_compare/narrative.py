"""Narrative commentary on a loan comparison.

``build_analysis_prompt`` turns computed results into a CFO-style prompt (in
Spanish, like the rest of the user-facing text). ``NarrativeService`` sends it
to an OpenAI chat model. The service is optional: its failures surface as
``NarrativeError`` with a message meant for the user and never touch the
engine's results.

Environment
-----------
OPENAI_API_KEY                   : required to call the service
LOAN_COMPARE_NARRATIVE_MODEL     : default "gpt-4o-mini"
LOAN_COMPARE_NARRATIVE_TIMEOUT_S : default "30"
"""

from __future__ import annotations

import logging
import os
from typing import Any, Optional, Sequence

import openai
from openai import OpenAI

from . import config
from .comparison import MATERIALITY_THRESHOLD, min_principal
from .data_models import GlobalSettings, LoanResult, PaymentStrategy
from .formatter import format_currency

logger = logging.getLogger(__name__)

CONNECTION_ERROR_MESSAGE = "Error conectando con el experto IA. Verifica tu API Key."
MISSING_KEY_MESSAGE = "No hay API Key configurada para el experto IA (OPENAI_API_KEY)."
EMPTY_ANALYSIS_MESSAGE = "No se pudo generar el análisis."


class NarrativeError(RuntimeError):
    """The narrative service could not produce an analysis. The message is user-facing."""


def _option_block(index: int, result: LoanResult, smallest: float) -> str:
    params = result.params
    extra_cash = params.principal - smallest
    leverage = format_currency(extra_cash) if extra_cash > MATERIALITY_THRESHOLD else "0 (Solo Refinancia)"
    strategy = (
        "Fijo Manual de Usuario" if params.payment_strategy is PaymentStrategy.MANUAL else "Calculado Estándar"
    )
    return "\n".join(
        [
            f"OPCIÓN {index}: {params.name}",
            f"- Monto Crédito: {format_currency(params.principal)}",
            f"- **Dinero Libre (Apalancamiento)**: {leverage}",
            f"- Pago Mensual: {format_currency(result.first_month_outflow)}",
            f"- Estrategia Pago: {strategy}",
            f"- **TIEMPO REAL PARA LIQUIDAR**: {result.months} Meses ({result.months / 12:.1f} Años)",
            f"- Saldo al Final: {format_currency(result.summary.remaining_balance)}",
            f"- Intereses Totales Pagados: {format_currency(result.summary.total_interest)}",
        ]
    )


def build_analysis_prompt(results: Sequence[LoanResult], settings: GlobalSettings) -> str:
    """Build the analysis prompt from aggregated numbers of every option.

    The smallest principal is presented as the debt the user holds today; the
    larger offers refinance it and leave the difference as working capital.
    """
    smallest = min_principal(results)
    iva = f"SÍ ({settings.iva_rate:g}%)" if settings.apply_iva_to_interest else "NO"
    options = "\n\n".join(_option_block(i, r, smallest) for i, r in enumerate(results, start=1))
    return f"""Actúa como un Director Financiero (CFO) experto en Banca Pyme México.

SITUACIÓN DEL USUARIO:
Tiene una deuda actual de aprox {format_currency(smallest)} (visible en la opción de menor monto).
Está considerando tomar un crédito mayor (visible en las opciones de mayor monto) para:
1. Liquidar la deuda actual.
2. Quedarse con la diferencia como Capital de Trabajo (Apalancamiento/Flujo).

Contexto Fiscal:
- Tasa ISR: {settings.isr_rate:g}% (Escudo fiscal)
- IVA en intereses: {iva}

DATOS DE LAS OPCIONES:
{options}

INSTRUCCIONES DE ANÁLISIS:
1. **Comparativa de Tiempos**: Resalta si una opción tarda mucho más en pagarse que la otra.
2. **Análisis de Apalancamiento**: ¿Vale la pena pagar intereses sobre el monto total para tener ese dinero extra en caja?
3. **Riesgo "Deuda Viva"**: Si alguna opción deja deuda al final o tarda más de 5 años, márcalo como riesgo alto.
4. **Recomendación Directa**: Si la empresa necesita flujo, ¿qué opción recomiendas? Si la empresa quiere salir de deudas, ¿cuál?

Usa formato Markdown. Sé conciso, numérico y estratégico."""


class NarrativeService:
    """Generates the written analysis with an OpenAI chat model.

    ``client`` may be any object exposing ``chat.completions.create``; when
    omitted an ``OpenAI`` client is created on first use from
    ``OPENAI_API_KEY``.
    """

    def __init__(
        self,
        client: Optional[Any] = None,
        *,
        model: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ) -> None:
        self._client = client
        self._model = model or config.narrative_model()
        self._timeout_s = timeout_s if timeout_s is not None else config.narrative_timeout_s()

    def _get_client(self) -> Any:
        if self._client is None:
            api_key = os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise NarrativeError(MISSING_KEY_MESSAGE)
            self._client = OpenAI(api_key=api_key)
        return self._client

    def generate(self, results: Sequence[LoanResult], settings: GlobalSettings) -> str:
        prompt = build_analysis_prompt(results, settings)
        client = self._get_client()
        try:
            response = client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                timeout=self._timeout_s,
            )
        except openai.OpenAIError as exc:
            logger.warning("Narrative request failed: %s", exc)
            raise NarrativeError(CONNECTION_ERROR_MESSAGE) from exc
        text = response.choices[0].message.content if response.choices else None
        return text or EMPTY_ANALYSIS_MESSAGE
