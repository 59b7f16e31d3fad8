"""Defaults and environment-driven settings.

The default comparison reproduces the three offers the dashboard opens with:
a bank SME term loan, a revolving line paid down with a fixed manual payment,
and owner (seller) financing. Environment variables configure the optional
narrative service and logging.
"""

from __future__ import annotations

import os
from typing import List

from .data_models import CalculatedPayment, GlobalSettings, LoanParams, LoanType, ManualPayment

DEFAULT_LOANS: List[LoanParams] = [
    LoanParams(
        id="1",
        name="Crédito Pyme Citibanamex",
        principal=6_800_000,
        annual_rate=16.0,
        years=3,
        opening_fee_percent=2.0,
        monthly_insurance=0,
        loan_type=LoanType.AMORTIZED,
        payment=CalculatedPayment(),
        moratorium_rate=48.0,
    ),
    LoanParams(
        id="2",
        name="REVOLVENTE BANAMEX",
        principal=6_527_242,
        annual_rate=13.87,
        years=3,
        opening_fee_percent=0,
        monthly_insurance=0,
        loan_type=LoanType.AMORTIZED,
        payment=ManualPayment(254_971),
        moratorium_rate=48.0,
    ),
    LoanParams(
        id="3",
        name="Financiamiento Dueño",
        principal=6_800_000,
        annual_rate=12.0,
        years=3,
        opening_fee_percent=0,
        monthly_insurance=0,
        loan_type=LoanType.AMORTIZED,
        payment=CalculatedPayment(),
        moratorium_rate=0,
    ),
]

DEFAULT_SETTINGS = GlobalSettings(iva_rate=16, isr_rate=30, apply_iva_to_interest=True)

DEFAULT_NARRATIVE_MODEL = "gpt-4o-mini"
DEFAULT_NARRATIVE_TIMEOUT_S = 30.0


def narrative_model() -> str:
    return os.environ.get("LOAN_COMPARE_NARRATIVE_MODEL", DEFAULT_NARRATIVE_MODEL)


def narrative_timeout_s() -> float:
    return float(os.environ.get("LOAN_COMPARE_NARRATIVE_TIMEOUT_S", DEFAULT_NARRATIVE_TIMEOUT_S))


def log_level() -> str:
    return os.environ.get("LOAN_COMPARE_LOG_LEVEL", "WARNING").upper()
