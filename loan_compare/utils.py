"""Utility functions for the loan comparison tool.

This module provides helpers for parsing user input: amounts with ``k``/``m``
shorthand, percentages, and JSON scenario files describing a comparison.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Tuple, Union

from .config import DEFAULT_SETTINGS
from .data_models import GlobalSettings, LoanParams


def parse_amount(value: str) -> float:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000"), thousands separators ("6,800,000") and
    shorthand with ``k``/``m`` suffixes (e.g. "6.8m" meaning 6_800_000).

    Raises
    ------
    ValueError
        If the string is not a valid amount.
    """
    cleaned = value.strip().lower().replace(",", "").replace("$", "")
    factor = 1.0
    if cleaned.endswith("k"):
        factor = 1_000.0
        cleaned = cleaned[:-1]
    elif cleaned.endswith("m"):
        factor = 1_000_000.0
        cleaned = cleaned[:-1]
    try:
        return float(cleaned) * factor
    except ValueError as exc:
        raise ValueError(f"Invalid amount: {value}") from exc


def parse_percent(value: str) -> float:
    """Parse a percentage such as "16" or "16%" into percent units (16.0)."""
    cleaned = value.strip()
    if cleaned.endswith("%"):
        cleaned = cleaned[:-1]
    try:
        return float(cleaned)
    except ValueError as exc:
        raise ValueError(f"Invalid percentage: {value}") from exc


def load_scenarios(data: object) -> Tuple[List[LoanParams], GlobalSettings]:
    """Build loans and settings from a decoded scenario document.

    The document is ``{"settings": {...}, "loans": [...]}`` using the wire
    keys of ``LoanParams.from_dict``. Missing settings fall back to the
    defaults.
    """
    if not isinstance(data, dict):
        raise ValueError("Scenario document must be a JSON object")
    raw_loans = data.get("loans")
    if not isinstance(raw_loans, list) or not raw_loans:
        raise ValueError("Scenario document must contain a non-empty 'loans' list")
    raw_settings = data.get("settings")
    if raw_settings is None:
        settings = DEFAULT_SETTINGS
    elif isinstance(raw_settings, dict):
        settings = GlobalSettings.from_dict(raw_settings)
    else:
        raise ValueError("'settings' must be a JSON object")

    loans = []
    for index, raw in enumerate(raw_loans):
        if not isinstance(raw, dict):
            raise ValueError(f"Loan #{index + 1} must be a JSON object")
        loan = LoanParams.from_dict(raw)
        if not loan.id:
            loan = LoanParams.from_dict({**raw, "id": str(index + 1)})
        loans.append(loan)
    ids = [loan.id for loan in loans]
    if len(set(ids)) != len(ids):
        raise ValueError("Loan ids must be unique within a comparison")
    return loans, settings


def load_scenario_file(path: Union[str, Path]) -> Tuple[List[LoanParams], GlobalSettings]:
    """Read a JSON scenario file from disk; see ``load_scenarios``."""
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    return load_scenarios(data)
