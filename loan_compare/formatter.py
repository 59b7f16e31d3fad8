"""Output helpers for the loan comparison tool.

This module renders computed results for people and for spreadsheets:
peso-formatted amounts, plain-text summaries and schedules for the terminal,
a comparison table, and the CSV export whose layout (Spanish metadata lines,
header row, two-decimal money columns, UTF-8 with a byte-order mark) is what
spreadsheet users of the dashboard expect.
"""

from __future__ import annotations

import csv
import io
import math
import re
from decimal import ROUND_HALF_UP, Context, Decimal
from typing import Iterable, List

from .comparison import ComparisonReport
from .data_models import AmortizationRow, LoanResult, LoanType, PaymentStrategy

CSV_HEADERS = [
    "Mes",
    "Saldo Insoluto",
    "Pago Capital",
    "Pago Interés",
    "IVA Interés",
    "Seguro/Coms",
    "Pago Total Mensual",
    "Escudo Fiscal (ISR)",
    "Costo Neto",
]

LOAN_TYPE_LABELS = {
    LoanType.INTEREST_ONLY: "Revolvente / Solo Interés",
    LoanType.AMORTIZED: "Amortizado / Plazo Fijo",
}

CSV_FILENAME_PREFIX = "BancosPorta_Tabla_"

# Enough digits to quantize any finite double to cents.
_EXACT = Context(prec=400)


def _non_finite(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _fixed(value: float, decimals: int = 2) -> str:
    """Fixed-point text for the export; ``-0.0`` prints as ``0.00``.

    Exact binary halves round away from zero, as spreadsheet exports of the
    dashboard do (``100.125`` gives ``100.13``).
    """
    value = float(value)
    if not math.isfinite(value):
        return _non_finite(value)
    quantum = Decimal(1).scaleb(-decimals)
    rounded = Decimal(value + 0.0).quantize(quantum, rounding=ROUND_HALF_UP, context=_EXACT)
    return format(rounded, "f")


def _plain_number(value: float) -> str:
    """Shortest text for a number: ``6800000`` rather than ``6800000.0``."""
    value = float(value)
    if not math.isfinite(value):
        return _non_finite(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_currency(amount: float, decimals: int = 2) -> str:
    """Format an amount as Mexican pesos, e.g. ``$1,234.56`` or ``-$80``.

    Tables use two decimals; chart tooltips use ``decimals=0``.
    """
    if not math.isfinite(amount):
        return _non_finite(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.{decimals}f}"


def _csv_row(row: AmortizationRow) -> List[str]:
    return [
        str(row.month),
        _fixed(row.balance),
        _fixed(row.principal_payment),
        _fixed(row.interest_payment),
        _fixed(row.iva_on_interest),
        _fixed(row.insurance),
        _fixed(row.total_monthly_outflow),
        _fixed(row.tax_shield),
        _fixed(row.net_cost_after_tax),
    ]


def generate_csv(result: LoanResult) -> str:
    """Return the schedule export for one loan as text (without the BOM).

    Lines are joined with ``\\n`` and there is no trailing newline.
    """
    params = result.params
    metadata = [
        f"Escenario: {params.name}",
        f"Tipo: {LOAN_TYPE_LABELS[params.loan_type]}",
        f"Monto Original: {_plain_number(params.principal)}",
        f"Saldo Final (Deuda): {_fixed(result.summary.remaining_balance)}",
        f"Tasa Ordinaria: {_plain_number(params.annual_rate)}%",
        f"Tasa Moratoria: {_plain_number(params.moratorium_rate)}%",
        "",
    ]
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in result.table:
        writer.writerow(_csv_row(row))
    return "\n".join(metadata) + "\n" + buffer.getvalue().rstrip("\n")


def csv_bytes(result: LoanResult) -> bytes:
    """Encode the export as UTF-8 with a byte-order mark so spreadsheets detect the encoding."""
    return generate_csv(result).encode("utf-8-sig")


def generate_tsv(result: LoanResult) -> str:
    """Tab-separated variant of the export, for pasting into a spreadsheet."""
    return generate_csv(result).replace(",", "\t")


def csv_filename(result: LoanResult) -> str:
    return CSV_FILENAME_PREFIX + re.sub(r"\s+", "_", result.params.name) + ".csv"


def print_summary(result: LoanResult) -> None:
    """Print a summary of loan metrics in a human‑readable format."""
    params = result.params
    s = result.summary
    strategy = (
        "Pago fijo manual" if params.payment_strategy is PaymentStrategy.MANUAL else "Amortización calculada"
    )
    print(f"Summary: {params.name}")
    print("-" * 72)
    print(f"Loan type          : {LOAN_TYPE_LABELS[params.loan_type]} ({strategy})")
    print(f"Principal          : {format_currency(params.principal)}")
    print(f"Monthly payment    : {format_currency(s.monthly_payment_base)}")
    print(f"First month outflow: {format_currency(result.first_month_outflow)}")
    print(f"Months simulated   : {result.months}")
    print(f"Total interest     : {format_currency(s.total_interest)}")
    print(f"Total IVA          : {format_currency(s.total_iva)}")
    if s.total_insurance:
        print(f"Total insurance    : {format_currency(s.total_insurance)}")
    if s.total_opening_fee:
        print(f"Opening fee        : {format_currency(s.total_opening_fee)}")
    print(f"Grand total paid   : {format_currency(s.grand_total_paid)}")
    print(f"Tax shield (ISR)   : {format_currency(s.total_tax_shield)}")
    print(f"Net cost           : {format_currency(s.net_cost)}")
    print(f"PV of interest     : {format_currency(s.total_pv_interest)}")
    print(f"1-month default    : {format_currency(s.one_month_default_cost)}")
    if s.remaining_balance:
        print(f"Remaining balance  : {format_currency(s.remaining_balance)}")
    print("-" * 72)


def print_schedule(table: Iterable[AmortizationRow]) -> None:
    """Print the amortization schedule as a tab-separated table."""
    headers = [
        "Month",
        "Balance",
        "Principal",
        "Interest",
        "IVA",
        "Insurance",
        "Outflow",
        "Shield",
        "NetCost",
    ]
    print("\t".join(headers))
    for row in table:
        print("\t".join(_csv_row(row)))


def print_comparison(report: ComparisonReport) -> None:
    """Print the loans side by side, flagging the cheapest and any leftover debt."""
    print("Comparison")
    print("=" * 96)
    print(
        f"{'Loan':28s} {'1st outflow':>15s} {'Months':>7s} {'Net cost':>18s} "
        f"{'Remaining':>15s} {'Leverage':>10s}"
    )
    for entry in report.entries:
        flags = []
        if entry.is_lowest_cost:
            flags.append("lowest cost")
        if entry.has_remaining_debt:
            flags.append("debt left")
        leverage = format_currency(entry.leverage_amount, 0) if entry.has_leverage else "-"
        print(
            f"{entry.name[:28]:28s} {format_currency(entry.first_month_outflow):>15s} "
            f"{entry.months_to_payoff:7d} {format_currency(entry.net_cost):>18s} "
            f"{format_currency(entry.remaining_balance):>15s} {leverage:>10s}"
            + (f"  [{', '.join(flags)}]" if flags else "")
        )
    print("=" * 96)
