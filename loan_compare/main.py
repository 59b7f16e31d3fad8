"""Command‑line interface for the loan comparison tool.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute the schedule of one offer, view its summary,
compare several offers from a scenario file (or the built-in defaults) and
request a written analysis of the comparison. Results can be printed to the
terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from . import config
from .comparison import compare_results
from .data_models import CalculatedPayment, GlobalSettings, LoanParams, LoanResult, LoanType, ManualPayment
from .engine import compute_amortization, compute_many
from .formatter import csv_bytes, generate_tsv, print_comparison, print_schedule, print_summary
from .narrative import NarrativeError, NarrativeService, build_analysis_prompt
from .utils import load_scenario_file, parse_amount, parse_percent

MAX_PRINTED_ROWS = 120


def _amount_option(value: Optional[str], name: str) -> float:
    if value is None:
        return 0.0
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)


def _percent_option(value: str, name: str) -> float:
    try:
        return parse_percent(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)


def build_params_from_options(
    principal: str,
    rate: str,
    years: int,
    loan_type: str,
    manual_payment: Optional[str],
    opening_fee: str,
    insurance: Optional[str],
    moratorium_rate: str,
    name: str,
) -> LoanParams:
    """Convert raw CLI option values into ``LoanParams``."""
    principal_value = _amount_option(principal, "--principal")
    if principal_value <= 0:
        raise click.BadParameter("Principal must be positive", param_hint="--principal")
    if years <= 0:
        raise click.BadParameter("Term must be at least one year", param_hint="--years")
    payment = CalculatedPayment()
    if manual_payment:
        payment = ManualPayment(_amount_option(manual_payment, "--manual-payment"))
    return LoanParams(
        id="1",
        name=name,
        principal=principal_value,
        annual_rate=_percent_option(rate, "--rate"),
        years=years,
        opening_fee_percent=_percent_option(opening_fee, "--opening-fee"),
        monthly_insurance=_amount_option(insurance, "--insurance"),
        loan_type=LoanType(loan_type),
        payment=payment,
        moratorium_rate=_percent_option(moratorium_rate, "--moratorium-rate"),
    )


def build_settings_from_options(iva_rate: str, isr_rate: str, no_iva: bool) -> GlobalSettings:
    return GlobalSettings(
        iva_rate=_percent_option(iva_rate, "--iva-rate"),
        isr_rate=_percent_option(isr_rate, "--isr-rate"),
        apply_iva_to_interest=not no_iva,
    )


def _load_comparison(scenarios: Optional[str]) -> Tuple[List[LoanParams], GlobalSettings]:
    if not scenarios:
        return list(config.DEFAULT_LOANS), config.DEFAULT_SETTINGS
    try:
        return load_scenario_file(scenarios)
    except (OSError, ValueError) as exc:
        raise click.BadParameter(str(exc), param_hint="--scenarios")


def export_to_json(path: Path, payload: Dict[str, Any]) -> None:
    """Export a JSON document (a result or a comparison) to a file."""
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def export_to_csv(path: Path, result: LoanResult) -> None:
    """Export the schedule of one loan as CSV, UTF-8 with a byte-order mark."""
    path.write_bytes(csv_bytes(result))


def loan_options(func):
    """Attach the options describing one loan and the fiscal settings."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Amount financed (accepts 500k, 6.8m)"),
        click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)"),
        click.option("--years", "-y", "years", required=True, type=int, help="Loan term in years"),
        click.option(
            "--type",
            "loan_type",
            type=click.Choice([t.value for t in LoanType]),
            default=LoanType.AMORTIZED.value,
            help="Repayment behaviour when the payment is calculated",
        ),
        click.option("--manual-payment", "manual_payment", help="Fixed monthly payment (principal + interest)"),
        click.option("--opening-fee", "opening_fee", default="0", help="Opening fee (percent of principal)"),
        click.option("--insurance", "insurance", help="Monthly insurance / fees"),
        click.option("--moratorium-rate", "moratorium_rate", default="0", help="Annual penalty rate (percent)"),
        click.option("--name", "name", default="Escenario", help="Scenario label"),
        click.option("--iva-rate", "iva_rate", default="16", help="VAT on interest (percent)"),
        click.option("--isr-rate", "isr_rate", default="30", help="Income-tax rate for the tax shield (percent)"),
        click.option("--no-iva", "no_iva", is_flag=True, help="Do not charge VAT on interest"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Compare credit offers under Mexican VAT and income-tax rules."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else config.log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.option("--tsv", "tsv", is_flag=True, help="Print the export as tab-separated text")
def schedule(
    principal: str,
    rate: str,
    years: int,
    loan_type: str,
    manual_payment: Optional[str],
    opening_fee: str,
    insurance: Optional[str],
    moratorium_rate: str,
    name: str,
    iva_rate: str,
    isr_rate: str,
    no_iva: bool,
    output: Optional[str],
    tsv: bool,
) -> None:
    """Compute and print the full amortization schedule."""
    params = build_params_from_options(
        principal, rate, years, loan_type, manual_payment, opening_fee, insurance, moratorium_rate, name
    )
    settings = build_settings_from_options(iva_rate, isr_rate, no_iva)
    result = compute_amortization(params, settings)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result.to_dict())
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
    elif tsv:
        click.echo(generate_tsv(result))
    else:
        print_summary(result)
        if result.months > MAX_PRINTED_ROWS:
            click.echo(f"Schedule has {result.months} rows; showing first {MAX_PRINTED_ROWS} rows.")
        print_schedule(result.table[:MAX_PRINTED_ROWS])


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(
    principal: str,
    rate: str,
    years: int,
    loan_type: str,
    manual_payment: Optional[str],
    opening_fee: str,
    insurance: Optional[str],
    moratorium_rate: str,
    name: str,
    iva_rate: str,
    isr_rate: str,
    no_iva: bool,
    output: Optional[str],
) -> None:
    """Compute and print only the summary metrics for a loan."""
    params = build_params_from_options(
        principal, rate, years, loan_type, manual_payment, opening_fee, insurance, moratorium_rate, name
    )
    settings = build_settings_from_options(iva_rate, isr_rate, no_iva)
    result = compute_amortization(params, settings)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension", param_hint="--output")
        export_to_json(path, {"params": params.to_dict(), "summary": result.summary.to_dict()})
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result)


@cli.command()
@click.option("--scenarios", "scenarios", type=str, help="JSON file with 'settings' and 'loans'")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def compare(scenarios: Optional[str], output: Optional[str]) -> None:
    """Compare several loan offers.

    Without ``--scenarios`` the three built-in offers are compared, for example:

        loan-compare compare --scenarios offers.json --output comparison.json
    """
    loans, settings = _load_comparison(scenarios)
    results = compute_many(loans, settings)
    report = compare_results(results)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Comparison export must use .json extension", param_hint="--output")
        export_to_json(
            path,
            {
                "settings": settings.to_dict(),
                "results": [r.to_dict() for r in results],
                "comparison": report.to_dict(),
            },
        )
        click.echo(f"Comparison exported to {path}")
    else:
        for result in results:
            print_summary(result)
        print_comparison(report)


@cli.command()
@click.option("--scenarios", "scenarios", type=str, help="JSON file with 'settings' and 'loans'")
@click.option("--prompt-only", "prompt_only", is_flag=True, help="Print the prompt without calling the service")
def analyze(scenarios: Optional[str], prompt_only: bool) -> None:
    """Ask the narrative service for a written analysis of the comparison."""
    loans, settings = _load_comparison(scenarios)
    results = compute_many(loans, settings)
    if prompt_only:
        click.echo(build_analysis_prompt(results, settings))
        return
    try:
        click.echo(NarrativeService().generate(results, settings))
    except NarrativeError as exc:
        raise click.ClickException(str(exc))


if __name__ == "__main__":
    cli()
