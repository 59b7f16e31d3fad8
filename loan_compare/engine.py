"""Core calculation engine for the loan comparison tool.

This module turns the terms of one credit offer plus the shared fiscal
settings into a month-by-month schedule and a summary of aggregate costs. It
supports three schedule rules (calculated amortizing annuity, calculated
interest-only, and a manual fixed payment that may amortize negatively),
VAT on interest and the income-tax shield on interest paid.

The computation is a pure function of its two inputs: nothing is mutated and
no state survives between calls, so results can be memoised by the input pair
(see ``compute_amortization_cached``).
"""

from __future__ import annotations

import logging
import math
from functools import lru_cache
from typing import Iterable, List

from .data_models import (
    AmortizationRow,
    CalculatedPayment,
    GlobalSettings,
    LoanParams,
    LoanResult,
    LoanSummary,
    LoanType,
    ManualPayment,
)

logger = logging.getLogger(__name__)

MANUAL_SIMULATION_CAP_MONTHS = 180
BALANCE_EPSILON = 0.01
FINAL_MONTH_SNAP_TOLERANCE = 1.0
# Reference inflation used to discount interest income (investor view).
REFERENCE_DISCOUNT_RATE_ANNUAL = 0.045

_AMORTIZED = "amortized"
_INTEREST_ONLY = "interest_only"
_MANUAL = "manual"


def _ieee_divide(numerator: float, denominator: float) -> float:
    """Divide like IEEE floats do: ``x / 0`` is ``±inf`` and ``0 / 0`` is ``nan``."""
    if denominator == 0:
        if numerator == 0 or math.isnan(numerator):
            return math.nan
        return math.copysign(math.inf, numerator) * math.copysign(1.0, denominator)
    return numerator / denominator


def _compound(rate: float, periods: float) -> float:
    """Return ``(1 + rate) ** periods`` without raising on overflow or complex results."""
    base = 1 + rate
    if base < 0 and not float(periods).is_integer():
        return math.nan
    try:
        return base ** periods
    except OverflowError:
        return math.inf


def standard_payment(principal: float, monthly_rate: float, months: float) -> float:
    """Return the level annuity payment that retires ``principal`` in ``months``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` the monthly rate and ``n`` the number
    of payments. When the rate is zero the payment is simply ``P / n``.
    """
    if monthly_rate == 0:
        return _ieee_divide(principal, months)
    factor = _compound(monthly_rate, months)
    if factor == 1:
        # rate too small to move the factor off 1.0 in floating point
        return _ieee_divide(principal, months)
    return _ieee_divide(principal * monthly_rate * factor, factor - 1)


def _schedule_rule(params: LoanParams) -> str:
    """Map the payment plan and loan type onto one of the three schedule rules."""
    payment = params.payment
    if isinstance(payment, ManualPayment):
        return _MANUAL
    if isinstance(payment, CalculatedPayment):
        if params.loan_type is LoanType.INTEREST_ONLY:
            return _INTEREST_ONLY
        if params.loan_type is LoanType.AMORTIZED:
            return _AMORTIZED
        raise TypeError(f"Unsupported loan type: {params.loan_type!r}")
    raise TypeError(f"Unsupported payment plan: {payment!r}")


def _simulation_cap(rule: str, target_months: float) -> float:
    if rule == _MANUAL:
        return MANUAL_SIMULATION_CAP_MONTHS
    if math.isinf(target_months):
        # an unbounded term cannot be stepped through; report no months
        return 0
    return target_months


def compute_amortization(params: LoanParams, settings: GlobalSettings) -> LoanResult:
    """Compute the amortization schedule and summary for one loan.

    Parameters
    ----------
    params: LoanParams
        Terms of the credit offer.
    settings: GlobalSettings
        VAT and income-tax configuration shared across the comparison.

    Returns
    -------
    LoanResult
        The schedule (one row per simulated month) and the aggregate summary.
        Calculated loans stop at the contractual term even when a balance
        remains (a balloon, reported as ``remaining_balance``). Manual loans
        run until paid off or for at most 180 months.

    The function never raises for finite numeric input. Degenerate input
    (negative principal, NaN rates, a zero term) propagates as degenerate
    numbers or an empty schedule; callers validate before calling.
    """
    rule = _schedule_rule(params)
    principal = params.principal
    monthly_rate = params.monthly_rate
    target_months = params.target_months
    cap = _simulation_cap(rule, target_months)

    # Reference payment, always on the contractual term.
    annuity_payment = standard_payment(principal, monthly_rate, target_months)
    discount_rate_monthly = REFERENCE_DISCOUNT_RATE_ANNUAL / 12

    balance = principal
    table: List[AmortizationRow] = []
    total_interest = 0.0
    total_iva = 0.0
    total_tax_shield = 0.0
    total_pv_interest = 0.0

    month = 1
    while month <= cap:
        interest_payment = balance * monthly_rate

        if rule == _MANUAL:
            payment_base = params.manual_monthly_payment
            # Negative when the payment does not cover interest; the balance grows.
            principal_payment = payment_base - interest_payment
            if principal_payment > 0 and principal_payment > balance:
                principal_payment = balance
                payment_base = principal_payment + interest_payment
        elif rule == _INTEREST_ONLY:
            # The balloon is due at term end but is not a row of the schedule.
            principal_payment = 0.0
            payment_base = interest_payment
        else:
            principal_payment = annuity_payment - interest_payment
            if month == target_months and abs(balance - principal_payment) < FINAL_MONTH_SNAP_TOLERANCE:
                principal_payment = balance
            payment_base = principal_payment + interest_payment

        if settings.apply_iva_to_interest:
            iva_on_interest = interest_payment * (settings.iva_rate / 100)
        else:
            iva_on_interest = 0.0
        total_monthly_outflow = payment_base + iva_on_interest + params.monthly_insurance
        # Deducted on accrued interest, whether or not it was funded this month.
        tax_shield = interest_payment * (settings.isr_rate / 100)
        net_cost_after_tax = total_monthly_outflow - tax_shield

        balance -= principal_payment
        if abs(balance) < BALANCE_EPSILON:
            balance = 0.0

        table.append(
            AmortizationRow(
                month=month,
                payment=payment_base,
                principal_payment=principal_payment,
                interest_payment=interest_payment,
                iva_on_interest=iva_on_interest,
                insurance=params.monthly_insurance,
                total_monthly_outflow=total_monthly_outflow,
                balance=balance,
                tax_shield=tax_shield,
                net_cost_after_tax=net_cost_after_tax,
            )
        )
        total_interest += interest_payment
        total_iva += iva_on_interest
        total_tax_shield += tax_shield
        total_pv_interest += interest_payment / _compound(discount_rate_monthly, month)

        if balance <= 0:
            break
        if rule != _MANUAL and month >= target_months:
            break
        month += 1

    remaining_balance = balance
    total_insurance = params.monthly_insurance * len(table)
    total_opening_fee = principal * (params.opening_fee_percent / 100)
    principal_paid = principal - remaining_balance
    grand_total_paid = (
        total_interest + total_iva + total_insurance + total_opening_fee
    ) + principal_paid
    net_cost = grand_total_paid - total_tax_shield

    # Static estimate on the face amount, not on any simulated balance.
    default_interest = principal * (params.moratorium_rate / 100 / 12)
    default_iva = default_interest * (settings.iva_rate / 100) if settings.apply_iva_to_interest else 0.0

    if rule == _MANUAL:
        monthly_payment_base = params.manual_monthly_payment
    elif rule == _INTEREST_ONLY:
        monthly_payment_base = principal * monthly_rate
    else:
        monthly_payment_base = annuity_payment

    summary = LoanSummary(
        monthly_payment_base=monthly_payment_base,
        total_interest=total_interest,
        total_iva=total_iva,
        total_insurance=total_insurance,
        total_opening_fee=total_opening_fee,
        grand_total_paid=grand_total_paid,
        total_tax_shield=total_tax_shield,
        net_cost=net_cost,
        one_month_default_cost=default_interest + default_iva,
        remaining_balance=remaining_balance,
        total_pv_interest=total_pv_interest,
    )
    logger.debug(
        "Computed %s (%s): %d months, remaining balance %.2f",
        params.id,
        rule,
        len(table),
        remaining_balance,
    )
    return LoanResult(params=params, table=tuple(table), summary=summary)


compute_amortization_cached = lru_cache(maxsize=256)(compute_amortization)


def compute_many(loans: Iterable[LoanParams], settings: GlobalSettings) -> List[LoanResult]:
    """Compute every loan independently under the same settings, preserving order."""
    return [compute_amortization_cached(loan, settings) for loan in loans]
