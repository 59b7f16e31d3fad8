"""Data models for the loan comparison engine.

This module defines the immutable dataclasses used by the calculator: the
parameters of one credit offer, the fiscal settings shared by a comparison,
individual schedule rows and the computed result. All of them are frozen so
that a ``(LoanParams, GlobalSettings)`` pair can be hashed and used as a cache
key, and so that a result can be shared between callers safely.

The wire format used by scenario files and the web API is the camelCase shape
of the dashboard front end (``annualRate``, ``paymentStrategy`` ...). The
``from_dict``/``to_dict`` helpers translate between the two.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union


class LoanType(str, Enum):
    """Base repayment behaviour of a loan under the calculated strategy."""

    AMORTIZED = "amortized"
    INTEREST_ONLY = "interest_only"


class PaymentStrategy(str, Enum):
    CALCULATED = "calculated"
    MANUAL = "manual"


@dataclass(frozen=True)
class CalculatedPayment:
    """The engine derives the monthly payment from the loan terms."""

    @property
    def strategy(self) -> PaymentStrategy:
        return PaymentStrategy.CALCULATED


@dataclass(frozen=True)
class ManualPayment:
    """A fixed monthly payment (principal + interest) chosen by the caller.

    Attributes
    ----------
    monthly_payment: float
        The amount paid every month. When it is lower than the interest due,
        the balance grows (negative amortization).
    """

    monthly_payment: float

    @property
    def strategy(self) -> PaymentStrategy:
        return PaymentStrategy.MANUAL


PaymentPlan = Union[CalculatedPayment, ManualPayment]


def _number(data: Mapping[str, Any], key: str, default: Optional[float] = 0.0) -> float:
    value = data.get(key)
    if value is None or value == "":
        if default is None:
            raise ValueError(f"Missing required field: {key}")
        return float(default)
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value for {key}: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Invalid numeric value for {key}: {value!r}") from exc


@dataclass(frozen=True)
class LoanParams:
    """Terms of one credit offer.

    The payment strategy is carried by ``payment``: a ``ManualPayment`` holds
    the fixed amount, a ``CalculatedPayment`` holds nothing. There is no
    separate nullable manual amount, so a manual loan always has a payment.
    """

    id: str
    name: str
    principal: float
    annual_rate: float  # nominal annual rate in percent
    years: float
    opening_fee_percent: float = 0.0
    monthly_insurance: float = 0.0
    loan_type: LoanType = LoanType.AMORTIZED
    payment: PaymentPlan = field(default_factory=CalculatedPayment)
    moratorium_rate: float = 0.0  # annual penalty rate in percent

    @property
    def payment_strategy(self) -> PaymentStrategy:
        return self.payment.strategy

    @property
    def manual_monthly_payment(self) -> Optional[float]:
        if isinstance(self.payment, ManualPayment):
            return self.payment.monthly_payment
        return None

    @property
    def target_months(self):
        return self.years * 12

    @property
    def monthly_rate(self) -> float:
        return self.annual_rate / 100 / 12

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LoanParams":
        """Build loan parameters from the camelCase wire format.

        Raises
        ------
        ValueError
            If a numeric field cannot be parsed, ``loanType`` or
            ``paymentStrategy`` is unknown, or a manual strategy comes without
            ``manualMonthlyPayment``.
        """
        try:
            loan_type = LoanType(data.get("loanType") or LoanType.AMORTIZED.value)
        except ValueError as exc:
            raise ValueError(f"Unknown loanType: {data.get('loanType')!r}") from exc
        try:
            strategy = PaymentStrategy(data.get("paymentStrategy") or PaymentStrategy.CALCULATED.value)
        except ValueError as exc:
            raise ValueError(f"Unknown paymentStrategy: {data.get('paymentStrategy')!r}") from exc

        payment: PaymentPlan
        if strategy is PaymentStrategy.MANUAL:
            if data.get("manualMonthlyPayment") in (None, ""):
                raise ValueError("Manual payment strategy requires manualMonthlyPayment")
            payment = ManualPayment(_number(data, "manualMonthlyPayment"))
        else:
            payment = CalculatedPayment()

        years = _number(data, "years", default=None)
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            principal=_number(data, "principal", default=None),
            annual_rate=_number(data, "annualRate", default=None),
            years=int(years) if years.is_integer() else years,
            opening_fee_percent=_number(data, "openingFeePercent"),
            monthly_insurance=_number(data, "monthlyInsurance"),
            loan_type=loan_type,
            payment=payment,
            moratorium_rate=_number(data, "moratoriumRate"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "principal": self.principal,
            "annualRate": self.annual_rate,
            "years": self.years,
            "openingFeePercent": self.opening_fee_percent,
            "monthlyInsurance": self.monthly_insurance,
            "loanType": self.loan_type.value,
            "paymentStrategy": self.payment_strategy.value,
            "moratoriumRate": self.moratorium_rate,
        }
        if self.manual_monthly_payment is not None:
            data["manualMonthlyPayment"] = self.manual_monthly_payment
        return data


@dataclass(frozen=True)
class GlobalSettings:
    """Fiscal configuration shared by every loan in a comparison.

    Attributes
    ----------
    iva_rate: float
        Value-added tax percent applied to interest (16 in Mexico).
    isr_rate: float
        Corporate income-tax percent used for the interest tax shield.
    apply_iva_to_interest: bool
        When False, no VAT is charged on interest at all.
    """

    iva_rate: float = 16.0
    isr_rate: float = 30.0
    apply_iva_to_interest: bool = True

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GlobalSettings":
        defaults = cls()
        apply_iva = data.get("applyIvaToInterest", defaults.apply_iva_to_interest)
        if not isinstance(apply_iva, bool):
            raise ValueError(f"applyIvaToInterest must be a boolean; got {apply_iva!r}")
        return cls(
            iva_rate=_number(data, "ivaRate", default=defaults.iva_rate),
            isr_rate=_number(data, "isrRate", default=defaults.isr_rate),
            apply_iva_to_interest=apply_iva,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ivaRate": self.iva_rate,
            "isrRate": self.isr_rate,
            "applyIvaToInterest": self.apply_iva_to_interest,
        }


@dataclass(frozen=True)
class AmortizationRow:
    """One simulated month of the schedule.

    ``payment`` is principal plus interest, before VAT and insurance.
    ``balance`` is the remaining principal after this month's payment.
    """

    month: int
    payment: float
    principal_payment: float
    interest_payment: float
    iva_on_interest: float
    insurance: float
    total_monthly_outflow: float
    balance: float
    tax_shield: float
    net_cost_after_tax: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month": self.month,
            "payment": self.payment,
            "principalPayment": self.principal_payment,
            "interestPayment": self.interest_payment,
            "ivaOnInterest": self.iva_on_interest,
            "insurance": self.insurance,
            "totalMonthlyOutflow": self.total_monthly_outflow,
            "balance": self.balance,
            "taxShield": self.tax_shield,
            "netCostAfterTax": self.net_cost_after_tax,
        }


@dataclass(frozen=True)
class LoanSummary:
    """Aggregate metrics of a computed schedule.

    ``grand_total_paid`` counts cash flows plus the principal actually
    retired. An unpaid ``remaining_balance`` is disclosed separately and is
    not part of it.
    """

    monthly_payment_base: float
    total_interest: float
    total_iva: float
    total_insurance: float
    total_opening_fee: float
    grand_total_paid: float
    total_tax_shield: float
    net_cost: float
    one_month_default_cost: float
    remaining_balance: float
    total_pv_interest: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "monthlyPaymentBase": self.monthly_payment_base,
            "totalInterest": self.total_interest,
            "totalIva": self.total_iva,
            "totalInsurance": self.total_insurance,
            "totalOpeningFee": self.total_opening_fee,
            "grandTotalPaid": self.grand_total_paid,
            "totalTaxShield": self.total_tax_shield,
            "netCost": self.net_cost,
            "oneMonthDefaultCost": self.one_month_default_cost,
            "remainingBalance": self.remaining_balance,
            "totalPVInterest": self.total_pv_interest,
        }


@dataclass(frozen=True)
class LoanResult:
    """One computed scenario: the originating parameters, the schedule and its summary."""

    params: LoanParams
    table: Tuple[AmortizationRow, ...]
    summary: LoanSummary

    @property
    def months(self) -> int:
        return len(self.table)

    @property
    def first_month_outflow(self) -> float:
        return self.table[0].total_monthly_outflow if self.table else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "params": self.params.to_dict(),
            "table": [row.to_dict() for row in self.table],
            "summary": self.summary.to_dict(),
        }
