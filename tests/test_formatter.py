from __future__ import annotations

from loan_compare.config import DEFAULT_LOANS, DEFAULT_SETTINGS
from loan_compare.data_models import GlobalSettings, LoanParams, LoanType
from loan_compare.engine import compute_amortization
from loan_compare.formatter import (
    CSV_HEADERS,
    csv_bytes,
    csv_filename,
    format_currency,
    generate_csv,
    generate_tsv,
)


def test_format_currency():
    assert format_currency(6_800_000) == "$6,800,000.00"
    assert format_currency(1234.567) == "$1,234.57"
    assert format_currency(-80.5) == "-$80.50"
    assert format_currency(239_087.91, 0) == "$239,088"


def test_csv_layout_for_default_loan():
    result = compute_amortization(DEFAULT_LOANS[0], DEFAULT_SETTINGS)
    lines = generate_csv(result).split("\n")
    assert lines[:7] == [
        "Escenario: Crédito Pyme Citibanamex",
        "Tipo: Amortizado / Plazo Fijo",
        "Monto Original: 6800000",
        "Saldo Final (Deuda): 0.00",
        "Tasa Ordinaria: 16%",
        "Tasa Moratoria: 48%",
        "",
    ]
    assert lines[7] == ",".join(CSV_HEADERS)
    assert lines[7] == (
        "Mes,Saldo Insoluto,Pago Capital,Pago Interés,IVA Interés,Seguro/Coms,"
        "Pago Total Mensual,Escudo Fiscal (ISR),Costo Neto"
    )
    rows = lines[8:]
    assert len(rows) == 36
    first = rows[0].split(",")
    assert first[0] == "1"
    assert first[3] == "90666.67"  # 6.8M * 16% / 12
    assert all(len(cell.split(".")[1]) == 2 for cell in first[1:])
    assert rows[-1].split(",")[1] == "0.00"


def test_csv_labels_interest_only_and_fractional_rates():
    loan = LoanParams(
        id="r",
        name="Linea revolvente",
        principal=6_527_242,
        annual_rate=13.87,
        years=1,
        loan_type=LoanType.INTEREST_ONLY,
    )
    result = compute_amortization(loan, GlobalSettings())
    text = generate_csv(result)
    assert "Tipo: Revolvente / Solo Interés" in text
    assert "Tasa Ordinaria: 13.87%" in text
    assert "Tasa Moratoria: 0%" in text
    assert "Saldo Final (Deuda): 6527242.00" in text
    assert not text.endswith("\n")


def test_csv_bytes_carry_bom():
    result = compute_amortization(DEFAULT_LOANS[2], DEFAULT_SETTINGS)
    data = csv_bytes(result)
    assert data.startswith(b"\xef\xbb\xbf")
    assert data[3:].decode("utf-8") == generate_csv(result)


def test_tsv_and_filename():
    result = compute_amortization(DEFAULT_LOANS[2], DEFAULT_SETTINGS)
    assert "," not in generate_tsv(result)
    assert csv_filename(result) == "BancosPorta_Tabla_Financiamiento_Dueño.csv"


def test_csv_money_rounds_exact_halves_up():
    loan = LoanParams(id="h", name="Seguro", principal=1_200, annual_rate=0, years=1, monthly_insurance=100.125)
    result = compute_amortization(loan, GlobalSettings(apply_iva_to_interest=False))
    rows = generate_csv(result).split("\n")[8:]
    assert rows[0] == "1,1100.00,100.00,0.00,0.00,100.13,200.13,0.00,200.13"
    assert rows[-1].split(",")[1] == "0.00"
