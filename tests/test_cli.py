from __future__ import annotations

import json

from click.testing import CliRunner

from loan_compare.main import cli

LOAN_ARGS = ["-p", "6.8m", "-r", "16", "-y", "3", "--opening-fee", "2", "--moratorium-rate", "48", "--name", "Pyme"]


def test_schedule_prints_summary_and_table():
    result = CliRunner().invoke(cli, ["schedule", *LOAN_ARGS])
    assert result.exit_code == 0, result.output
    assert "Summary: Pyme" in result.output
    assert "Months simulated   : 36" in result.output
    assert "Opening fee        : $136,000.00" in result.output
    assert "\n36\t0.00\t" in result.output


def test_schedule_exports_csv_with_bom(tmp_path):
    out = tmp_path / "tabla.csv"
    result = CliRunner().invoke(cli, ["schedule", *LOAN_ARGS, "--output", str(out)])
    assert result.exit_code == 0, result.output
    data = out.read_bytes()
    assert data.startswith(b"\xef\xbb\xbf")
    assert data.decode("utf-8-sig").startswith("Escenario: Pyme\nTipo: Amortizado / Plazo Fijo\nMonto Original: 6800000\n")


def test_schedule_exports_json(tmp_path):
    out = tmp_path / "tabla.json"
    result = CliRunner().invoke(cli, ["schedule", *LOAN_ARGS, "--output", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert len(data["table"]) == 36
    assert data["params"]["paymentStrategy"] == "calculated"
    assert data["summary"]["remainingBalance"] == 0


def test_schedule_rejects_unknown_output_format(tmp_path):
    result = CliRunner().invoke(cli, ["schedule", *LOAN_ARGS, "--output", str(tmp_path / "x.xlsx")])
    assert result.exit_code != 0
    assert "Unsupported output format" in result.output


def test_summary_manual_payment_below_interest():
    result = CliRunner().invoke(
        cli, ["summary", "-p", "100k", "-r", "12", "-y", "3", "--manual-payment", "500", "--no-iva"]
    )
    assert result.exit_code == 0, result.output
    assert "Months simulated   : 180" in result.output
    assert "Remaining balance" in result.output
    assert "Total IVA          : $0.00" in result.output


def test_summary_rejects_bad_amount():
    result = CliRunner().invoke(cli, ["summary", "-p", "lots", "-r", "12", "-y", "3"])
    assert result.exit_code == 2
    assert "Invalid amount" in result.output


def test_compare_defaults():
    result = CliRunner().invoke(cli, ["compare"])
    assert result.exit_code == 0, result.output
    assert "Comparison" in result.output
    assert "REVOLVENTE BANAMEX" in result.output
    assert "lowest cost" in result.output


def test_compare_scenario_file_to_json(tmp_path):
    scenarios = tmp_path / "offers.json"
    scenarios.write_text(
        json.dumps(
            {
                "settings": {"ivaRate": 16, "isrRate": 30, "applyIvaToInterest": False},
                "loans": [
                    {"id": "a", "name": "A", "principal": 1_000_000, "annualRate": 15, "years": 2},
                    {
                        "id": "b",
                        "name": "B",
                        "principal": 1_200_000,
                        "annualRate": 11,
                        "years": 2,
                        "loanType": "interest_only",
                    },
                ],
            }
        ),
        encoding="utf-8",
    )
    out = tmp_path / "comparison.json"
    result = CliRunner().invoke(cli, ["compare", "--scenarios", str(scenarios), "--output", str(out)])
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    entries = {e["id"]: e for e in data["comparison"]["entries"]}
    assert entries["b"]["hasRemainingDebt"]
    assert entries["b"]["leverageAmount"] == 200_000
    assert data["settings"]["applyIvaToInterest"] is False


def test_compare_rejects_malformed_scenarios(tmp_path):
    scenarios = tmp_path / "offers.json"
    scenarios.write_text("{not json", encoding="utf-8")
    result = CliRunner().invoke(cli, ["compare", "--scenarios", str(scenarios)])
    assert result.exit_code == 2
    assert "Invalid JSON" in result.output


def test_analyze_prompt_only():
    result = CliRunner().invoke(cli, ["analyze", "--prompt-only"])
    assert result.exit_code == 0, result.output
    assert "OPCIÓN 1" in result.output


def test_analyze_without_api_key_reports_error(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    result = CliRunner().invoke(cli, ["analyze"])
    assert result.exit_code == 1
    assert "API Key" in result.output
