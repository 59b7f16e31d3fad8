import io
import logging
import os

from flask import Flask, jsonify, request, send_file

from loan_compare import config
from loan_compare.comparison import balance_series, compare_results, cost_breakdown
from loan_compare.data_models import GlobalSettings, LoanParams
from loan_compare.engine import compute_amortization_cached, compute_many
from loan_compare.formatter import csv_bytes, csv_filename
from loan_compare.narrative import NarrativeError, NarrativeService
from loan_compare.utils import load_scenarios

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
app.json.ensure_ascii = False
narrative_service = NarrativeService()


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _comparison_from_request():
    """Parse ``{"loans": [...], "settings": {...}}`` and compute every loan."""
    loans, settings = load_scenarios(_json_body())
    return compute_many(loans, settings), settings


@app.errorhandler(ValueError)
def handle_bad_input(exc: ValueError):
    return jsonify({"error": str(exc)}), 400


@app.get("/api/defaults")
def defaults():
    return jsonify(
        {
            "loans": [loan.to_dict() for loan in config.DEFAULT_LOANS],
            "settings": config.DEFAULT_SETTINGS.to_dict(),
        }
    )


@app.post("/api/compare")
def compare():
    results, _ = _comparison_from_request()
    return jsonify(
        {
            "results": [r.to_dict() for r in results],
            "comparison": compare_results(results).to_dict(),
            "charts": {
                "balances": balance_series(results),
                "costs": cost_breakdown(results),
            },
        }
    )


@app.post("/api/export")
def export_csv():
    data = _json_body()
    loan = data.get("loan")
    if not isinstance(loan, dict):
        raise ValueError("'loan' must be a JSON object")
    settings = data.get("settings") or {}
    if not isinstance(settings, dict):
        raise ValueError("'settings' must be a JSON object")
    result = compute_amortization_cached(LoanParams.from_dict(loan), GlobalSettings.from_dict(settings))
    return send_file(
        io.BytesIO(csv_bytes(result)),
        mimetype="text/csv",
        as_attachment=True,
        download_name=csv_filename(result),
    )


@app.post("/api/analysis")
def analysis():
    results, settings = _comparison_from_request()
    try:
        text = narrative_service.generate(results, settings)
    except NarrativeError as exc:
        logger.warning("Analysis unavailable: %s", exc)
        return jsonify({"error": str(exc)}), 502
    return jsonify({"analysis": text})


if __name__ == "__main__":
    logging.basicConfig(level=config.log_level())
    print("Starting loan comparison API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
