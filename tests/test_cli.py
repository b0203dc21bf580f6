"""Tests for CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from taxledger.cli import app

runner = CliRunner()

RECORDS = [
    {"kind": "SPOT_TRADE", "id": "buy-1", "timestamp": "2023-08-01T00:00:00Z", "source": "binance",
     "side": "BUY", "base": {"asset": "BTC", "amount": "1.0"}, "quote": {"asset": "AUD", "amount": "30000"},
     "fee": {"asset": "AUD", "amount": "30"}},
    {"kind": "SPOT_TRADE", "id": "buy-2", "timestamp": "2023-09-01T00:00:00Z", "source": "binance",
     "side": "BUY", "base": {"asset": "BTC", "amount": "0.5"}, "quote": {"asset": "AUD", "amount": "22500"},
     "fee": {"asset": "AUD", "amount": "22.50"}},
    {"kind": "SPOT_TRADE", "id": "sell-1", "timestamp": "2024-03-01T00:00:00Z", "source": "binance",
     "side": "SELL", "base": {"asset": "BTC", "amount": "0.3"}, "quote": {"asset": "AUD", "amount": "15600"},
     "fee": {"asset": "AUD", "amount": "15.60"}},
    {"kind": "TRANSFER", "id": "move-1", "timestamp": "2024-04-01T00:00:00Z",
     "asset": {"asset": "BTC", "amount": "0.2"}, "direction": "OUT"},
]


@pytest.fixture
def transactions_file(tmp_path):
    path = tmp_path / "transactions.json"
    path.write_text(json.dumps(RECORDS))
    return path


class TestCLI:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "report" in result.output
        assert "classify" in result.output

    def test_no_command_prints_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "classify" in result.output

    def test_report_help(self):
        result = runner.invoke(app, ["report", "--help"])
        assert result.exit_code == 0


class TestReportCommand:
    def test_text_report(self, transactions_file):
        result = runner.invoke(app, ["report", str(transactions_file), "--year", "2024"])
        assert result.exit_code == 0, result.output
        assert "Australia Crypto Tax Report 2023-2024" in result.output
        assert "6,575.40" in result.output

    def test_json_report(self, transactions_file):
        result = runner.invoke(app, ["report", str(transactions_file), "-y", "2024", "--json"])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["period"]["label"] == "2023-2024"
        assert data["state"] == "COMPLETE"
        assert data["summary"]["total_disposals"] == 1
        assert data["summary"]["total_capital_gains"] == "6575.40"

    def test_optimize_with_prices(self, transactions_file, tmp_path):
        prices = tmp_path / "prices.json"
        prices.write_text(json.dumps({"BTC": 20000}))
        result = runner.invoke(app, [
            "report", str(transactions_file), "--year", "2024", "--optimize", "--prices", str(prices),
            "--risk", "conservative",
        ])
        assert result.exit_code == 0, result.output
        assert "TAX STRATEGIES" in result.output
        assert "LOSS_HARVESTING" in result.output

    def test_optimize_without_prices_reports_skipped_analyses(self, transactions_file):
        result = runner.invoke(app, ["report", str(transactions_file), "--year", "2024", "--optimize"])
        assert result.exit_code == 0, result.output
        assert "ISSUES" in result.output
        assert "Current prices required" in result.output

    def test_malformed_prices_file(self, transactions_file, tmp_path):
        prices = tmp_path / "prices.json"
        prices.write_text("{BTC")
        result = runner.invoke(app, ["report", str(transactions_file), "--year", "2024", "--prices", str(prices)])
        assert result.exit_code == 1
        assert "invalid JSON" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(app, ["report", str(tmp_path / "missing.json"), "--year", "2024"])
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_unknown_jurisdiction(self, transactions_file):
        result = runner.invoke(app, ["report", str(transactions_file), "--year", "2024", "--jurisdiction", "XX"])
        assert result.exit_code == 1
        assert "No jurisdiction preset" in result.output

    def test_year_out_of_range(self, transactions_file):
        result = runner.invoke(app, ["report", str(transactions_file), "--year", "1800"])
        assert result.exit_code == 1
        assert "out of range" in result.output


class TestClassifyCommand:
    def test_table(self, transactions_file):
        result = runner.invoke(app, ["classify", str(transactions_file)])
        assert result.exit_code == 0, result.output
        assert "Purchase of Cryptocurrency" in result.output
        assert "Internal Transfer" in result.output

    def test_json(self, transactions_file):
        result = runner.invoke(app, ["classify", str(transactions_file), "--json"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        assert [row["id"] for row in rows] == ["buy-1", "buy-2", "sell-1", "move-1"]
        assert [row["event_type"] for row in rows] == ["ACQUISITION", "ACQUISITION", "DISPOSAL", "NON_TAXABLE"]
        assert rows[3]["kind"] == "TRANSFER"
