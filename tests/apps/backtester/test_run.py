"""Tests for the signal engine CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from signal_engine.apps.backtester.run import app

CSV_HEADER = "timestamp,open,high,low,close,volume\n"
_JAN_1 = 1704067200
_DAY = 86400

runner = CliRunner()


def _write_csv(path: Path, closes: list[int]) -> Path:
    rows = [
        f"{_JAN_1 + i * _DAY},{c},{c + 1},{c - 1},{c},{1000 + i}\n" for i, c in enumerate(closes)
    ]
    path.write_text(CSV_HEADER + "".join(rows))
    return path


@pytest.fixture
def csv_file(tmp_path: Path) -> Path:
    """Create a CSV file with 80 daily candles of a steady uptrend."""
    return _write_csv(tmp_path / "candles.csv", [100 + i for i in range(80)])


@pytest.fixture
def signal_file(tmp_path: Path) -> Path:
    """Create a YAML signal file with a plain price condition."""
    f = tmp_path / "signal.yaml"
    f.write_text("condition: '> 1'\nsignalType: BUY\nlogicMode: ANY\n")
    return f


class TestRunCommand:
    """Tests for the run command."""

    def test_sample_source(self, signal_file: Path) -> None:
        """Backtest against generated sample data."""
        result = runner.invoke(
            app,
            [
                "run",
                "--signal",
                str(signal_file),
                "--source",
                "sample",
                "--symbol",
                "MSFT",
                "--start",
                "2023-01-01",
                "--end",
                "2023-12-31",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "MSFT" in result.output
        assert "--- Statistics ---" in result.output

    def test_csv_json_output(self, csv_file: Path, signal_file: Path) -> None:
        """Print the camelCase result as JSON."""
        result = runner.invoke(
            app,
            [
                "run",
                "--signal",
                str(signal_file),
                "--csv",
                str(csv_file),
                "--start",
                "2024-01-01",
                "--end",
                "2024-12-31",
                "--fees",
                "0",
                "--take-profit",
                "10",
                "--json",
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["trades"] == 1
        assert data["triggerPoints"][0] == {"date": "2024-01-02", "type": "buy", "price": 101.0}
        assert len(data["equityCurve"]) == 80

    def test_insufficient_data_exits_with_error(self, tmp_path: Path, signal_file: Path) -> None:
        """Exit with code 1 and explain when the series is too short."""
        short = _write_csv(tmp_path / "short.csv", [100, 101, 102])
        result = runner.invoke(
            app,
            ["run", "--signal", str(signal_file), "--csv", str(short), "--start", "2024-01-01"],
        )
        assert result.exit_code == 1
        assert "Insufficient historical data" in result.output

    def test_invalid_source(self, signal_file: Path) -> None:
        """Reject an unknown data source."""
        result = runner.invoke(app, ["run", "--signal", str(signal_file), "--source", "binance"])
        assert result.exit_code == 2

    def test_csv_source_requires_path(self, signal_file: Path) -> None:
        """Reject the csv source without --csv."""
        result = runner.invoke(app, ["run", "--signal", str(signal_file)])
        assert result.exit_code == 2

    def test_invalid_position_size(self, csv_file: Path, signal_file: Path) -> None:
        """Reject an out-of-range position size."""
        result = runner.invoke(
            app,
            [
                "run",
                "--signal",
                str(signal_file),
                "--csv",
                str(csv_file),
                "--position-size",
                "2",
            ],
        )
        assert result.exit_code == 2

    def test_end_before_start(self, csv_file: Path, signal_file: Path) -> None:
        """Reject an end date before the start date."""
        result = runner.invoke(
            app,
            [
                "run",
                "--signal",
                str(signal_file),
                "--csv",
                str(csv_file),
                "--start",
                "2024-06-01",
                "--end",
                "2024-01-01",
            ],
        )
        assert result.exit_code == 2

    def test_chart_output(self, tmp_path: Path, csv_file: Path, signal_file: Path) -> None:
        """Save charts to an HTML file."""
        output = tmp_path / "charts.html"
        result = runner.invoke(
            app,
            [
                "run",
                "--signal",
                str(signal_file),
                "--csv",
                str(csv_file),
                "--start",
                "2024-01-01",
                "--end",
                "2024-12-31",
                "--chart-output",
                str(output),
            ],
        )
        assert result.exit_code == 0, result.output
        assert output.exists()

    def test_bad_signal_file(self, tmp_path: Path, csv_file: Path) -> None:
        """Reject a signal file that is not a mapping."""
        bad = tmp_path / "bad.yaml"
        bad.write_text("- just\n- a list\n")
        result = runner.invoke(app, ["run", "--signal", str(bad), "--csv", str(csv_file)])
        assert result.exit_code == 2

    def test_null_indicator_period(self, tmp_path: Path) -> None:
        """Reject a signal whose indicator period is null as a bad parameter."""
        bad = tmp_path / "null_period.json"
        bad.write_text(json.dumps({"indicatorConfig": {"rsi": {"enabled": True, "period": None}}}))
        result = runner.invoke(app, ["run", "--signal", str(bad), "--source", "sample"])
        assert result.exit_code == 2
        assert "rsi.period must be an integer" in result.output

    @pytest.mark.parametrize("value", ["nan", "inf"])
    def test_non_finite_capital(self, signal_file: Path, value: str) -> None:
        """Reject NaN and infinite capital as a bad parameter."""
        result = runner.invoke(
            app, ["run", "--signal", str(signal_file), "--source", "sample", "--capital", value]
        )
        assert result.exit_code == 2
        assert "must be a finite number" in result.output


class TestSignalCommand:
    """Tests for the signal command."""

    def test_single_signal_triggered(self, csv_file: Path, signal_file: Path) -> None:
        """Report a triggered price signal at the latest candle."""
        result = runner.invoke(
            app, ["signal", "--signal", str(signal_file), "--csv", str(csv_file)]
        )
        assert result.exit_code == 0, result.output
        assert "2024-03-20 close 179" in result.output
        assert "Signal: TRIGGERED BUY: Price > 1" in result.output

    def test_dual_signal(self, tmp_path: Path, csv_file: Path) -> None:
        """Report both sides of a dual signal."""
        dual = tmp_path / "dual.json"
        dual.write_text(
            json.dumps(
                {
                    "enableBuySignal": True,
                    "enableSellSignal": True,
                    "buyIndicatorConfig": {"rsi": {"enabled": True, "triggerType": "oversold"}},
                    "sellIndicatorConfig": {
                        "rsi": {"enabled": True, "triggerType": "overbought"}
                    },
                }
            )
        )
        result = runner.invoke(app, ["signal", "--signal", str(dual), "--csv", str(csv_file)])
        assert result.exit_code == 0, result.output
        assert "BUY side: not triggered" in result.output
        assert "SELL side: TRIGGERED SELL: RSI overbought (100.00 >= 70)" in result.output

    def test_no_candles_for_symbol(self, tmp_path: Path, signal_file: Path) -> None:
        """Exit with code 1 when the file has no rows for the symbol."""
        f = tmp_path / "other.csv"
        f.write_text("symbol,timestamp,open,high,low,close,volume\nMSFT,2024-01-01,1,1,1,1,1\n")
        result = runner.invoke(
            app, ["signal", "--signal", str(signal_file), "--csv", str(f), "--symbol", "AAPL"]
        )
        assert result.exit_code == 1
