"""Tests for the PortfolioAnalyzer facade and trade provider."""

from datetime import date

import pytest

from tradelog.analytics.portfolio_analyzer import PortfolioAnalyzer, PortfolioSummary
from tradelog.config.metrics import MetricNames, get_metrics
from tradelog.config.settings import AnalyticsSettings
from tradelog.core.errors import ConfigurationError
from tradelog.journal.provider import InMemoryTradeProvider, TradeDataProvider, UserSettings


@pytest.fixture
def raw_records():
    return [
        {
            "id": "t1",
            "user_id": "u1",
            "symbol": "AAPL",
            "type": "long",
            "entry_date": "2026-01-01",
            "entry_price": 100,
            "position_size": 10,
            "exit_price": 110,
            "exit_date": "2026-01-01",
            "stop_loss": 90,
            "status": "closed",
        },
        {
            "id": "t2",
            "user_id": "u1",
            "symbol": "TSLA",
            "type": "short",
            "entry_date": "2026-01-02",
            "entry_price": 50,
            "quantity": 20,
            "stop_loss": 55,
            "status": "open",
        },
        {
            "id": "t3",
            "user_id": "u2",
            "symbol": "MSFT",
            "type": "long",
            "entry_date": "2026-01-03",
            "entry_price": 300,
            "quantity": 1,
        },
        {"id": "broken", "user_id": "u1", "symbol": "BAD", "type": "diagonal"},
    ]


@pytest.fixture
def provider(raw_records):
    return InMemoryTradeProvider(
        raw_records,
        user_settings={"u1": {"totalCapital": 20_000, "riskPerTrade": 2}},
    )


class TestInMemoryTradeProvider:
    """Tests for InMemoryTradeProvider."""

    def test_is_a_provider(self, provider):
        assert isinstance(provider, TradeDataProvider)
        assert provider.name == "memory"

    def test_trades_by_user(self, provider):
        assert [t.id for t in provider.get_trades("u1")] == ["t1", "t2"]
        assert [t.id for t in provider.get_trades("u2")] == ["t3"]
        assert provider.get_trades("nobody") == []

    def test_skips_malformed_records(self, provider):
        assert provider.skipped == 1

    def test_user_settings(self, provider):
        settings = provider.get_user_settings("u1")

        assert settings.total_capital == 20_000
        assert settings.max_risk_amount() == pytest.approx(400.0)
        assert provider.get_user_settings("u2") == UserSettings()


class TestPortfolioAnalyzer:
    """Tests for PortfolioAnalyzer."""

    def test_analyze(self, equity_trades):
        summary = PortfolioAnalyzer().analyze(
            equity_trades, initial_capital=1000.0, as_of=date(2026, 1, 31)
        )

        assert isinstance(summary, PortfolioSummary)
        assert summary.total_pnl == pytest.approx(-150.0)
        assert summary.final_equity == pytest.approx(850.0)
        assert summary.total_return_percent == pytest.approx(-15.0)
        assert summary.closed_trades == 3
        assert summary.open_trades == 0
        assert summary.win_rate == pytest.approx(200 / 3)
        assert summary.drawdown.stats.max_drawdown == pytest.approx(27.2727, abs=1e-3)
        assert len(summary.monthly) == 6
        assert summary.monthly[-1].pnl == pytest.approx(-150.0)
        assert summary.best_worst.worst.trade_id == "t2"

    def test_empty_journal(self):
        summary = PortfolioAnalyzer().analyze([], initial_capital=1000.0, as_of=date(2026, 1, 31))

        assert summary.final_equity == 1000.0
        assert summary.total_pnl == 0.0
        assert summary.win_rate == 0.0
        assert summary.exposure.open_positions == 0

    def test_defaults_from_settings(self, equity_trades):
        settings = AnalyticsSettings(initial_capital=5000.0, monthly_window_months=3)
        summary = PortfolioAnalyzer(settings=settings).analyze(
            equity_trades, as_of=date(2026, 1, 31)
        )

        assert summary.initial_capital == 5000.0
        assert len(summary.monthly) == 3
        assert summary.exposure.total_capital == 500_000.0

    def test_to_dict_uses_camel_case(self, equity_trades):
        d = PortfolioAnalyzer().analyze(
            equity_trades, initial_capital=1000.0, as_of=date(2026, 1, 31)
        ).to_dict()

        for key in ("totalPnl", "winRate", "equityCurve", "drawdown", "monthly", "bestWorst"):
            assert key in d
        assert d["asOf"] == "2026-01-31"
        assert d["drawdown"]["stats"]["riskLevel"] == "High"

    def test_records_metrics(self, equity_trades):
        analyzer = PortfolioAnalyzer()
        analyzer.analyze(equity_trades, initial_capital=1000.0, as_of=date(2026, 1, 31))

        metrics = get_metrics()
        assert metrics.get_counter(MetricNames.ANALYSIS_RUNS_TOTAL) == 1
        assert metrics.get_counter(MetricNames.TRADES_ANALYZED_TOTAL) == 3
        assert metrics.get_gauge(MetricNames.MAX_DRAWDOWN_PERCENT) == pytest.approx(27.2727, abs=1e-3)
        assert metrics.get_histogram_stats(MetricNames.ANALYSIS_DURATION_MS)["count"] == 1

    def test_analyze_user(self, provider):
        summary = PortfolioAnalyzer(provider=provider).analyze_user("u1", as_of=date(2026, 1, 31))

        assert summary.initial_capital == 20_000
        assert summary.trade_count == 2
        assert summary.total_pnl == pytest.approx(100.0)
        assert summary.exposure.total_exposure == pytest.approx(1000.0)
        assert summary.exposure.exposure_percent == pytest.approx(5.0)
        assert summary.exposure.potential_loss == pytest.approx(100.0)
        assert summary.exposure.max_risk_amount == pytest.approx(400.0)
        assert summary.exposure.positions_over_risk_limit == 0

    def test_analyze_user_flags_positions_over_risk_limit(self, raw_records):
        provider = InMemoryTradeProvider(
            raw_records,
            user_settings={"u1": {"totalCapital": 20_000, "riskPerTrade": 0.25}},
        )
        summary = PortfolioAnalyzer(provider=provider).analyze_user("u1", as_of=date(2026, 1, 31))

        assert summary.exposure.max_risk_amount == pytest.approx(50.0)
        assert summary.exposure.positions_over_risk_limit == 1
        assert summary.exposure.positions[0].trade_id == "t2"
        assert summary.exposure.positions[0].exceeds_risk_limit

    def test_analyze_user_without_settings(self, provider):
        summary = PortfolioAnalyzer(provider=provider).analyze_user("u2", as_of=date(2026, 1, 31))

        assert summary.initial_capital == 10_000.0
        assert summary.exposure.total_capital == 500_000.0
        assert summary.exposure.max_risk_amount is None

    def test_analyze_user_requires_provider(self):
        with pytest.raises(ConfigurationError):
            PortfolioAnalyzer().analyze_user("u1")
