"""
Win/loss statistics, both the pure aggregation and the /stats endpoint.
"""
from decimal import Decimal

from trade_journal.services.stats_aggregator import compute_stats


class TestComputeStats:
    def test_mixed_results(self):
        stats = compute_stats([Decimal("10"), Decimal("-5"), Decimal("0"), Decimal("20")])

        assert stats.total == 4
        assert stats.wins == 2
        assert stats.losses == 1
        assert stats.winrate == Decimal("50.00")
        assert stats.total_pnl == Decimal("25")

    def test_no_trades(self):
        stats = compute_stats([])

        assert stats.total == 0
        assert stats.wins == 0
        assert stats.losses == 0
        assert stats.winrate == 0
        assert stats.total_pnl == 0

    def test_breakeven_only(self):
        stats = compute_stats([Decimal("0"), Decimal("0")])

        assert (stats.total, stats.wins, stats.losses) == (2, 0, 0)
        assert stats.winrate == Decimal("0.00")

    def test_winrate_rounds_to_two_places(self):
        assert compute_stats([1, -1, -1]).winrate == Decimal("33.33")
        assert compute_stats([1, 1, -1]).winrate == Decimal("66.67")

    def test_sum_is_exact(self):
        stats = compute_stats([Decimal("0.1"), Decimal("0.1"), Decimal("0.1")])

        assert stats.total_pnl == Decimal("0.3")

    def test_floats_are_read_through_their_repr(self):
        assert compute_stats([0.1, 0.2]).total_pnl == Decimal("0.3")

    def test_null_results_count_as_zero(self):
        stats = compute_stats([None, Decimal("5")])

        assert stats.total == 2
        assert stats.wins == 1
        assert stats.total_pnl == Decimal("5")


class TestStatsEndpoint:
    def test_example_results(self, client, make_user, add_trade):
        headers = make_user()
        for result in (10, -5, 0, 20):
            add_trade(headers, result=result)

        response = client.get("/api/stats", headers=headers)

        assert response.status_code == 200
        assert response.json() == {
            "totalTrades": 4,
            "wins": 2,
            "losses": 1,
            "winrate": 50.0,
            "totalPnl": 25,
        }

    def test_no_trades(self, client, make_user):
        response = client.get("/api/stats", headers=make_user())

        assert response.status_code == 200
        assert response.json() == {
            "totalTrades": 0,
            "wins": 0,
            "losses": 0,
            "winrate": 0,
            "totalPnl": 0,
        }

    def test_decimal_results(self, client, make_user, add_trade):
        headers = make_user()
        for result in ("12.35", "-4.10", "0.05"):
            add_trade(headers, result=result)

        data = client.get("/api/stats", headers=headers).json()

        assert data["totalPnl"] == 8.3
        assert data["winrate"] == 66.67

    def test_scoped_to_caller(self, client, make_user, add_trade):
        alice = make_user("alice")
        bob = make_user("bob")
        add_trade(alice, result=100)
        add_trade(bob, result=-30)

        assert client.get("/api/stats", headers=alice).json()["totalPnl"] == 100
        assert client.get("/api/stats", headers=bob).json()["losses"] == 1

    def test_reflects_deletes(self, client, make_user, add_trade):
        headers = make_user()
        add_trade(headers, result=10)
        losing = add_trade(headers, result=-10)

        client.delete(f"/api/trades/{losing}", headers=headers)

        data = client.get("/api/stats", headers=headers).json()
        assert data["totalTrades"] == 1
        assert data["winrate"] == 100.0
