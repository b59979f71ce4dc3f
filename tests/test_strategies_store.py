"""Tests for the strategy store and win statistics."""

from decimal import Decimal

import pytest

from services import strategies_store
from services.errors import IntegrityRejection, NotFoundError, ValidationError
from tests.conftest import USER_ID


def _trade_row(strategy_id, trade_id, pnl=None, user_id=USER_ID):
    return {
        "user_id": user_id,
        "trade_id": trade_id,
        "strategy_id": strategy_id,
        "ticker": "AAPL",
        "entry_date": "2024-01-02T14:30:00+00:00",
        "pnl": Decimal(str(pnl)) if pnl is not None else None,
        "is_open": pnl is None,
    }


class TestCreate:
    def test_create_drops_blank_items_and_numbers_the_rest(self, dynamo):
        strategy = strategies_store.create_strategy(
            USER_ID, "  Breakout ", "", ["Volume spike", "   ", "Above VWAP"]
        )

        assert strategy["name"] == "Breakout"
        assert strategy["description"] is None
        assert strategy["completed_trades"] == 0
        assert strategy["checklist"] == [
            {"id": "1", "text": "Volume spike", "completed": False},
            {"id": "2", "text": "Above VWAP", "completed": False},
        ]
        assert len(dynamo.strategies.items) == 1

    def test_blank_name_rejected(self, dynamo):
        with pytest.raises(ValidationError):
            strategies_store.create_strategy(USER_ID, "   ", None, ["A"])
        assert dynamo.strategies.items == {}

    def test_all_blank_checklist_rejected(self, dynamo):
        with pytest.raises(ValidationError):
            strategies_store.create_strategy(USER_ID, "Breakout", None, ["", "  "])
        assert dynamo.strategies.items == {}

    def test_default_strategy_is_created_once(self, dynamo):
        first = strategies_store.ensure_default_strategy(USER_ID)
        second = strategies_store.ensure_default_strategy(USER_ID)

        assert first["strategy_id"] == second["strategy_id"]
        assert len(first["checklist"]) == 7
        assert len(dynamo.strategies.items) == 1


class TestListAndUpdate:
    def test_newest_first(self, dynamo):
        for sid, created in [("old", "2024-01-01T00:00:00+00:00"), ("new", "2024-03-01T00:00:00+00:00")]:
            dynamo.strategies.put_item(Item={
                "user_id": USER_ID, "strategy_id": sid, "name": sid,
                "checklist": [{"id": "1", "text": "A", "completed": False}],
                "created_at": created, "completed_trades": Decimal(0),
            })

        assert [s["strategy_id"] for s in strategies_store.list_strategies(USER_ID)] == ["new", "old"]

    def test_other_users_rows_are_invisible(self, dynamo):
        strategies_store.create_strategy("someone-else", "Theirs", None, ["A"])
        assert strategies_store.list_strategies(USER_ID) == []

    def test_update_keeps_counter_and_creation_time(self, dynamo):
        strategy = strategies_store.create_strategy(USER_ID, "Breakout", None, ["A"])
        strategies_store.increment_completed_trades(USER_ID, strategy["strategy_id"])

        updated = strategies_store.update_strategy(
            USER_ID, strategy["strategy_id"], "Breakout v2", "tighter", ["A", "B"]
        )

        assert updated["name"] == "Breakout v2"
        assert updated["description"] == "tighter"
        assert [i["text"] for i in updated["checklist"]] == ["A", "B"]
        assert updated["completed_trades"] == 1
        assert updated["created_at"] == strategy["created_at"]

    def test_update_validates(self, dynamo):
        strategy = strategies_store.create_strategy(USER_ID, "Breakout", None, ["A"])
        with pytest.raises(ValidationError):
            strategies_store.update_strategy(USER_ID, strategy["strategy_id"], "", None, ["A"])

    def test_update_unknown_strategy(self, dynamo):
        with pytest.raises(NotFoundError):
            strategies_store.update_strategy(USER_ID, "missing", "Name", None, ["A"])
        assert dynamo.strategies.items == {}


class TestDelete:
    def test_delete_without_trades(self, dynamo):
        strategy = strategies_store.create_strategy(USER_ID, "Breakout", None, ["A"])
        strategies_store.delete_strategy(USER_ID, strategy["strategy_id"])
        assert dynamo.strategies.items == {}

    def test_delete_with_trade_rows_is_rejected(self, dynamo):
        strategy = strategies_store.create_strategy(USER_ID, "Breakout", None, ["A"])
        dynamo.trades.put_item(Item=_trade_row(strategy["strategy_id"], "t-1"))

        with pytest.raises(IntegrityRejection) as exc_info:
            strategies_store.delete_strategy(USER_ID, strategy["strategy_id"])

        assert exc_info.value.reason == "has trades"
        assert strategies_store.get_strategy(USER_ID, strategy["strategy_id"]) == strategy

    def test_delete_unknown_strategy(self, dynamo):
        with pytest.raises(NotFoundError):
            strategies_store.delete_strategy(USER_ID, "missing")


class TestStats:
    def test_win_rate_ignores_trades_without_pnl(self):
        strategy = {"strategy_id": "s-1"}
        trades = [
            {"strategy_id": "s-1", "pnl": 5},
            {"strategy_id": "s-1", "pnl": -2},
            {"strategy_id": "s-1", "pnl": None},
            {"strategy_id": "other", "pnl": 9},
        ]

        assert strategies_store.stats_for(strategy, trades) == {
            "total_trades": 2,
            "winning_trades": 1,
            "win_rate": 50.0,
        }

    def test_no_counted_trades(self):
        assert strategies_store.stats_for({"strategy_id": "s-1"}, [])["win_rate"] == 0

    def test_listing_includes_stats(self, dynamo):
        strategy = strategies_store.create_strategy(USER_ID, "Breakout", None, ["A"])
        sid = strategy["strategy_id"]
        for n, pnl in enumerate([5, -2, None]):
            dynamo.trades.put_item(Item=_trade_row(sid, f"t-{n}", pnl))
        dynamo.strategies.update_item(
            Key={"user_id": USER_ID, "strategy_id": sid},
            UpdateExpression="SET completed_trades = :n",
            ExpressionAttributeValues={":n": Decimal(3)},
        )

        listed = strategies_store.list_strategies(USER_ID)[0]

        assert listed["total_trades"] == 2
        assert listed["winning_trades"] == 1
        assert listed["win_rate"] == 50.0
        assert listed["completed_trades"] == 3
