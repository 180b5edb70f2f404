import asyncio
from datetime import datetime, timedelta

import pytest

import database
import maintenance
import orders


@pytest.mark.parametrize(
    "now, expected_hours",
    [
        (datetime(2024, 5, 1, 0, 0), 2),
        (datetime(2024, 5, 1, 1, 30), 0.5),
        (datetime(2024, 5, 1, 2, 0), 24),
        (datetime(2024, 5, 1, 23, 0), 3),
    ],
)
def test_seconds_until(now, expected_hours):
    assert maintenance.seconds_until(2, now) == expected_hours * 3600


def test_main_runs_sweep(monkeypatch, capsys):
    monkeypatch.setattr(maintenance, "sweep_cancelled_orders", lambda: 3)

    assert maintenance.main() == 0
    assert "Deleted 3" in capsys.readouterr().out


def test_scheduled_sweep_survives_failures(monkeypatch):
    calls = []

    def flaky_sweep():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("mongo down")
        return 0

    monkeypatch.setattr(maintenance, "seconds_until", lambda hour: 0)
    monkeypatch.setattr(maintenance, "sweep_cancelled_orders", flaky_sweep)

    async def scenario():
        task = asyncio.create_task(maintenance.run_daily_sweep(2))
        while len(calls) < 2:
            await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert len(calls) >= 2


def test_sweep_uses_retention_window(mongo):
    now = database.utcnow()
    for age in (1, 8):
        order_id = database.create_document(
            "order", {"user_id": "u", "items": [], "total": 0, "shipping_address": "x", "status": "cancelled"}
        )
        mongo["order"].update_one(
            {"_id": database.object_id(order_id)}, {"$set": {"updated_at": now - timedelta(days=age)}}
        )

    assert orders.sweep_cancelled_orders(now=now, retention_days=7) == 1
    assert mongo["order"].count_documents({}) == 1
