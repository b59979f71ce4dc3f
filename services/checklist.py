"""
Checklist engine.

An active instance is a plain dict ``{"strategy_id", "items": [...]}`` where
each item is ``{"id", "text", "completed"}``. Functions never mutate their
input; each returns a fresh instance.
"""

from typing import Iterable


def start(strategy: dict) -> dict:
    return {
        "strategy_id": strategy.get("strategy_id"),
        "items": [
            {"id": str(item["id"]), "text": item.get("text", ""), "completed": False}
            for item in strategy.get("checklist", [])
        ],
    }


def set_item(instance: dict, item_id: str, completed: bool) -> dict:
    # Unknown ids are ignored: the client may hold a stale copy of the list.
    item_id = str(item_id)
    return {
        **instance,
        "items": [
            {**item, "completed": bool(completed)} if item["id"] == item_id else dict(item)
            for item in instance["items"]
        ],
    }


def apply_states(instance: dict, states: Iterable[dict]) -> dict:
    for state in states:
        instance = set_item(instance, state["id"], state.get("completed", False))
    return instance


def progress(instance: dict) -> dict:
    items = instance["items"]
    total = len(items)
    completed = sum(1 for item in items if item["completed"])
    percentage = (completed / total) * 100 if total > 0 else 0

    return {
        "completed_count": completed,
        "total_count": total,
        "percentage": percentage,
    }


def is_complete(instance: dict) -> bool:
    # Vacuously true for an empty list; stores refuse to save one.
    return all(item["completed"] for item in instance["items"])
