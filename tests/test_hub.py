from __future__ import annotations

from taskmaster_dashboard.notifications.hub import (
    GENERAL_UPDATE,
    MCP_STATUS_CHANGED,
    PROJECT_UPDATED,
    TASKS_UPDATED,
    NotificationHub,
)


def test_broadcast_reaches_every_subscriber() -> None:
    hub = NotificationHub()
    first = hub.subscribe()
    second = hub.subscribe()

    delivered = hub.broadcast_tasks_update("app", {"count": 1})

    assert delivered == 2
    for subscription in (first, second):
        message = subscription.get(timeout=1)
        assert message is not None
        assert message["type"] == TASKS_UPDATED
        assert message["projectName"] == "app"
        assert message["tasksData"] == {"count": 1}
        assert message["timestamp"]


def test_unsubscribed_clients_receive_nothing() -> None:
    hub = NotificationHub()
    with hub.subscribe() as subscription:
        assert hub.client_count == 1
    assert hub.client_count == 0

    assert hub.broadcast_mcp_status({"hasMCPServer": True}) == 0
    assert subscription.get(timeout=0.01) is None


def test_message_shapes() -> None:
    hub = NotificationHub()
    subscription = hub.subscribe()

    hub.broadcast_project_update("app", {"hasTaskmaster": True})
    hub.broadcast_mcp_status({"hasMCPServer": False})
    hub.broadcast_update("initialization")

    project = subscription.get(timeout=1)
    mcp = subscription.get(timeout=1)
    general = subscription.get(timeout=1)
    assert project is not None and project["type"] == PROJECT_UPDATED
    assert project["taskMasterData"] == {"hasTaskmaster": True}
    assert mcp is not None and mcp["type"] == MCP_STATUS_CHANGED
    assert general is not None and general["type"] == GENERAL_UPDATE
    assert general["updateType"] == "initialization"
    assert general["data"] == {}


def test_missing_identifiers_are_not_sent() -> None:
    hub = NotificationHub()
    subscription = hub.subscribe()

    assert hub.broadcast_project_update("", {}) == 0
    assert hub.broadcast_tasks_update("") == 0
    assert hub.broadcast_update("") == 0
    assert subscription.get(timeout=0.01) is None


def test_slow_client_drops_messages_without_blocking() -> None:
    hub = NotificationHub(max_queue=1)
    slow = hub.subscribe()

    assert hub.broadcast_update("one") == 1
    assert hub.broadcast_update("two") == 0

    message = slow.get(timeout=1)
    assert message is not None and message["updateType"] == "one"
