from __future__ import annotations

import logging
import queue
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from ..domain.models import iso, utcnow


LOG = logging.getLogger(__name__)

PROJECT_UPDATED = "taskmaster-project-updated"
TASKS_UPDATED = "taskmaster-tasks-updated"
MCP_STATUS_CHANGED = "taskmaster-mcp-status-changed"
GENERAL_UPDATE = "taskmaster-update"


class Subscription:
    """
    One connected client. Messages wait in a bounded queue until the client
    reads them.
    """

    def __init__(self, hub: "NotificationHub", maxsize: int) -> None:
        self.id = str(uuid4())
        self.hub = hub
        self.messages: "queue.Queue[Dict[str, Any]]" = queue.Queue(maxsize=maxsize)

    def get(self, timeout: Optional[float] = None) -> Optional[Dict[str, Any]]:
        try:
            return self.messages.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self.hub.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class NotificationHub:
    """
    Fan-out of TaskMaster state changes to every connected client.
    """

    def __init__(self, max_queue: int = 100) -> None:
        self._lock = Lock()
        self._subscribers: List[Subscription] = []
        self.max_queue = max_queue

    def subscribe(self) -> Subscription:
        subscription = Subscription(self, self.max_queue)
        with self._lock:
            self._subscribers.append(subscription)
        LOG.debug("Client %s subscribed (%d connected)", subscription.id, self.client_count)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, message: Dict[str, Any]) -> int:
        """Deliver to every subscriber; returns how many received it."""
        with self._lock:
            subscribers = list(self._subscribers)
        delivered = 0
        for subscription in subscribers:
            try:
                subscription.messages.put_nowait(message)
                delivered += 1
            except queue.Full:
                LOG.warning("Dropping %s for slow client %s", message.get("type"), subscription.id)
        return delivered

    # --- Message builders ---------------------------------------------------
    def broadcast_project_update(self, project_name: str, taskmaster_data: Any) -> int:
        if not project_name:
            LOG.warning("TaskMaster broadcast: missing projectName")
            return 0
        return self.publish(
            {
                "type": PROJECT_UPDATED,
                "projectName": project_name,
                "taskMasterData": taskmaster_data,
                "timestamp": iso(utcnow()),
            }
        )

    def broadcast_tasks_update(self, project_name: str, tasks_data: Any = None) -> int:
        if not project_name:
            LOG.warning("TaskMaster broadcast: missing projectName")
            return 0
        return self.publish(
            {
                "type": TASKS_UPDATED,
                "projectName": project_name,
                "tasksData": tasks_data,
                "timestamp": iso(utcnow()),
            }
        )

    def broadcast_mcp_status(self, mcp_status: Any) -> int:
        return self.publish({"type": MCP_STATUS_CHANGED, "mcpStatus": mcp_status, "timestamp": iso(utcnow())})

    def broadcast_update(self, update_type: str, data: Optional[Dict[str, Any]] = None) -> int:
        if not update_type:
            LOG.warning("TaskMaster broadcast: missing updateType")
            return 0
        return self.publish(
            {
                "type": GENERAL_UPDATE,
                "updateType": update_type,
                "data": data or {},
                "timestamp": iso(utcnow()),
            }
        )
