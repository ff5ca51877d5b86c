# src/taskbell/persistence/http_api.py

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from ..core.errors import PersistenceError
from ..tasks.task_models import SharedTask, ShareStatus, Task, TaskDraft

logger = logging.getLogger(__name__)

DONE_STATUSES = {"done", "completed", "concluida", "concluída"}
STATUS_PENDING = "pendente"
STATUS_DONE = "concluida"

# Share invitation states as the backend spells them.
SHARE_STATUS_WIRE = {
    ShareStatus.PENDING: "pendente",
    ShareStatus.ACCEPTED: "aceita",
    ShareStatus.DECLINED: "recusada",
}
_SHARE_STATUS_FROM_WIRE = {v: k for k, v in SHARE_STATUS_WIRE.items()}


def _format_due(ts: float) -> str:
    # Wire format is UTC minutes: "YYYY-MM-DDTHH:MM".
    return datetime.fromtimestamp(ts, tz=UTC).strftime("%Y-%m-%dT%H:%M")


def _parse_ts(raw: Any) -> float | None:
    """Parse the backend's timestamps; naive values are UTC."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    s = str(raw).strip().replace("Z", "+00:00")
    try:
        dt = datetime.fromisoformat(s)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.timestamp()


def task_from_payload(data: dict[str, Any]) -> Task:
    due_at = _parse_ts(data.get("due_date"))
    if due_at is None:
        raise PersistenceError(f"task {data.get('id')} has no valid due_date")
    status = str(data.get("status") or STATUS_PENDING).strip().lower()
    return Task(
        id=int(data["id"]),
        title=str(data.get("title") or ""),
        description=str(data.get("description") or ""),
        due_at=due_at,
        completed=status in DONE_STATUSES,
        created_at=_parse_ts(data.get("created_at")) or 0.0,
        updated_at=_parse_ts(data.get("updated_at")),
    )


def draft_to_payload(draft: TaskDraft) -> dict[str, Any]:
    if draft.due_at is None:
        raise PersistenceError("due_at is required")
    return {
        "title": draft.title,
        "description": draft.description,
        "due_date": _format_due(draft.due_at),
        "status": STATUS_DONE if draft.completed else STATUS_PENDING,
    }


def shared_from_payload(data: dict[str, Any], *, peer: str) -> SharedTask:
    """
    Parse a row of /tasks/shared/received (peer="from") or /tasks/shared/sent
    (peer="to"). Rows are task rows plus share columns; the invitation id is
    `share_id` when the backend sends one, else the row id.
    """
    status = str(data.get("share_status") or "").strip().lower()
    return SharedTask(
        share_id=int(data.get("share_id") or data["id"]),
        task=task_from_payload(data),
        status=_SHARE_STATUS_FROM_WIRE.get(status, ShareStatus.PENDING),
        peer_name=str(data.get(f"{peer}_user_name") or ""),
        peer_email=str(data.get(f"{peer}_user_email") or ""),
    )


class HttpTaskApi:
    """
    TaskApi over the REST backend:

      POST   /auth/send-code  -> {"message": ...}  (mails a verification code)
      POST   /auth/register   -> {"message": ...}
      POST   /auth/login      -> {"token": ...}
      GET    /tasks
      POST   /tasks
      PUT    /tasks/{id}      (answers {"message": ...}; the task is re-read)
      DELETE /tasks/{id}
      POST   /tasks/{id}/share
      GET    /tasks/shared/received
      GET    /tasks/shared/sent
      POST   /tasks/shared/{share_id}/respond
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        auth_token: str | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Authorization": f"Bearer {auth_token}"} if auth_token else {}
        try:
            resp = await self._client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as e:
            raise PersistenceError(f"{method} {path} failed: {e!r}") from e

        try:
            data = resp.json()
        except ValueError:
            data = None

        if resp.status_code >= 400:
            detail = data.get("error") if isinstance(data, dict) else None
            raise PersistenceError(f"{method} {path} -> {resp.status_code}: {detail or resp.text}")
        return data

    async def login(self, email: str, password: str) -> str:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise PersistenceError("login response has no token")
        logger.info("Logged in as %s", email)
        return str(token)

    async def list_tasks(self, auth_token: str) -> list[Task]:
        data = await self._request("GET", "/tasks", auth_token=auth_token)
        if not isinstance(data, list):
            raise PersistenceError("GET /tasks did not return a list")
        return [task_from_payload(item) for item in data if isinstance(item, dict)]

    async def create_task(self, auth_token: str, draft: TaskDraft) -> Task:
        data = await self._request("POST", "/tasks", auth_token=auth_token, json=draft_to_payload(draft))
        if not isinstance(data, dict) or "id" not in data:
            raise PersistenceError("POST /tasks did not return a task")
        data.setdefault("created_at", datetime.now(UTC).isoformat())
        return task_from_payload(data)

    async def update_task(self, auth_token: str, task_id: int, draft: TaskDraft) -> Task:
        data = await self._request(
            "PUT",
            f"/tasks/{int(task_id)}",
            auth_token=auth_token,
            json=draft_to_payload(draft),
        )
        if isinstance(data, dict) and "id" in data:
            return task_from_payload(data)

        for task in await self.list_tasks(auth_token):
            if task.id == int(task_id):
                return task
        raise PersistenceError(f"task {task_id} not found after update")

    async def delete_task(self, auth_token: str, task_id: int) -> None:
        await self._request("DELETE", f"/tasks/{int(task_id)}", auth_token=auth_token)

    # ---- accounts ----

    @staticmethod
    def _message(data: Any) -> str:
        return str(data.get("message") or "") if isinstance(data, dict) else ""

    async def send_code(self, email: str) -> str:
        data = await self._request("POST", "/auth/send-code", json={"email": email})
        return self._message(data)

    async def register(self, name: str, email: str, password: str, code: str) -> str:
        """Create an account; the backend then mails a link that must be opened before login."""
        data = await self._request(
            "POST",
            "/auth/register",
            json={"name": name, "email": email, "password": password, "code": code},
        )
        logger.info("Registered %s", email)
        return self._message(data)

    # ---- sharing ----

    async def share_task(self, auth_token: str, task_id: int, to_email: str) -> str:
        data = await self._request(
            "POST",
            f"/tasks/{int(task_id)}/share",
            auth_token=auth_token,
            json={"to_email": to_email},
        )
        logger.info("Task %s shared with %s", task_id, to_email)
        return self._message(data)

    async def _list_shared(self, auth_token: str, box: str, peer: str) -> list[SharedTask]:
        path = f"/tasks/shared/{box}"
        data = await self._request("GET", path, auth_token=auth_token)
        if not isinstance(data, list):
            raise PersistenceError(f"GET {path} did not return a list")
        return [shared_from_payload(item, peer=peer) for item in data if isinstance(item, dict)]

    async def list_shared_received(self, auth_token: str) -> list[SharedTask]:
        return await self._list_shared(auth_token, "received", "from")

    async def list_shared_sent(self, auth_token: str) -> list[SharedTask]:
        return await self._list_shared(auth_token, "sent", "to")

    async def respond_share(self, auth_token: str, share_id: int, accept: bool) -> str:
        status = ShareStatus.ACCEPTED if accept else ShareStatus.DECLINED
        data = await self._request(
            "POST",
            f"/tasks/shared/{int(share_id)}/respond",
            auth_token=auth_token,
            json={"response": SHARE_STATUS_WIRE[status]},
        )
        return self._message(data)
