# src/taskbell/notifications/notification_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class PermissionState(StrEnum):
    UNSUPPORTED = "unsupported"
    DEFAULT = "default"
    GRANTED = "granted"
    DENIED = "denied"

    @classmethod
    def parse(cls, raw: str | None) -> PermissionState:
        if not raw:
            return cls.DEFAULT
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.DEFAULT


class DeliveryChannel(StrEnum):
    NATIVE = "native"
    TOAST = "toast"


class DispatchState(StrEnum):
    """
    Per-firing lifecycle:
      ARMED -> FIRED -> DELIVERED_NATIVE | DELIVERED_FALLBACK
            -> ACKNOWLEDGED | TIMED_OUT | ACTIONED
    """

    ARMED = "armed"
    FIRED = "fired"
    DELIVERED_NATIVE = "delivered_native"
    DELIVERED_FALLBACK = "delivered_fallback"
    ACKNOWLEDGED = "acknowledged"
    TIMED_OUT = "timed_out"
    ACTIONED = "actioned"

    @property
    def is_final(self) -> bool:
        return self in (DispatchState.ACKNOWLEDGED, DispatchState.TIMED_OUT, DispatchState.ACTIONED)


# ---- notification actions: a closed set of exactly two variants ----


@dataclass(slots=True, frozen=True)
class MarkDone:
    label: str = "Mark as done"


@dataclass(slots=True, frozen=True)
class Snooze:
    minutes: int = 5

    @property
    def label(self) -> str:
        return f"Snooze {self.minutes} min"


NotificationAction = MarkDone | Snooze


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    title: str
    body: str
    tag: str
    actions: tuple[NotificationAction, ...] = ()
    require_interaction: bool = True


class ToastKind(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(slots=True)
class Toast:
    id: int
    kind: ToastKind
    title: str
    message: str
    created_at: float
    dismissed: bool = False
    dismiss_reason: str | None = None


@dataclass(slots=True)
class Delivery:
    """One reminder firing and what happened to it."""

    task_id: int
    fire_at: float
    title: str
    body: str
    state: DispatchState = DispatchState.ARMED
    channel: DeliveryChannel | None = None
    handle: Any = None
    toast: Toast | None = None
    history: list[DispatchState] = field(default_factory=lambda: [DispatchState.ARMED])

    def advance(self, new_state: DispatchState) -> None:
        self.state = new_state
        self.history.append(new_state)
