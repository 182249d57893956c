"""Forward-only draw state machine: setup -> open -> closed -> settled."""

from __future__ import annotations

from app.domain import AlreadySettledError, DrawStatus, InvalidDrawStateError

_NEXT_STATUS: dict[DrawStatus, DrawStatus] = {
    DrawStatus.SETUP: DrawStatus.OPEN,
    DrawStatus.OPEN: DrawStatus.CLOSED,
    DrawStatus.CLOSED: DrawStatus.SETTLED,
}


def next_status(current: DrawStatus) -> DrawStatus | None:
    return _NEXT_STATUS.get(DrawStatus(current))


def ensure_transition(current: DrawStatus, target: DrawStatus) -> None:
    """Raise unless ``target`` is the single status that follows ``current``."""

    current = DrawStatus(current)
    target = DrawStatus(target)
    if current is DrawStatus.SETTLED and target is DrawStatus.SETTLED:
        raise AlreadySettledError("Draw is already settled")
    if next_status(current) is not target:
        raise InvalidDrawStateError(
            f"Cannot move draw from '{current.value}' to '{target.value}'"
        )


__all__ = ["ensure_transition", "next_status"]
