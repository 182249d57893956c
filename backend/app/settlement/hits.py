"""Hit counting over a resolved event slate."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from app.domain import Event, Ticket, UserHits


def is_scored(event: Event) -> bool:
    """Return True when the event takes part in scoring (resolved and not void)."""

    return not event.is_void and event.result is not None


def count_hits(selections: Sequence[Iterable[int]], events: Iterable[Event]) -> int:
    """Count scored events whose result is in the selection at the event's index."""

    hits = 0
    for event in events:
        if not is_scored(event):
            continue
        selection = selections[event.index] if 0 <= event.index < len(selections) else ()
        if event.result in set(selection or ()):
            hits += 1
    return hits


def max_possible_hits(events: Sequence[Event]) -> int:
    return sum(1 for event in events if is_scored(event))


def aggregate_best_hits(
    tickets: Iterable[Ticket],
    events: Sequence[Event],
    wallets: Mapping[int, str] | None = None,
) -> list[UserHits]:
    """Score every ticket and keep each user's best ticket.

    Wallets come from ``wallets`` when given, else from the user's tickets.
    The result is ordered by user id.
    """

    best: dict[int, int] = {}
    ticket_wallets: dict[int, str] = {}
    for ticket in tickets:
        hits = count_hits(ticket.selections, events)
        previous = best.get(ticket.user_id)
        if previous is None or hits > previous:
            best[ticket.user_id] = hits
        if ticket.wallet and ticket.user_id not in ticket_wallets:
            ticket_wallets[ticket.user_id] = ticket.wallet

    lookup = wallets or {}
    return [
        UserHits(
            user_id=user_id,
            wallet=lookup.get(user_id) or ticket_wallets.get(user_id, ""),
            hits=best[user_id],
        )
        for user_id in sorted(best)
    ]


__all__ = ["aggregate_best_hits", "count_hits", "is_scored", "max_possible_hits"]
