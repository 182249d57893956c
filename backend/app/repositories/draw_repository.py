"""Draw and ticket persistence for the settlement engine."""

from __future__ import annotations

from typing import Any

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session, selectinload

from app.domain import AlreadySettledError, Draw, DrawStatus, InvalidDrawStateError, Ticket
from app.models import DrawRecord, EventRecord, TicketRecord
from app.schemas import TicketSnapshot, dump_settlement, parse_draw_snapshot


class DrawNotFoundError(LookupError):
    """Raised when a requested draw does not exist in the store."""


class DrawRepository:
    """Encapsulate draw, event and ticket persistence concerns."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ------------------------------------------------------------------
    # Mutations

    def create_draw(self, draw: Draw) -> DrawRecord:
        record = DrawRecord(
            draw_id=draw.draw_id,
            status=DrawStatus(draw.status).value,
            created_at=draw.created_at,
            rollover_in=draw.rollover_in,
        )
        self._session.add(record)
        self._sync_events(record, draw)
        self._session.flush()
        return record

    def save_draw(self, draw: Draw) -> DrawRecord:
        """Persist status and slate of a draw that is not being settled.

        Settlement is written only through :meth:`save_settlement`.
        """

        record = self._session.get(DrawRecord, draw.draw_id)
        if record is None:
            return self.create_draw(draw)
        if record.status == DrawStatus.SETTLED.value:
            raise AlreadySettledError(f"Draw {draw.draw_id} is already settled")
        if DrawStatus(draw.status) is DrawStatus.SETTLED:
            raise InvalidDrawStateError(
                "Settled draws must be persisted with save_settlement"
            )
        record.status = DrawStatus(draw.status).value
        record.rollover_in = draw.rollover_in
        self._sync_events(record, draw)
        self._session.flush()
        return record

    def save_settlement(self, draw: Draw) -> None:
        """Store a settled draw, only if it is still closed in the store.

        The status check and the write happen in one UPDATE, so two
        concurrent settlements of the same draw cannot both succeed.
        """

        if draw.settlement is None or DrawStatus(draw.status) is not DrawStatus.SETTLED:
            raise InvalidDrawStateError(f"Draw {draw.draw_id} has no settlement to store")

        statement = (
            update(DrawRecord)
            .where(
                DrawRecord.draw_id == draw.draw_id,
                DrawRecord.status == DrawStatus.CLOSED.value,
            )
            .values(
                status=DrawStatus.SETTLED.value,
                settled_at=draw.settlement.settled_at,
                settlement=dump_settlement(draw.settlement),
            )
        )
        result = self._session.execute(statement)
        if result.rowcount != 1:
            raise AlreadySettledError(
                f"Draw {draw.draw_id} was not in 'closed' status in the store; settlement not saved"
            )
        self._session.flush()

    def add_ticket(self, ticket: Ticket) -> TicketRecord:
        record = TicketRecord(
            ticket_id=ticket.ticket_id,
            draw_id=ticket.draw_id,
            user_id=ticket.user_id,
            username=ticket.username,
            wallet=ticket.wallet,
            selections=[sorted(int(outcome) for outcome in selection) for selection in ticket.selections],
            currency=ticket.currency.upper(),
            paid=ticket.paid,
            invoice_id=ticket.invoice_id,
            created_at=ticket.created_at,
        )
        self._session.add(record)
        self._session.flush()
        return record

    def mark_ticket_paid(self, ticket_id: str) -> bool:
        """Flip the paid flag; return False when the ticket is unknown.

        Tickets of a settled draw are frozen, so a late confirmation raises
        :class:`AlreadySettledError` instead of changing the ticket.
        """

        record = self._session.get(TicketRecord, ticket_id)
        if record is None:
            return False
        if record.draw.status == DrawStatus.SETTLED.value:
            raise AlreadySettledError(
                f"Ticket {ticket_id} belongs to settled draw {record.draw_id}"
            )
        record.paid = True
        self._session.flush()
        return True

    def next_ticket_id(self, draw_id: int) -> str:
        count = self._session.execute(
            select(func.count()).select_from(TicketRecord).where(TicketRecord.draw_id == draw_id)
        ).scalar_one()
        return f"{draw_id}_{count + 1}"

    # ------------------------------------------------------------------
    # Queries

    def get_draw(self, draw_id: int) -> Draw | None:
        record = self._session.get(DrawRecord, draw_id)
        if record is None:
            return None
        draw, _ = parse_draw_snapshot(self._draw_payload(record))
        return draw

    def latest_draw(self) -> Draw | None:
        record = self._session.execute(
            select(DrawRecord).order_by(desc(DrawRecord.draw_id)).limit(1)
        ).scalar_one_or_none()
        if record is None:
            return None
        draw, _ = parse_draw_snapshot(self._draw_payload(record))
        return draw

    def list_tickets(self, draw_id: int) -> list[Ticket]:
        records = self._session.execute(
            select(TicketRecord)
            .where(TicketRecord.draw_id == draw_id)
            .order_by(TicketRecord.created_at, TicketRecord.ticket_id)
        ).scalars()
        return [
            TicketSnapshot.model_validate(self._ticket_payload(record)).to_domain()
            for record in records
        ]

    def load_snapshot(self, draw_id: int) -> tuple[Draw, list[Ticket]]:
        record = self._session.execute(
            select(DrawRecord)
            .where(DrawRecord.draw_id == draw_id)
            .options(selectinload(DrawRecord.events), selectinload(DrawRecord.tickets))
        ).scalar_one_or_none()
        if record is None:
            raise DrawNotFoundError(f"Draw {draw_id} not found")
        payload = self._draw_payload(record)
        payload["tickets"] = [self._ticket_payload(ticket) for ticket in record.tickets]
        return parse_draw_snapshot(payload)

    # ------------------------------------------------------------------
    # Helpers

    def _sync_events(self, record: DrawRecord, draw: Draw) -> None:
        existing = {event.idx: event for event in record.events}
        for event in draw.events:
            event_record = existing.pop(event.index, None)
            if event_record is None:
                event_record = EventRecord(idx=event.index)
                record.events.append(event_record)
            event_record.title = event.title
            event_record.result = int(event.result) if event.result is not None else None
            event_record.is_void = event.is_void
            event_record.source_url = event.source_url
        for stale in existing.values():
            record.events.remove(stale)

    @staticmethod
    def _draw_payload(record: DrawRecord) -> dict[str, Any]:
        return {
            "draw_id": record.draw_id,
            "status": record.status,
            "created_at": record.created_at,
            "rollover_in": record.rollover_in,
            "settlement": record.settlement,
            "events": [
                {
                    "index": event.idx,
                    "title": event.title,
                    "result": event.result,
                    "is_void": event.is_void,
                    "source_url": event.source_url,
                }
                for event in record.events
            ],
        }

    @staticmethod
    def _ticket_payload(record: TicketRecord) -> dict[str, Any]:
        return {
            "ticket_id": record.ticket_id,
            "draw_id": record.draw_id,
            "user_id": record.user_id,
            "selections": record.selections,
            "paid": record.paid,
            "currency": record.currency,
            "username": record.username,
            "wallet": record.wallet,
            "invoice_id": record.invoice_id,
            "created_at": record.created_at,
        }


__all__ = ["DrawNotFoundError", "DrawRepository"]
