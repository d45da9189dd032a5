"""Booking orchestration - create, update and cancel with conflict safety.

Every operation runs inside a single store transaction:
load/validate -> lock room -> expand -> check each occurrence -> write.
Change notifications go out only after the transaction committed.

Conflict policies differ on purpose and must stay that way:
- create skips conflicting occurrences and books the rest;
- updates (single with new occurrences, and series) abort entirely on the
  first conflict, leaving every booking as it was.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from itertools import islice
from typing import Callable

from roombook.domain.conflicts import assert_no_conflict, find_conflict
from roombook.domain.errors import (
    AuthorizationError,
    NoAvailableSlotsError,
    NotFoundError,
    PastBookingError,
    ValidationError,
)
from roombook.domain.intervals import Interval, overlaps
from roombook.domain.models import (
    Actor,
    Booking,
    BookingStatus,
    BookingUpdate,
    CancelResult,
    CancelSeriesResult,
    CreatePreview,
    CreateResult,
    RecurrenceKind,
    Room,
    SeriesUpdateResult,
    UpdateMode,
    UpdateResult,
)
from roombook.domain.recurrence import Recurrence
from roombook.infra.ids import IdGenerator, UuidGenerator, generate_pin_code
from roombook.infra.notifications import (
    LoggingNotificationSink,
    NotificationSink,
    publish_changes,
)
from roombook.infra.settings import BookingSettings
from roombook.infra.store import BookingSession, BookingStore
from roombook.infra.time import Clock, SystemClock, start_of_local_day
from roombook.observability.redaction import safe_log_context

logger = logging.getLogger(__name__)

ROOM_TAKEN = "Room is already booked for this time slot"


class BookingOrchestrator:
    """Entry point for every state-changing booking operation.

    Holds no per-request state; one instance can be shared across threads.

    Args:
        store: Transactional booking store.
        sink: Receives change events after commit.
        clock: Source of "now" (past-booking checks, series selection).
        ids: Generates booking and series ids.
        settings: Time zone, minimum duration and friends.
        pin_factory: Generates booking PIN codes.
    """

    def __init__(
        self,
        store: BookingStore,
        *,
        sink: NotificationSink | None = None,
        clock: Clock | None = None,
        ids: IdGenerator | None = None,
        settings: BookingSettings | None = None,
        pin_factory: Callable[[], str] = generate_pin_code,
    ) -> None:
        self._store = store
        self._sink = sink or LoggingNotificationSink()
        self._clock = clock or SystemClock()
        self._ids = ids or UuidGenerator()
        self._settings = settings or BookingSettings()
        self._pin_factory = pin_factory

    @property
    def settings(self) -> BookingSettings:
        return self._settings

    # ── create ──────────────────────────────────────────────────────────

    def create(
        self,
        *,
        room_id: str,
        user_id: str,
        start_time: datetime,
        end_time: datetime,
        topic: str = "",
        is_private: bool = False,
        recurring_type: RecurrenceKind | str | None = None,
        recurring_end_date: date | datetime | None = None,
        dry_run: bool = False,
    ) -> CreateResult | CreatePreview:
        """Book a room once or as a recurring series.

        Occurrences that conflict with confirmed bookings are skipped and
        reported; the rest are booked. With ``dry_run`` nothing is written
        and no event is sent, but the partitioning is the same.

        Raises:
            ValidationError: Bad interval, recurrence type or end date.
            NotFoundError: Room does not exist.
            NoAvailableSlotsError: Every occurrence conflicts.
        """
        anchor = self._validate_interval(start_time, end_time)
        kind = self._parse_kind(recurring_type)
        until = self._recurrence_end(kind, recurring_end_date, anchor)
        slots = list(Recurrence(anchor, kind, until, tz=self._tz))

        with self._store.transaction() as session:
            self._require_room(session, room_id)
            session.lock_room(room_id)

            available, skipped_dates = self._partition(session, room_id, slots)
            if not available:
                raise NoAvailableSlotsError(room_id, len(skipped_dates))

            if dry_run:
                return CreatePreview(
                    total_slots=len(slots),
                    available_count=len(available),
                    skipped_count=len(skipped_dates),
                    skipped_dates=skipped_dates,
                )

            group_id = self._ids.new_id() if kind.recurring else None
            created = []
            for slot in available:
                booking = self._new_booking(
                    room_id=room_id,
                    user_id=user_id,
                    interval=slot,
                    topic=topic,
                    is_private=is_private,
                    kind=kind,
                    until=until,
                    group_id=group_id,
                )
                session.insert_booking(booking)
                created.append(booking)

        logger.info(
            "bookings created",
            extra={
                "extra_fields": safe_log_context(
                    room_id=room_id,
                    group_id=group_id,
                    recurring_type=kind,
                    total_booked=len(created),
                    total_skipped=len(skipped_dates),
                )
            },
        )
        publish_changes(self._sink, [room_id])

        return CreateResult(
            booking=created[0],
            bookings=created,
            skipped_dates=skipped_dates,
        )

    def _partition(
        self,
        session: BookingSession,
        room_id: str,
        slots: list[Interval],
    ) -> tuple[list[Interval], list[date]]:
        available: list[Interval] = []
        skipped: list[date] = []
        for slot in slots:
            taken = find_conflict(session, room_id=room_id, interval=slot) is not None
            # Long occurrences of a dense series can overlap each other
            if not taken and any(overlaps(slot, other) for other in available):
                taken = True
            if taken:
                skipped.append(slot.start.astimezone(self._tz).date())
            else:
                available.append(slot)
        return available, skipped

    # ── update ──────────────────────────────────────────────────────────

    def update(
        self,
        booking_id: str,
        changes: BookingUpdate,
        *,
        actor: Actor,
        mode: UpdateMode | str = UpdateMode.SINGLE,
    ) -> UpdateResult | SeriesUpdateResult:
        """Dispatch to update_single or update_series."""
        mode = UpdateMode(mode)
        if mode is UpdateMode.SINGLE:
            return self.update_single(booking_id, changes, actor=actor)
        if mode is UpdateMode.SERIES:
            return self.update_series(booking_id, changes, actor=actor)
        raise ValueError(f"Unhandled update mode: {mode!r}")

    def update_single(
        self,
        booking_id: str,
        changes: BookingUpdate,
        *,
        actor: Actor,
    ) -> UpdateResult:
        """Update one booking, adjusting its series membership.

        - not recurring -> recurring: joins a brand-new series;
        - recurring -> not recurring: leaves its series, and every other
          future member of that series is cancelled;
        - recurring -> recurring: stays in its series.
        When the new recurrence is not NONE, the following occurrences are
        generated from the new interval; any conflict aborts the update.

        Raises:
            NotFoundError, AuthorizationError, ValidationError,
            PastBookingError, ConflictError.
        """
        now = self._clock.now()
        with self._store.transaction() as session:
            booking = self._load_managed(
                session, booking_id, actor, target_room=changes.room_id, series_rooms=True
            )
            result, room_ids = self._apply_single(session, booking, changes, now)

        logger.info(
            "booking updated",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking_id,
                    room_id=result.booking.room_id,
                    group_id=result.booking.group_id,
                    created=len(result.created),
                    cancelled=result.cancelled_count,
                )
            },
        )
        publish_changes(self._sink, room_ids)
        return result

    def _apply_single(
        self,
        session: BookingSession,
        booking: Booking,
        changes: BookingUpdate,
        now: datetime,
    ) -> tuple[UpdateResult, list[str]]:
        interval = self._validate_interval(changes.start_time, changes.end_time)
        self._reject_past(booking, now, "modify")
        kind = self._parse_kind(changes.recurring_type)
        until = self._recurrence_end(kind, changes.recurring_end_date, interval)
        target_room = changes.room_id or booking.room_id
        self._require_room(session, target_room)
        session.lock_room(target_room)

        assert_no_conflict(
            session,
            room_id=target_room,
            interval=interval,
            exclude_booking_id=booking.id,
            tz=self._tz,
            message=ROOM_TAKEN,
        )

        old_group = booking.group_id
        if kind.recurring and old_group is None:
            group_id = self._ids.new_id()
        elif not kind.recurring:
            group_id = None
        else:
            group_id = old_group

        updated = replace(
            booking,
            room_id=target_room,
            start_time=interval.start,
            end_time=interval.end,
            topic=changes.topic,
            is_private=changes.is_private,
            recurring_type=kind,
            recurring_end_date=until,
            group_id=group_id,
        )
        session.save_booking(updated)

        cancelled: list[Booking] = []
        if old_group is not None and group_id != old_group:
            cancelled = self._cancel_future_members(
                session, old_group, now, exclude_booking_id=booking.id
            )

        created: list[Booking] = []
        if kind.recurring:
            # The first occurrence is the booking just updated
            following = islice(Recurrence(interval, kind, until, tz=self._tz), 1, None)
            for slot in following:
                assert_no_conflict(
                    session,
                    room_id=target_room,
                    interval=slot,
                    tz=self._tz,
                )
                extra = self._new_booking(
                    room_id=target_room,
                    user_id=booking.user_id,
                    interval=slot,
                    topic=changes.topic,
                    is_private=changes.is_private,
                    kind=kind,
                    until=until,
                    group_id=group_id,
                )
                session.insert_booking(extra)
                created.append(extra)

        room_ids = [target_room, booking.room_id] + [b.room_id for b in cancelled]
        return UpdateResult(updated, created, len(cancelled)), room_ids

    def update_series(
        self,
        booking_id: str,
        changes: BookingUpdate,
        *,
        actor: Actor,
    ) -> SeriesUpdateResult:
        """Update a booking together with the rest of its series.

        Members considered: the booking itself plus every non-cancelled member
        starting at or after now; earlier occurrences stay as they were.

        With recurrence NONE the booking leaves the series and the other
        considered members are cancelled. Otherwise each member is moved to
        the new time of day on its own date; the first conflict aborts the
        whole series update. A booking without a series is updated as
        update_single would.

        Raises:
            NotFoundError, AuthorizationError, ValidationError,
            PastBookingError, ConflictError.
        """
        now = self._clock.now()
        with self._store.transaction() as session:
            booking = self._load_managed(
                session, booking_id, actor, target_room=changes.room_id, series_rooms=True
            )
            if booking.group_id is None:
                single, room_ids = self._apply_single(session, booking, changes, now)
                result = SeriesUpdateResult(
                    bookings=[single.booking, *single.created],
                    cancelled_count=single.cancelled_count,
                )
            else:
                result, room_ids = self._apply_series(session, booking, changes, now)

        logger.info(
            "booking series updated",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking_id,
                    group_id=booking.group_id,
                    updated=len(result.bookings),
                    cancelled=result.cancelled_count,
                    detached=result.detached,
                )
            },
        )
        publish_changes(self._sink, room_ids)
        return result

    def _apply_series(
        self,
        session: BookingSession,
        booking: Booking,
        changes: BookingUpdate,
        now: datetime,
    ) -> tuple[SeriesUpdateResult, list[str]]:
        interval = self._validate_interval(changes.start_time, changes.end_time)
        self._reject_past(booking, now, "modify")
        kind = self._parse_kind(changes.recurring_type)
        until = self._recurrence_end(kind, changes.recurring_end_date, interval)
        target_room = changes.room_id or booking.room_id
        self._require_room(session, target_room)
        session.lock_room(target_room)

        members = [
            m
            for m in session.list_group_members(booking.group_id, for_update=True)
            if m.id == booking.id or m.start_time >= now
        ]

        if not kind.recurring:
            others = [m for m in members if m.id != booking.id]
            cancelled_count = session.cancel_bookings([m.id for m in others])
            assert_no_conflict(
                session,
                room_id=target_room,
                interval=interval,
                exclude_booking_id=booking.id,
                tz=self._tz,
                message=ROOM_TAKEN,
            )
            detached = replace(
                booking,
                room_id=target_room,
                start_time=interval.start,
                end_time=interval.end,
                topic=changes.topic,
                is_private=changes.is_private,
                recurring_type=RecurrenceKind.NONE,
                recurring_end_date=None,
                group_id=None,
            )
            session.save_booking(detached)
            room_ids = [target_room, booking.room_id] + [m.room_id for m in others]
            return (
                SeriesUpdateResult([detached], cancelled_count, detached=True),
                room_ids,
            )

        local_start = interval.start.astimezone(self._tz).time()
        local_end = interval.end.astimezone(self._tz).time()

        updated_members = []
        for member in members:
            retimed = self._retime(member, local_start, local_end)
            assert_no_conflict(
                session,
                room_id=target_room,
                interval=retimed,
                exclude_booking_id=member.id,
                tz=self._tz,
                message="Conflict for recurrence on {date} at {time}",
            )
            updated = replace(
                member,
                room_id=target_room,
                start_time=retimed.start,
                end_time=retimed.end,
                topic=changes.topic,
                is_private=changes.is_private,
                recurring_type=kind,
                recurring_end_date=until,
            )
            if session.save_booking(updated):
                updated_members.append(updated)

        room_ids = [target_room] + [m.room_id for m in members]
        return SeriesUpdateResult(updated_members), room_ids

    def _retime(self, member: Booking, start_of_day: time, end_of_day: time) -> Interval:
        """Move a member to new hour:minute values on its own start date.

        An end at or before the start rolls over to the next day.
        """
        day = member.start_time.astimezone(self._tz).date()
        new_start = datetime.combine(
            day,
            time(start_of_day.hour, start_of_day.minute),
            tzinfo=self._tz,
        )
        new_end = datetime.combine(
            day,
            time(end_of_day.hour, end_of_day.minute),
            tzinfo=self._tz,
        )
        if new_end <= new_start:
            new_end += timedelta(days=1)

        retimed = Interval(new_start.astimezone(timezone.utc), new_end.astimezone(timezone.utc))
        if retimed.duration < self._settings.min_duration:
            raise ValidationError(self._too_short_message())
        return retimed

    # ── cancel ──────────────────────────────────────────────────────────

    def cancel(self, booking_id: str, *, actor: Actor) -> CancelResult:
        """Cancel one booking (soft: status becomes CANCELLED).

        Cancelling an already cancelled booking is a no-op that reports
        ``already_cancelled``; it never un-cancels and sends no event.

        Raises:
            NotFoundError, AuthorizationError, PastBookingError.
        """
        now = self._clock.now()
        with self._store.transaction() as session:
            booking = self._load_managed(session, booking_id, actor, allow_cancelled=True)
            if booking.is_cancelled:
                return CancelResult(booking, already_cancelled=True)

            self._reject_past(booking, now, "cancel")
            session.cancel_bookings([booking.id])
            cancelled = replace(booking, status=BookingStatus.CANCELLED)

        logger.info(
            "booking cancelled",
            extra={
                "extra_fields": safe_log_context(
                    booking_id=booking_id,
                    room_id=booking.room_id,
                    group_id=booking.group_id,
                )
            },
        )
        publish_changes(self._sink, [booking.room_id])
        return CancelResult(cancelled)

    def cancel_series(self, group_id: str, *, actor: Actor) -> CancelSeriesResult:
        """Cancel every future, still confirmed member of a series.

        The actor must own at least one live member of the series, or be
        an admin. Past and already cancelled members are left alone.

        Raises:
            NotFoundError: No live member carries this group id.
            AuthorizationError: Actor owns none of the members.
        """
        now = self._clock.now()
        with self._store.transaction() as session:
            for room_id in sorted({m.room_id for m in session.list_group_members(group_id)}):
                session.lock_room(room_id)
            members = session.list_group_members(group_id, for_update=True)
            if not members:
                raise NotFoundError("Series not found")
            if not actor.is_admin and not any(m.user_id == actor.user_id for m in members):
                raise AuthorizationError("Not authorized to cancel this series")

            future = [m for m in members if m.start_time >= now]
            count = session.cancel_bookings([m.id for m in future])

        logger.info(
            "booking series cancelled",
            extra={"extra_fields": safe_log_context(group_id=group_id, cancelled=count)},
        )
        if count:
            publish_changes(self._sink, [m.room_id for m in future])
        return CancelSeriesResult(group_id=group_id, cancelled_count=count)

    # ── helpers ─────────────────────────────────────────────────────────

    @property
    def _tz(self):
        return self._settings.timezone

    def _too_short_message(self) -> str:
        minutes = int(self._settings.min_duration.total_seconds() // 60)
        return f"Booking must be at least {minutes} minutes"

    def _validate_interval(self, start: datetime, end: datetime) -> Interval:
        if start.tzinfo is None or end.tzinfo is None:
            raise ValidationError("Start and end times must include a time zone")
        if start >= end:
            raise ValidationError("End time must be after start time")
        if end - start < self._settings.min_duration:
            raise ValidationError(self._too_short_message())
        return Interval(start, end)

    @staticmethod
    def _parse_kind(value: RecurrenceKind | str | None) -> RecurrenceKind:
        try:
            return RecurrenceKind.parse(value)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None

    def _recurrence_end(
        self,
        kind: RecurrenceKind,
        until: date | datetime | None,
        anchor: Interval,
    ) -> date | None:
        """Normalize the series end bound to a local calendar date."""
        if not kind.recurring or until is None:
            return None
        if isinstance(until, datetime):
            until = until.astimezone(self._tz).date() if until.tzinfo else until.date()
        if until < anchor.start.astimezone(self._tz).date():
            raise ValidationError("Recurrence end date must not be before the start date")
        return until

    @staticmethod
    def _require_room(session: BookingSession, room_id: str) -> Room:
        room = session.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room

    @staticmethod
    def _load_managed(
        session: BookingSession,
        booking_id: str,
        actor: Actor,
        *,
        allow_cancelled: bool = False,
        target_room: str | None = None,
        series_rooms: bool = False,
    ) -> Booking:
        # Room locks before row locks on every write path, rooms in sorted order
        current = session.get_booking(booking_id)
        if current is not None:
            rooms = {current.room_id, target_room or current.room_id}
            if series_rooms and current.group_id is not None:
                rooms.update(m.room_id for m in session.list_group_members(current.group_id))
            for room_id in sorted(rooms):
                session.lock_room(room_id)

        booking = session.get_booking(booking_id, for_update=True)
        if booking is None:
            raise NotFoundError("Booking not found")
        if not actor.may_manage(booking):
            raise AuthorizationError("Not authorized")
        if booking.is_cancelled and not allow_cancelled:
            raise ValidationError("Cannot modify a cancelled booking")
        return booking

    def _reject_past(self, booking: Booking, now: datetime, action: str) -> None:
        # "Past" means started before today (local), not before this instant
        if booking.start_time < start_of_local_day(now, self._tz):
            raise PastBookingError(f"Cannot {action} past bookings")

    def _cancel_future_members(
        self,
        session: BookingSession,
        group_id: str,
        now: datetime,
        *,
        exclude_booking_id: str,
    ) -> list[Booking]:
        future = [
            m
            for m in session.list_group_members(group_id, for_update=True)
            if m.id != exclude_booking_id and m.start_time >= now
        ]
        session.cancel_bookings([m.id for m in future])
        return future

    def _new_booking(
        self,
        *,
        room_id: str,
        user_id: str,
        interval: Interval,
        topic: str,
        is_private: bool,
        kind: RecurrenceKind,
        until: date | None,
        group_id: str | None,
    ) -> Booking:
        return Booking(
            id=self._ids.new_id(),
            room_id=room_id,
            user_id=user_id,
            start_time=interval.start,
            end_time=interval.end,
            topic=topic,
            pin_code=self._pin_factory(),
            is_private=is_private,
            status=BookingStatus.CONFIRMED,
            recurring_type=kind,
            recurring_end_date=until,
            group_id=group_id,
        )
