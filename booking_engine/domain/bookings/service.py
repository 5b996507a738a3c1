"""
Booking lifecycle manager.

States: pending → confirmed | rejected
        confirmed → cancelled | completed | no_show_client | no_show_provider

Every transition is a conditional update on the current status, so
concurrent actors (including the auto-rejection timer) resolve to exactly
one winner; the loser gets ``AlreadyResolved`` and changes nothing.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import (
    AUTO_REJECT_MINUTES,
    CLIENT_NO_SHOW_DELAY_MINUTES,
    COMPLETION_GRACE_MINUTES,
    PROVIDER_NO_SHOW_DELAY_MINUTES,
    TIMER_BATCH_SIZE,
)
from ...errors import (
    AlreadyResolved,
    Forbidden,
    IllegalTransition,
    NotFound,
    NoShowTooEarly,
    OutOfBookingWindow,
    SlotUnavailable,
    ValidationError,
)
from ...models import AvailabilityDefinition, Booking, BookingTimer, generate_id
from ...services.billing_service import BillingClient, BillingError
from ...services.notification_service import Notifier, dispatch
from ...shared.time_utils import utcnow
from ..slots.regenerator import ScheduleRegenerator
from ..slots.repository import SlotRepository
from .forms import validate_form_responses
from .repository import BookingRepository
from .schemas import BookingCreate

logger = logging.getLogger(__name__)

AUTO_REJECT_REASON = f"Auto-rejected: provider did not confirm within {AUTO_REJECT_MINUTES} minutes"


def party_role(booking: Booking, person_id: str) -> Optional[str]:
    if person_id == booking.client_id:
        return "client"
    if person_id == booking.provider_id:
        return "provider"
    return None


def is_within_cancellation_threshold(
    scheduled_at: datetime, cancelled_at: datetime, threshold_minutes: Optional[int]
) -> bool:
    """
    True when the cancellation gave at least ``threshold_minutes`` notice.

    Without a configured threshold every cancellation is within it.
    """
    if threshold_minutes is None:
        return True
    notice_minutes = (scheduled_at - cancelled_at).total_seconds() / 60
    return notice_minutes >= threshold_minutes


class BookingService:
    """Service layer for the booking state machine"""

    def __init__(
        self,
        db: Session,
        billing: Optional[BillingClient] = None,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.repo = BookingRepository()
        self.slots = SlotRepository()
        self.regenerator = ScheduleRegenerator(db, clock=clock)
        self.billing = billing or BillingClient()
        self.notifier = notifier
        self.clock = clock

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get(self, booking_id: str) -> Booking:
        booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFound("Booking not found", {"booking_id": booking_id})
        return booking

    def _definition(self, definition_id: Optional[str]) -> Optional[AvailabilityDefinition]:
        if not definition_id:
            return None
        return (
            self.db.query(AvailabilityDefinition)
            .filter(AvailabilityDefinition.id == definition_id)
            .first()
        )

    def _billing_config(self, booking: Booking) -> Optional[dict]:
        slot = self.slots.get_slot(self.db, booking.slot_id) if booking.slot_id else None
        if slot and slot.price_override:
            return slot.price_override
        definition = self._definition(booking.definition_id)
        return definition.billing_config if definition else None

    def get_booking(self, booking_id: str, person_id: str) -> Booking:
        booking = self._get(booking_id)
        if not party_role(booking, person_id):
            raise Forbidden("You can only view your own bookings", {"booking_id": booking_id})
        return booking

    def list_bookings(
        self,
        person_id: str,
        status: Optional[str] = None,
        upcoming: bool = False,
        past: bool = False,
    ) -> list[Booking]:
        now = self.clock()
        return self.repo.list_bookings(
            self.db,
            party_id=person_id,
            status=status,
            upcoming_after=now if upcoming else None,
            past_before=now if past else None,
        )

    def _notify(self, event: str, booking: Booking, **extra):
        dispatch(self.notifier, event, booking, [booking.client_id, booking.provider_id], **extra)

    def _release_slot(self, booking: Booking):
        """Free a rejected booking's slot, or drop it if its definition no longer offers it"""
        if not self.slots.release_slot(self.db, booking.slot_id, booking.id):
            return
        if self.regenerator.discard_if_orphaned(booking.slot_id):
            self.repo.detach_slot(self.db, booking.id)

    def _reload(self, booking_id: str) -> Booking:
        self.db.expire_all()
        return self._get(booking_id)

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_booking(self, client_id: str, data: BookingCreate) -> Booking:
        """
        Claim a slot and open a pending booking.

        The slot compare-and-set, the booking insert, the auto-rejection timer
        and the invoice reference commit together or not at all.
        """
        slot = self.slots.get_slot(self.db, data.slot)
        if not slot or slot.status != "available":
            raise SlotUnavailable("Time slot is not available", {"slot_id": data.slot})

        definition = self._definition(slot.definition_id)
        if not definition or definition.status != "active":
            raise SlotUnavailable("Time slot is not available", {"slot_id": data.slot})

        if client_id == slot.owner_id:
            raise ValidationError("You cannot book your own time slot", {"slot_id": slot.id})

        now = self.clock()
        earliest = now + timedelta(minutes=definition.min_advance_minutes)
        latest = now + timedelta(days=definition.max_advance_days)
        if slot.start_time < earliest or slot.start_time > latest:
            raise OutOfBookingWindow(
                "Time slot is outside the booking window",
                {
                    "slot_id": slot.id,
                    "start_time": slot.start_time.isoformat(),
                    "earliest": earliest.isoformat(),
                    "latest": latest.isoformat(),
                },
            )

        location_type = data.locationType or (slot.location_types or [None])[0]
        if location_type not in (slot.location_types or []):
            raise ValidationError(
                f"Location type '{location_type}' is not offered for this slot",
                {"slot_id": slot.id, "allowed": slot.location_types},
            )

        responses = data.formResponses.data if data.formResponses else None
        form_responses = validate_form_responses(definition.form_config, responses)

        billing_config = slot.price_override or definition.billing_config
        duration = int((slot.end_time - slot.start_time).total_seconds() // 60)

        booking = Booking(
            id=generate_id(),
            client_id=client_id,
            provider_id=slot.owner_id,
            slot_id=slot.id,
            definition_id=definition.id,
            location_type=location_type,
            reason=data.reason,
            status="pending",
            booked_at=now,
            scheduled_at=slot.start_time,
            duration_minutes=duration,
            ends_at=slot.end_time,
            price_amount=billing_config.get("price") if billing_config else None,
            currency=billing_config.get("currency") if billing_config else None,
            form_responses=form_responses,
        )

        try:
            self.repo.add_booking(self.db, booking)
            claimed = self.slots.claim_slot(self.db, slot.id, booking.id)
            if claimed:
                self.repo.add_timer(self.db, booking.id, now + timedelta(minutes=AUTO_REJECT_MINUTES))
                if billing_config and billing_config.get("price"):
                    booking.invoice_id = self.billing.create_invoice(
                        customer=client_id,
                        merchant=slot.owner_id,
                        context_key=f"booking:{booking.id}",
                        amount_minor_units=billing_config["price"],
                        currency=billing_config["currency"],
                    )
                self.db.commit()
        except IntegrityError as e:
            # Slot deleted or claimed underneath us
            self.db.rollback()
            logger.warning(f"⚠️ Storage conflict claiming slot {slot.id}: {e.orig}")
            raise SlotUnavailable("Time slot is not available", {"slot_id": slot.id}) from e
        except BillingError:
            self.db.rollback()
            logger.error(f"❌ Booking for slot {slot.id} aborted: invoice could not be created")
            raise

        if not claimed:
            self.db.rollback()
            logger.info(f"⏭️ Slot {slot.id} claim lost to a concurrent booking")
            raise SlotUnavailable("Time slot is not available", {"slot_id": slot.id})

        booking = self._reload(booking.id)
        logger.info(
            f"✅ Booking {booking.id} created: client={client_id} provider={booking.provider_id} "
            f"slot={slot.id} at {booking.scheduled_at.isoformat()}"
        )
        self._notify("booking.created", booking)
        return booking

    # ------------------------------------------------------------------
    # Provider decisions
    # ------------------------------------------------------------------

    def _require_pending_for_provider(self, booking: Booking, person_id: str, action: str):
        if person_id != booking.provider_id:
            raise Forbidden(f"Only the provider can {action} a booking", {"booking_id": booking.id})
        if booking.status != "pending":
            raise IllegalTransition(
                f"Cannot {action} a booking in {booking.status} status",
                {"booking_id": booking.id, "status": booking.status, "action": action},
            )

    def confirm_booking(self, booking_id: str, person_id: str) -> Booking:
        booking = self._get(booking_id)
        self._require_pending_for_provider(booking, person_id, "confirm")

        now = self.clock()
        if not self.repo.transition(self.db, booking_id, ["pending"], status="confirmed", confirmed_at=now):
            self.db.rollback()
            raise AlreadyResolved(
                "Booking was resolved by another action", {"booking_id": booking_id, "action": "confirm"}
            )
        self.repo.cancel_timer(self.db, booking_id, now)
        self.db.commit()

        booking = self._reload(booking_id)
        logger.info(f"✅ Booking {booking_id} confirmed by provider {person_id}")
        self._notify("booking.confirmed", booking)
        return booking

    def reject_booking(self, booking_id: str, person_id: str, reason: Optional[str] = None) -> Booking:
        booking = self._get(booking_id)
        self._require_pending_for_provider(booking, person_id, "reject")

        now = self.clock()
        if not self.repo.transition(
            self.db,
            booking_id,
            ["pending"],
            status="rejected",
            rejected_at=now,
            rejection_reason=reason,
        ):
            self.db.rollback()
            raise AlreadyResolved(
                "Booking was resolved by another action", {"booking_id": booking_id, "action": "reject"}
            )
        self.repo.cancel_timer(self.db, booking_id, now)
        if booking.slot_id:
            self._release_slot(booking)
        self.db.commit()

        booking = self._reload(booking_id)
        logger.info(f"🚫 Booking {booking_id} rejected by provider {person_id}")
        self._notify("booking.rejected", booking, reason=reason)
        return booking

    def auto_reject(self, booking_id: str) -> bool:
        """
        Timer fire handler. Re-checks the booking state through the conditional
        update, so a booking already confirmed or rejected is left untouched.

        Returns:
            bool: True when this call rejected the booking
        """
        now = self.clock()
        timer = self.repo.get_timer(self.db, booking_id)
        rejected = self.repo.transition(
            self.db,
            booking_id,
            ["pending"],
            status="rejected",
            rejected_at=now,
            rejection_reason=AUTO_REJECT_REASON,
            cancelled_by="system",
        )
        if not rejected:
            if timer:
                self.repo.finish_timer(self.db, timer.id, "stale", now)
            self.db.commit()
            logger.info(f"⏭️ Auto-rejection skipped for booking {booking_id}: already resolved")
            return False

        booking = self._get(booking_id)
        if booking.slot_id:
            self._release_slot(booking)
        if timer:
            self.repo.finish_timer(self.db, timer.id, "fired", now)
        self.db.commit()

        booking = self._reload(booking_id)
        logger.info(f"⏰ Booking {booking_id} auto-rejected")
        self._notify("booking.auto_rejected", booking, reason=AUTO_REJECT_REASON)
        return True

    # ------------------------------------------------------------------
    # Either party
    # ------------------------------------------------------------------

    def cancel_booking(self, booking_id: str, person_id: str, reason: Optional[str]) -> Booking:
        """
        Cancel a confirmed booking. The slot stays booked; the link between
        slot and booking is permanent.
        """
        booking = self._get(booking_id)
        role = party_role(booking, person_id)
        if not role:
            raise Forbidden("You can only cancel your own bookings", {"booking_id": booking_id})
        if not reason or not reason.strip():
            raise ValidationError("Cancellation reason is required", {"booking_id": booking_id})
        if len(reason) > 500:
            raise ValidationError(
                "Cancellation reason must be 500 characters or less", {"booking_id": booking_id}
            )
        if booking.status != "confirmed":
            raise IllegalTransition(
                f"Cannot cancel a booking in {booking.status} status",
                {"booking_id": booking_id, "status": booking.status, "action": "cancel"},
            )

        now = self.clock()
        billing_config = self._billing_config(booking)
        threshold = billing_config.get("cancellationThresholdMinutes") if billing_config else None
        within_threshold = is_within_cancellation_threshold(booking.scheduled_at, now, threshold)

        if not self.repo.transition(
            self.db,
            booking_id,
            ["confirmed"],
            status="cancelled",
            cancellation_reason=reason.strip(),
            cancelled_by=role,
            cancelled_at=now,
            cancelled_within_threshold=within_threshold,
        ):
            self.db.rollback()
            raise AlreadyResolved(
                "Booking changed status before it could be cancelled",
                {"booking_id": booking_id, "action": "cancel"},
            )
        self.db.commit()

        booking = self._reload(booking_id)
        logger.info(
            f"❌ Booking {booking_id} cancelled by {role} "
            f"(within threshold: {within_threshold}, threshold={threshold})"
        )

        if booking.invoice_id:
            try:
                self.billing.report_cancellation(booking.invoice_id, booking_id, within_threshold)
            except BillingError as e:
                logger.error(f"❌ Cancellation of booking {booking_id} not reported to billing: {e}")

        self._notify(
            "booking.cancelled", booking, cancelledBy=role, withinThreshold=within_threshold
        )
        return booking

    def mark_no_show(self, booking_id: str, person_id: str) -> Booking:
        """
        Client marks the provider absent 5 minutes past start; provider marks
        the client absent 10 minutes past start. Only one no-show can be set.
        """
        booking = self._get(booking_id)
        role = party_role(booking, person_id)
        if not role:
            raise Forbidden("You can only mark no-show for your own bookings", {"booking_id": booking_id})
        if booking.status in ("no_show_client", "no_show_provider"):
            raise IllegalTransition(
                "No-show has already been marked for this booking",
                {"booking_id": booking_id, "status": booking.status, "action": "no_show"},
            )
        if booking.status != "confirmed":
            raise IllegalTransition(
                f"Cannot mark no-show for a booking in {booking.status} status",
                {"booking_id": booking_id, "status": booking.status, "action": "no_show"},
            )

        now = self.clock()
        delay = CLIENT_NO_SHOW_DELAY_MINUTES if role == "client" else PROVIDER_NO_SHOW_DELAY_MINUTES
        eligible_at = booking.scheduled_at + timedelta(minutes=delay)
        if now < eligible_at:
            raise NoShowTooEarly(
                f"Must wait {delay} minutes past the scheduled time before marking no-show",
                {"booking_id": booking_id, "eligible_at": eligible_at.isoformat()},
            )

        new_status = "no_show_provider" if role == "client" else "no_show_client"
        if not self.repo.transition(
            self.db,
            booking_id,
            ["confirmed"],
            status=new_status,
            no_show_marked_by=role,
            no_show_marked_at=now,
        ):
            self.db.rollback()
            raise AlreadyResolved(
                "Booking changed status before no-show could be marked",
                {"booking_id": booking_id, "action": "no_show"},
            )
        self.db.commit()

        booking = self._reload(booking_id)
        logger.info(f"👻 Booking {booking_id} marked {new_status} by {role}")
        self._notify("booking.no_show", booking, markedBy=role)
        return booking

    # ------------------------------------------------------------------
    # Periodic jobs
    # ------------------------------------------------------------------

    def process_due_timers(self, limit: int = TIMER_BATCH_SIZE) -> dict:
        """Fire every pending timer whose time has come"""
        summary = {"processed": 0, "rejected": 0, "skipped": 0, "failed": 0}
        now = self.clock()
        timers = self.repo.due_timers(self.db, now, limit)
        timer_ids = [(t.id, t.booking_id, t.action) for t in timers]

        for timer_id, booking_id, action in timer_ids:
            summary["processed"] += 1
            try:
                if action != "auto_reject":
                    logger.warning(f"⚠️ Unknown timer action '{action}' on timer {timer_id}")
                    self.repo.finish_timer(self.db, timer_id, "stale", now)
                    self.db.commit()
                    summary["skipped"] += 1
                    continue
                if self.auto_reject(booking_id):
                    summary["rejected"] += 1
                else:
                    summary["skipped"] += 1
            except Exception as e:
                self.db.rollback()
                summary["failed"] += 1
                logger.error(f"❌ Failed to process timer {timer_id} for booking {booking_id}: {e}")

        if summary["processed"]:
            logger.info(f"📊 Timer processing summary: {summary}")
        return summary

    def complete_elapsed_bookings(
        self, grace_minutes: int = COMPLETION_GRACE_MINUTES, limit: int = TIMER_BATCH_SIZE
    ) -> dict:
        """confirmed → completed once the booking's end plus grace has passed"""
        summary = {"completed": 0}
        now = self.clock()
        candidates = self.repo.elapsed_confirmed(self.db, now - timedelta(minutes=grace_minutes), limit)

        for booking in candidates:
            if self.repo.transition(
                self.db, booking.id, ["confirmed"], status="completed", completed_at=now
            ):
                summary["completed"] += 1
                logger.info(f"✅ Booking {booking.id} transitioned: confirmed → completed")

        self.db.commit()
        return summary


def pending_timer(db: Session, booking_id: str) -> Optional[BookingTimer]:
    """Outstanding auto-rejection timer for a booking, if any"""
    timer = BookingRepository.get_timer(db, booking_id)
    if timer and timer.status == "pending":
        return timer
    return None
