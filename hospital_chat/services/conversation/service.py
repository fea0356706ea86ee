"""
Conversation service: turns resolved signals into state machine events and
carries out the effects that come back.
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...core.enums import NextAction, TemplateKind, TriggerKind, TriggerPurpose
from ...core.exceptions import BookingNotFoundError, ExternalAPIError
from ...core.models import (
    BookingContext,
    ListRow,
    ListSection,
    Template,
    TemplateContent,
    Trigger,
)
from ...utils.date import DateParser, parse_iso
from ...utils.event_log import log_effect_failure, log_transition, set_event_id
from ...utils.ids import mint_flow_token, unique_suffix
from ...utils.logging import get_logger
from ...utils.text import (
    extract_doctor_name,
    format_doctor_name,
    inject_doctor_name,
    rewrite_header_doctor,
    truncate_title,
)
from ..catalog import TemplateCatalog
from ..catalog.seed import (
    CONFIRM_HEADER,
    CONFIRM_TEMPLATE_ID,
    CONFIRMED_BODY,
    CONFIRMED_TEMPLATE_ID,
    LAB_CONFIRMED_BODY,
    LAB_CONFIRMED_TEMPLATE_ID,
    LAB_PAYMENT_BODY,
    PAYMENT_BODY,
    PAYMENT_DONE_BUTTON_ID,
    PAYMENT_TEMPLATE_ID,
    REGISTRATION_FLOW_ID,
    SLOTS_TEMPLATE_ID,
    WELCOME_TEMPLATE_ID,
)
from ..resolver import Resolution, Signal, TriggerResolver
from .checkin import CheckInService
from .state import (
    CheckInRequested,
    CheckInSelected,
    ConfirmAndPay,
    CreateBooking,
    DeletePending,
    DoctorSelected,
    EnsurePatient,
    Event,
    ExternalFlowRequested,
    GreetingReceived,
    LAB_REQUEST_PREFIX,
    LabPaymentCompleted,
    LabPaymentRequested,
    LabSelected,
    MarkArrived,
    MergePending,
    NotifyArrival,
    OfferCheckInChoices,
    PatientSelected,
    PaymentCompleted,
    RecordMessage,
    SendLabPayment,
    SendPersonalizedPayment,
    SendTemplate,
    SendText,
    SlotSelected,
    StartExternalFlow,
    TemplateRequested,
    Transition,
    Unmatched,
    transition,
)

logger = get_logger("hospital.conversation")

STUB_PATIENT_NAME = "WhatsApp Patient"
ARRIVAL_LOCATION = "whatsapp"
CHECKED_IN_BY = "patient"


class PhoneLocks:
    """Per-phone locks that exist only while some handler holds or awaits them."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, phone: str):
        lock = self._locks.setdefault(phone, asyncio.Lock())
        self._users[phone] = self._users.get(phone, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[phone] -= 1
            if not self._users[phone]:
                del self._users[phone]
                del self._locks[phone]


@dataclass
class _Turn:
    """Facts gathered while executing one transition's effects."""

    phone: str
    context: BookingContext
    trigger: Optional[Trigger] = None
    patient: Optional[Dict[str, Any]] = None
    booking: Optional[Dict[str, Any]] = None
    arrived: List[Dict[str, Any]] = field(default_factory=list)


class ConversationService:
    """
    Drives the booking conversation for each phone number.

    Events for the same phone are handled one at a time; different phones
    run concurrently.
    """

    def __init__(
        self,
        catalog: TemplateCatalog,
        resolver: TriggerResolver,
        enricher,
        dispatcher,
        patients,
        doctors,
        bookings,
        flows,
        checkin: Optional[CheckInService] = None,
        date_parser: Optional[DateParser] = None,
        registration_flow_id: str = REGISTRATION_FLOW_ID,
        checkin_window_hours: int = 6,
        row_title_limit: int = 24,
    ):
        self.catalog = catalog
        self.resolver = resolver
        self.enricher = enricher
        self.dispatcher = dispatcher
        self.patients = patients
        self.doctors = doctors
        self.bookings = bookings
        self.flows = flows
        self.checkin = checkin or CheckInService(bookings, patients, doctors, dispatcher)
        self.date_parser = date_parser or DateParser()
        self.registration_flow_id = registration_flow_id
        self.checkin_window_hours = checkin_window_hours
        self.row_title_limit = row_title_limit
        self.locks = PhoneLocks()

    async def handle(self, phone: str, signal: Signal, message_id: Optional[str] = None) -> Transition:
        """Resolve one inbound signal and run the resulting transition."""
        async with self.locks.hold(phone):
            set_event_id(message_id)
            resolution = await self.resolver.resolve(signal)
            pending = await self.bookings.get_pending(phone)
            context = BookingContext.from_pending(phone, pending)
            trigger = resolution.trigger if resolution else None

            event = await self._build_event(phone, signal, resolution, context)
            result = transition(context, event)
            log_transition(
                phone,
                signal.value,
                trigger.id if trigger else None,
                type(event).__name__,
                result.phase.value,
                [type(effect).__name__ for effect in result.effects],
                reinterpreted=bool(resolution and resolution.reinterpreted),
            )

            turn = _Turn(phone=phone, context=context, trigger=trigger)
            for effect in result.effects:
                await self._apply(turn, effect)
            return result

    # Event construction

    async def _build_event(
        self,
        phone: str,
        signal: Signal,
        resolution: Optional[Resolution],
        context: BookingContext,
    ) -> Event:
        if resolution is None:
            return Unmatched()
        trigger = resolution.trigger
        purpose = trigger.purpose

        if trigger.next_action == NextAction.START_EXTERNAL_FLOW:
            return ExternalFlowRequested(trigger.external_flow_id or self.registration_flow_id)

        if purpose == TriggerPurpose.GREETING:
            patient = await self._safe(self.patients.get_by_phone(phone), "patient lookup")
            return GreetingReceived(
                patient_found=patient is not None,
                flow_id=trigger.external_flow_id,
                template_id=trigger.target_template_id or WELCOME_TEMPLATE_ID,
            )

        if trigger.next_action == NextAction.MARK_ARRIVED:
            patient = await self._safe(self.patients.get_by_phone(phone), "patient lookup")
            if patient is None:
                return CheckInRequested(patient_found=False)
            candidates = await self._safe(
                self.bookings.checkin_candidates(patient["id"], self.checkin_window_hours),
                "check-in candidates",
            ) or []
            return CheckInRequested(patient_found=True, candidates=tuple(candidates))

        if trigger.next_action == NextAction.MARK_ARRIVED_SELECTED or purpose == TriggerPurpose.CHECKIN_SELECTION:
            return CheckInSelected(trigger.booking_id or str(trigger.value))

        if purpose == TriggerPurpose.DOCTOR_SELECTION:
            doctor_id = trigger.doctor_id
            doctor = await self._doctor(doctor_id) if doctor_id else None
            name = (doctor or {}).get("name") or trigger.label or signal.title
            return DoctorSelected(
                doctor_id=doctor_id or str(trigger.value),
                doctor_name=name,
                template_id=trigger.target_template_id or SLOTS_TEMPLATE_ID,
            )

        if purpose == TriggerPurpose.SLOT_SELECTION:
            label = trigger.label or signal.title or str(trigger.value)
            return SlotSelected(
                slot_label=label,
                slot_title=signal.title or label,
                doctor_name=await self._resolve_doctor_name(phone, context, trigger),
                doctor_id=trigger.doctor_id,
                template_id=trigger.target_template_id or CONFIRM_TEMPLATE_ID,
            )

        if purpose == TriggerPurpose.CONFIRM_AND_PAY:
            return ConfirmAndPay()

        if purpose == TriggerPurpose.PAYMENT_COMPLETED:
            return PaymentCompleted(
                template_id=trigger.target_template_id or CONFIRMED_TEMPLATE_ID,
                booking_id=trigger.booking_id,
            )

        if purpose == TriggerPurpose.PATIENT_SELECTION:
            return PatientSelected(
                patient_id=trigger.patient_id or str(trigger.value),
                template_id=trigger.target_template_id or WELCOME_TEMPLATE_ID,
            )

        if purpose == TriggerPurpose.LAB_SELECTION:
            return LabSelected(
                lab_name=trigger.label or signal.title or str(trigger.value),
                template_id=trigger.target_template_id,
            )

        if purpose == TriggerPurpose.LAB_PAYMENT:
            return LabPaymentRequested(await self._requested_lab(phone))

        if purpose == TriggerPurpose.LAB_PAYMENT_COMPLETED:
            return LabPaymentCompleted(trigger.target_template_id or LAB_CONFIRMED_TEMPLATE_ID, trigger.label)

        return TemplateRequested(trigger.target_template_id)

    async def _requested_lab(self, phone: str) -> Optional[str]:
        """Lab named by the phone's most recent lab request message."""
        messages = await self._safe(self.flows.messages_for_user(phone, limit=20), "message history") or []
        for message in messages:
            content = message.get("content")
            if isinstance(content, str) and content.startswith(LAB_REQUEST_PREFIX):
                return content[len(LAB_REQUEST_PREFIX):].strip() or None
        return None

    async def _resolve_doctor_name(
        self,
        phone: str,
        context: BookingContext,
        trigger: Trigger,
    ) -> Optional[str]:
        """Pending meta, then the trigger's or pending doctor record, then message history."""
        if context.doctor_name:
            return context.doctor_name
        for doctor_id in (trigger.doctor_id, context.doctor_id):
            if doctor_id:
                doctor = await self._doctor(doctor_id)
                if doctor and doctor.get("name"):
                    return doctor["name"]
        messages = await self._safe(self.flows.messages_for_user(phone, limit=20), "message history") or []
        for message in messages:
            content = message.get("content")
            name = extract_doctor_name(content) if isinstance(content, str) else None
            if name:
                return name
        return None

    async def _doctor(self, doctor_id: Optional[str]) -> Optional[Dict[str, Any]]:
        if not doctor_id:
            return None
        return await self._safe(self.doctors.get_by_id(doctor_id), "doctor lookup")

    @staticmethod
    async def _safe(awaitable, what: str):
        try:
            return await awaitable
        except Exception:
            logger.exception("Failed during %s", what)
            return None

    # Effect execution

    async def _apply(self, turn: _Turn, effect) -> None:
        try:
            if isinstance(effect, SendTemplate):
                await self._send_template(turn, effect)
            elif isinstance(effect, SendText):
                await self.dispatcher.deliver_text(turn.phone, effect.body)
            elif isinstance(effect, StartExternalFlow):
                await self._start_flow(turn, effect)
            elif isinstance(effect, MergePending):
                await self.bookings.save_pending(
                    turn.phone,
                    patient_id=effect.patient_id,
                    doctor_id=effect.doctor_id,
                    booking_time=effect.booking_time,
                    meta=effect.meta,
                )
            elif isinstance(effect, DeletePending):
                await self.bookings.delete_pending(turn.phone)
            elif isinstance(effect, EnsurePatient):
                turn.patient = await self._ensure_patient(turn.phone, effect.patient_id)
            elif isinstance(effect, CreateBooking):
                turn.booking = await self.bookings.create_booking(
                    (turn.patient or {}).get("id"),
                    effect.doctor_id,
                    effect.booking_time,
                    effect.meta,
                )
            elif isinstance(effect, SendPersonalizedPayment):
                await self._send_payment(turn, effect)
            elif isinstance(effect, SendLabPayment):
                await self._send_lab_payment(turn, effect)
            elif isinstance(effect, RecordMessage):
                await self.flows.create_message({
                    "userPhone": turn.phone,
                    "messageType": effect.message_type,
                    "content": effect.content,
                    "patientId": (turn.patient or {}).get("id"),
                    "bookingId": (turn.booking or {}).get("id"),
                    "doctorId": (turn.booking or {}).get("doctorId"),
                    "status": "recorded",
                })
            elif isinstance(effect, MarkArrived):
                await self._mark_arrived(turn, effect.booking_id)
            elif isinstance(effect, NotifyArrival):
                for booking in turn.arrived:
                    if booking.get("id") == effect.booking_id:
                        await self.checkin.notify(booking)
            elif isinstance(effect, OfferCheckInChoices):
                await self._offer_checkin_choices(turn, effect.candidates)
            else:
                logger.warning("Unknown effect %r", effect)
        except Exception as e:
            logger.exception("Effect %s failed for %s", type(effect).__name__, turn.phone)
            log_effect_failure(turn.phone, type(effect).__name__, e)
            if isinstance(effect, (EnsurePatient, CreateBooking)):
                raise

    async def _send_template(self, turn: _Turn, effect: SendTemplate) -> None:
        template = self.catalog.get_published(effect.template_id)
        if template is None:
            logger.info("Template %s unavailable, sending welcome", effect.template_id)
            template = self.catalog.get_published(WELCOME_TEMPLATE_ID)
            if template is None:
                return
        template = template.clone()

        if template.id == SLOTS_TEMPLATE_ID and (effect.doctor_name or effect.doctor_id):
            doctor = await self._doctor(effect.doctor_id)
            doctor_name = effect.doctor_name or (doctor or {}).get("name")
            if doctor_name:
                template.content.header = rewrite_header_doctor(
                    template.content.header, format_doctor_name(doctor_name)
                )
            if doctor:
                template = self.enricher.enrich_slots(template, doctor)
        elif template.id == CONFIRM_TEMPLATE_ID:
            template.content.header = CONFIRM_HEADER
            if effect.doctor_name:
                template.content.body = inject_doctor_name(template.content.body, effect.doctor_name)

        template = await self.enricher.enrich(template)
        await self.dispatcher.deliver(
            template,
            turn.phone,
            patientId=turn.context.patient_id,
            doctorId=effect.doctor_id,
        )

    async def _start_flow(self, turn: _Turn, effect: StartExternalFlow) -> None:
        token = mint_flow_token()
        await self.flows.create_tracking(turn.phone, effect.flow_id, token)
        try:
            await self.dispatcher.start_flow(turn.phone, effect.flow_id, token, effect.body)
        except ExternalAPIError as e:
            logger.warning("Flow %s launch to %s failed: %s", effect.flow_id, turn.phone, e)
            status = "failed"
        else:
            status = "sent"
        await self.flows.create_message({
            "userPhone": turn.phone,
            "messageType": "interactive",
            "content": effect.body,
            "flowId": effect.flow_id,
            "flowToken": token,
            "status": status,
        })

    async def _ensure_patient(self, phone: str, patient_id: Optional[str]) -> Dict[str, Any]:
        patient = await self.patients.get_by_phone(phone)
        if patient is None and patient_id:
            patient = await self.patients.get_by_id(patient_id)
        if patient is None:
            patient = await self.patients.create({
                "name": STUB_PATIENT_NAME,
                "phoneNumber": phone,
                "source": "whatsapp",
            })
            logger.info("Created stub patient %s for %s", patient["id"], phone)
        return patient

    async def _send_payment(self, turn: _Turn, effect: SendPersonalizedPayment) -> None:
        """Mint a payment template whose completion button is unique to this booking."""
        suffix = unique_suffix()
        booking_id = (turn.booking or {}).get("id")
        reference = booking_id or suffix
        doctor = format_doctor_name(effect.doctor_name) if effect.doctor_name else "Your doctor"
        slot = effect.slot_label or "To be confirmed"

        confirmed = self.catalog.get_template(CONFIRMED_TEMPLATE_ID).clone()
        confirmed.name = f"{confirmed.name} ({turn.phone})"
        confirmed.content.body = CONFIRMED_BODY.format(reference=reference, doctor=doctor, slot=slot)
        confirmed = self.catalog.add_template(confirmed)

        button_id = f"{PAYMENT_DONE_BUTTON_ID}_{suffix}"
        trigger_id = f"trigger_payment_done_{suffix}"
        payment = self.catalog.get_template(PAYMENT_TEMPLATE_ID).clone()
        payment.name = f"{payment.name} ({turn.phone})"
        payment.content.body = PAYMENT_BODY.format(doctor=doctor, slot=slot, reference=reference)
        for button in payment.content.buttons:
            if button.id == PAYMENT_DONE_BUTTON_ID:
                button.id = button_id
                button.trigger_id = trigger_id
                button.target_template_id = confirmed.id
        payment = self.catalog.add_template(payment)

        self.catalog.add_trigger(Trigger(
            id=trigger_id,
            kind=TriggerKind.BUTTON_ID,
            value=button_id,
            target_template_id=confirmed.id,
            purpose=TriggerPurpose.PAYMENT_COMPLETED,
            label=slot,
            booking_id=booking_id,
            doctor_id=(turn.booking or {}).get("doctorId"),
        ))
        await self.dispatcher.deliver(
            payment,
            turn.phone,
            bookingId=booking_id,
            patientId=(turn.patient or {}).get("id"),
        )

    async def _send_lab_payment(self, turn: _Turn, effect: SendLabPayment) -> None:
        """Mint a lab payment template and a confirmation that names the requested lab."""
        suffix = unique_suffix()
        lab = effect.lab_name or "Lab test"

        confirmed = self.catalog.get_template(LAB_CONFIRMED_TEMPLATE_ID).clone()
        confirmed.name = f"{confirmed.name} ({turn.phone})"
        confirmed.content.body = LAB_CONFIRMED_BODY.format(reference=suffix, lab=lab)
        confirmed = self.catalog.add_template(confirmed)

        button_id = f"{PAYMENT_DONE_BUTTON_ID}_{suffix}"
        trigger_id = f"trigger_payment_done_{suffix}"
        payment = self.catalog.get_template(PAYMENT_TEMPLATE_ID).clone()
        payment.name = f"Lab Payment ({turn.phone})"
        payment.content.body = LAB_PAYMENT_BODY.format(lab=lab, reference=suffix)
        for button in payment.content.buttons:
            if button.id == PAYMENT_DONE_BUTTON_ID:
                button.id = button_id
                button.trigger_id = trigger_id
                button.target_template_id = confirmed.id
        payment = self.catalog.add_template(payment)

        self.catalog.add_trigger(Trigger(
            id=trigger_id,
            kind=TriggerKind.BUTTON_ID,
            value=button_id,
            target_template_id=confirmed.id,
            purpose=TriggerPurpose.LAB_PAYMENT_COMPLETED,
            label=lab,
        ))
        await self.dispatcher.deliver(payment, turn.phone, patientId=turn.context.patient_id)

    async def _mark_arrived(self, turn: _Turn, booking_id: str) -> None:
        try:
            booking = await self.bookings.mark_arrived(booking_id, ARRIVAL_LOCATION, CHECKED_IN_BY)
        except BookingNotFoundError:
            logger.warning("Check-in for unknown booking %s from %s", booking_id, turn.phone)
            await self.dispatcher.deliver_text(turn.phone, "Sorry, we couldn't find that booking.")
            return
        turn.arrived.append(booking)

    async def _offer_checkin_choices(self, turn: _Turn, candidates) -> None:
        rows = []
        for booking in candidates:
            doctor = await self._doctor(booking.get("doctorId"))
            doctor_name = (doctor or {}).get("name") or "Doctor"
            row = ListRow(
                id=booking["id"],
                label=truncate_title(f"{doctor_name} {self._slot_text(booking)}", self.row_title_limit),
                description=truncate_title((doctor or {}).get("specialization") or "", 72),
                trigger_id=f"trigger_checkin_{booking['id']}",
                next_action=NextAction.MARK_ARRIVED_SELECTED,
            )
            if not self.catalog.has_trigger(TriggerKind.LIST_ROW_ID, row.id):
                self.catalog.add_trigger(Trigger(
                    id=row.trigger_id,
                    kind=TriggerKind.LIST_ROW_ID,
                    value=row.id,
                    next_action=NextAction.MARK_ARRIVED_SELECTED,
                    purpose=TriggerPurpose.CHECKIN_SELECTION,
                    booking_id=booking["id"],
                    label=row.label,
                ))
            rows.append(row)

        template = self.catalog.add_template(Template(
            id="",
            name=f"Check-in Booking Selection ({turn.phone})",
            kind=TemplateKind.LIST_MENU,
            content=TemplateContent(
                header="Your Bookings",
                body="You have more than one scheduled booking. Which one are you checking in for?",
                button_text="Choose Booking",
                sections=[ListSection(title="Scheduled Bookings", rows=rows)],
            ),
        ))
        await self.dispatcher.deliver(template, turn.phone)

    def _slot_text(self, booking: Dict[str, Any]) -> str:
        meta = booking.get("meta") or {}
        if meta.get("slotTitle"):
            return str(meta["slotTitle"])
        when = parse_iso(booking.get("bookingTime"))
        if isinstance(when, datetime):
            return self.date_parser.format_local(when, "%a %I:%M %p")
        return ""
