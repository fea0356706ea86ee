"""
Booking conversation state machine.

``transition`` is a pure function of the booking context and one event. It
never touches the store or the transport; it returns the next phase and the
effects the caller must carry out, in order.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple, Union

from ...core.enums import BookingPhase
from ...core.models import BookingContext
from ..catalog.seed import (
    BOOK_TEMPLATE_ID,
    CONFIRM_TEMPLATE_ID,
    CONFIRMED_TEMPLATE_ID,
    LAB_BOOKED_TEMPLATE_ID,
    PATIENT_SELECT_TEMPLATE_ID,
    SLOTS_TEMPLATE_ID,
    WELCOME_TEMPLATE_ID,
)

NO_PENDING_TEXT = (
    "Sorry, we couldn't find an appointment in progress. "
    "Please choose a doctor and a slot to book again."
)
NO_CHECKIN_TEXT = (
    "Sorry, we couldn't find a scheduled booking for you today. "
    "Please contact the reception desk for help."
)
FLOW_INVITE_TEXT = "Welcome! Please fill this short form to register as a new patient."
LAB_REQUEST_PREFIX = "Lab test requested: "
LAB_PAID_PREFIX = "Lab test paid: "


# Events

@dataclass(frozen=True)
class GreetingReceived:
    patient_found: bool
    flow_id: Optional[str] = None
    template_id: str = WELCOME_TEMPLATE_ID


@dataclass(frozen=True)
class DoctorSelected:
    doctor_id: Optional[str]
    doctor_name: Optional[str]
    template_id: str = SLOTS_TEMPLATE_ID


@dataclass(frozen=True)
class SlotSelected:
    slot_label: str
    slot_title: Optional[str] = None
    doctor_name: Optional[str] = None
    doctor_id: Optional[str] = None
    template_id: str = CONFIRM_TEMPLATE_ID


@dataclass(frozen=True)
class ConfirmAndPay:
    pass


@dataclass(frozen=True)
class PaymentCompleted:
    template_id: str = CONFIRMED_TEMPLATE_ID
    booking_id: Optional[str] = None


@dataclass(frozen=True)
class CheckInRequested:
    patient_found: bool
    candidates: Tuple[Dict[str, Any], ...] = ()


@dataclass(frozen=True)
class CheckInSelected:
    booking_id: str


@dataclass(frozen=True)
class PatientSelected:
    patient_id: str
    template_id: str = WELCOME_TEMPLATE_ID


@dataclass(frozen=True)
class LabSelected:
    lab_name: str
    template_id: str = LAB_BOOKED_TEMPLATE_ID


@dataclass(frozen=True)
class LabPaymentRequested:
    lab_name: Optional[str] = None


@dataclass(frozen=True)
class LabPaymentCompleted:
    template_id: Optional[str]
    lab_name: Optional[str] = None


@dataclass(frozen=True)
class TemplateRequested:
    template_id: Optional[str]


@dataclass(frozen=True)
class ExternalFlowRequested:
    flow_id: str


@dataclass(frozen=True)
class Unmatched:
    pass


Event = Union[
    GreetingReceived, DoctorSelected, SlotSelected, ConfirmAndPay, PaymentCompleted,
    CheckInRequested, CheckInSelected, PatientSelected, LabSelected, LabPaymentRequested,
    LabPaymentCompleted, TemplateRequested, ExternalFlowRequested, Unmatched,
]


# Effects

@dataclass(frozen=True)
class SendTemplate:
    template_id: Optional[str]
    doctor_name: Optional[str] = None
    doctor_id: Optional[str] = None


@dataclass(frozen=True)
class SendText:
    body: str


@dataclass(frozen=True)
class StartExternalFlow:
    flow_id: str
    body: str = FLOW_INVITE_TEXT


@dataclass(frozen=True)
class MergePending:
    patient_id: Optional[str] = None
    doctor_id: Optional[str] = None
    booking_time: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeletePending:
    pass


@dataclass(frozen=True)
class EnsurePatient:
    patient_id: Optional[str] = None


@dataclass(frozen=True)
class CreateBooking:
    doctor_id: Optional[str]
    booking_time: Optional[str]
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SendPersonalizedPayment:
    doctor_name: Optional[str]
    slot_label: Optional[str]


@dataclass(frozen=True)
class SendLabPayment:
    lab_name: Optional[str]


@dataclass(frozen=True)
class RecordMessage:
    content: str
    message_type: str = "text"


@dataclass(frozen=True)
class MarkArrived:
    booking_id: str


@dataclass(frozen=True)
class NotifyArrival:
    booking_id: str


@dataclass(frozen=True)
class OfferCheckInChoices:
    candidates: Tuple[Dict[str, Any], ...]


Effect = Union[
    SendTemplate, SendText, StartExternalFlow, MergePending, DeletePending, EnsurePatient,
    CreateBooking, SendPersonalizedPayment, SendLabPayment, RecordMessage, MarkArrived,
    NotifyArrival, OfferCheckInChoices,
]


@dataclass(frozen=True)
class Transition:
    phase: BookingPhase
    effects: Tuple[Effect, ...] = ()


def derive_phase(context: BookingContext) -> BookingPhase:
    """Phase implied by the pending booking record."""
    if not context.has_pending:
        return BookingPhase.NONE
    if context.slot_label:
        return BookingPhase.SLOT_CHOSEN
    if context.doctor_id or context.doctor_name:
        return BookingPhase.DOCTOR_CHOSEN
    return BookingPhase.NONE


def booking_confirmation_text(doctor_name: Optional[str], slot_label: Optional[str]) -> str:
    return (
        "Booking confirmed.\n"
        f"Doctor: {doctor_name or 'Assigned doctor'}\n"
        f"Slot: {slot_label or 'To be confirmed'}\n"
        "Payment pending."
    )


def transition(context: BookingContext, event: Event) -> Transition:
    """Next phase and ordered effects for one inbound event."""
    current = derive_phase(context)

    if isinstance(event, GreetingReceived):
        if event.patient_found or not event.flow_id:
            return Transition(current, (SendTemplate(event.template_id),))
        return Transition(current, (StartExternalFlow(event.flow_id),))

    if isinstance(event, DoctorSelected):
        meta = {"doctorName": event.doctor_name} if event.doctor_name else {}
        return Transition(BookingPhase.DOCTOR_CHOSEN, (
            MergePending(doctor_id=event.doctor_id, meta=meta),
            SendTemplate(event.template_id, doctor_name=event.doctor_name, doctor_id=event.doctor_id),
        ))

    if isinstance(event, SlotSelected):
        doctor_name = context.doctor_name or event.doctor_name
        meta = {"slotTitle": event.slot_title or event.slot_label}
        if doctor_name and not context.doctor_name:
            meta["doctorName"] = doctor_name
        doctor_id = None if context.doctor_id else event.doctor_id
        return Transition(BookingPhase.SLOT_CHOSEN, (
            MergePending(doctor_id=doctor_id, booking_time=event.slot_label, meta=meta),
            SendTemplate(event.template_id, doctor_name=doctor_name),
        ))

    if isinstance(event, ConfirmAndPay):
        if not context.has_pending:
            return Transition(BookingPhase.NONE, (
                SendText(NO_PENDING_TEXT),
                SendTemplate(BOOK_TEMPLATE_ID),
            ))
        booking_meta = {**context.meta, "source": "whatsapp", "userPhone": context.user_phone}
        return Transition(BookingPhase.AWAITING_PAYMENT, (
            EnsurePatient(context.patient_id),
            CreateBooking(context.doctor_id, context.slot_label, booking_meta),
            DeletePending(),
            SendPersonalizedPayment(context.doctor_name, context.slot_label),
            RecordMessage(booking_confirmation_text(context.doctor_name, context.slot_label)),
        ))

    if isinstance(event, PaymentCompleted):
        effects = [SendTemplate(event.template_id)]
        if context.has_pending:
            effects.append(DeletePending())
        return Transition(BookingPhase.FINALIZED, tuple(effects))

    if isinstance(event, CheckInRequested):
        if not event.patient_found:
            return Transition(current, (SendTemplate(PATIENT_SELECT_TEMPLATE_ID),))
        if not event.candidates:
            return Transition(current, (SendText(NO_CHECKIN_TEXT),))
        if len(event.candidates) == 1:
            booking_id = event.candidates[0]["id"]
            return Transition(current, (MarkArrived(booking_id), NotifyArrival(booking_id)))
        return Transition(current, (OfferCheckInChoices(tuple(event.candidates)),))

    if isinstance(event, CheckInSelected):
        return Transition(current, (MarkArrived(event.booking_id), NotifyArrival(event.booking_id)))

    if isinstance(event, PatientSelected):
        return Transition(current, (
            MergePending(patient_id=event.patient_id),
            SendTemplate(event.template_id),
        ))

    if isinstance(event, LabSelected):
        # Lab requests live only as message content, never as a Booking.
        return Transition(current, (
            RecordMessage(f"{LAB_REQUEST_PREFIX}{event.lab_name}"),
            SendTemplate(event.template_id),
        ))

    if isinstance(event, LabPaymentRequested):
        return Transition(current, (SendLabPayment(event.lab_name),))

    if isinstance(event, LabPaymentCompleted):
        return Transition(current, (
            RecordMessage(f"{LAB_PAID_PREFIX}{event.lab_name or 'Lab test'}"),
            SendTemplate(event.template_id),
        ))

    if isinstance(event, TemplateRequested):
        phase = current
        if event.template_id == WELCOME_TEMPLATE_ID and context.has_pending:
            phase = BookingPhase.ABANDONED
        if event.template_id == SLOTS_TEMPLATE_ID and (context.doctor_id or context.doctor_name):
            # Going back to slots keeps the doctor already chosen.
            return Transition(phase, (
                SendTemplate(event.template_id, doctor_name=context.doctor_name, doctor_id=context.doctor_id),
            ))
        return Transition(phase, (SendTemplate(event.template_id),))

    if isinstance(event, ExternalFlowRequested):
        return Transition(current, (StartExternalFlow(event.flow_id),))

    return Transition(current, (SendTemplate(WELCOME_TEMPLATE_ID),))
