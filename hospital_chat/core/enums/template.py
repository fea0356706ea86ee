"""
Template and trigger enums.
"""

from enum import Enum


class TemplateKind(str, Enum):
    """Shape of an outbound message template."""

    PLAIN_TEXT = "plain_text"
    BUTTON_MENU = "button_menu"
    LIST_MENU = "list_menu"


class PublicationStatus(str, Enum):
    """Only published templates may be sent."""

    DRAFT = "draft"
    PUBLISHED = "published"


class TriggerKind(str, Enum):
    """Kind of inbound signal a trigger listens for."""

    KEYWORD_SET = "keyword_set"
    BUTTON_ID = "button_id"
    LIST_ROW_ID = "list_row_id"


class NextAction(str, Enum):
    """What to do once a trigger matches."""

    SEND_TEMPLATE = "send_template"
    START_EXTERNAL_FLOW = "start_external_flow"
    MARK_ARRIVED = "mark_arrived"
    MARK_ARRIVED_SELECTED = "mark_arrived_selected"


class TriggerPurpose(str, Enum):
    """Conversation role of a trigger, used to pick the state machine event."""

    GENERAL = "general"
    GREETING = "greeting"
    DOCTOR_SELECTION = "doctor_selection"
    PATIENT_SELECTION = "patient_selection"
    SLOT_SELECTION = "slot_selection"
    CONFIRM_AND_PAY = "confirm_and_pay"
    PAYMENT_COMPLETED = "payment_completed"
    CHECKIN_SELECTION = "checkin_selection"
    LAB_SELECTION = "lab_selection"
    LAB_PAYMENT = "lab_payment"
    LAB_PAYMENT_COMPLETED = "lab_payment_completed"
