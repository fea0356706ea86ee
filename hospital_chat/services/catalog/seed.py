"""
Seeded conversation graph: the fixed templates and triggers loaded at start.
"""

from typing import List

from ...core.enums import TemplateKind, TriggerKind, NextAction, TriggerPurpose
from ...core.models import Template, TemplateContent, TemplateButton, ListSection, ListRow, Trigger

WELCOME_TEMPLATE_ID = "msg_welcome_interactive"
NEW_OR_EXISTING_TEMPLATE_ID = "msg_new_or_existing"
NEW_PATIENT_FORM_TEMPLATE_ID = "msg_new_patient_form"
PATIENT_SELECT_TEMPLATE_ID = "msg_existing_patient_select"
BOOK_TEMPLATE_ID = "msg_book_interactive"
DOCTOR_LIST_TEMPLATE_ID = "msg_doctor_selection"
SLOTS_TEMPLATE_ID = "msg_sharma_slots_interactive"
CONFIRM_TEMPLATE_ID = "msg_confirm_appointment"
PAYMENT_TEMPLATE_ID = "msg_payment_link"
CONFIRMED_TEMPLATE_ID = "msg_appointment_confirmed"
LAB_LIST_TEMPLATE_ID = "msg_lab_interactive"
LAB_BOOKED_TEMPLATE_ID = "msg_lab_booking"
LAB_CONFIRMED_TEMPLATE_ID = "msg_lab_payment_confirmed"
EMERGENCY_TEMPLATE_ID = "msg_emergency"

REGISTRATION_FLOW_ID = "1366099374850695"

SLOT_BUTTON_PREFIX = "btn_slot_"
PAYMENT_DONE_BUTTON_ID = "btn_payment_done"
CONFIRM_HEADER = "Confirm Your Appointment ✅"
SLOTS_HEADER_SUFFIX = "Available Slots 📅"

PAYMENT_BODY = (
    "Please complete your payment to confirm the appointment:\n\n"
    "💰 Amount: ₹750\n"
    "🏥 {doctor} Consultation\n"
    "📅 {slot}\n\n"
    "[Payment Link: https://pay.hospital.com/{reference}]"
)

CONFIRMED_BODY = (
    "Your appointment has been successfully booked:\n\n"
    "🎫 Booking: {reference}\n"
    "👨‍⚕️ {doctor}\n"
    "📅 {slot}\n"
    "🏥 Room 201, 2nd Floor\n\n"
    "Please arrive 15 minutes early."
)

LAB_PAYMENT_BODY = (
    "Please complete your payment for the lab test:\n\n"
    "🧪 {lab}\n"
    "🎫 Reference: {reference}\n\n"
    "[Payment Link: https://pay.hospital.com/lab/{reference}]"
)

LAB_CONFIRMED_BODY = (
    "Your lab test payment has been received:\n\n"
    "🎫 Reference: {reference}\n"
    "🧪 {lab}\n"
    "🏥 Laboratory, Ground Floor\n\n"
    "Please carry a valid ID for sample collection."
)


def _button(button_id, label, trigger_id, target=None, action=NextAction.SEND_TEMPLATE):
    return TemplateButton(
        id=button_id,
        label=label,
        trigger_id=trigger_id,
        next_action=action,
        target_template_id=target,
    )


def _row(row_id, label, description, trigger_id, target):
    return ListRow(
        id=row_id,
        label=label,
        description=description,
        trigger_id=trigger_id,
        target_template_id=target,
    )


def seed_templates() -> List[Template]:
    """The fixed template graph."""
    return [
        Template(
            id=WELCOME_TEMPLATE_ID,
            name="Welcome - Interactive Menu",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Welcome to Hospital Services! 🏥",
                body="Hello! How can we assist you today? Please choose an option below:",
                footer="Powered by Hospital Management System",
                buttons=[
                    _button("btn_book_appointment", "📅 Book Appointment", "trigger_book_appointment", BOOK_TEMPLATE_ID),
                    _button("btn_lab_tests", "🧪 Lab Tests", "trigger_lab_tests", LAB_LIST_TEMPLATE_ID),
                    _button("btn_emergency", "🚨 Emergency", "trigger_emergency", EMERGENCY_TEMPLATE_ID),
                    _button("btn_checkin", "📍 I've arrived", "trigger_checkin", action=NextAction.MARK_ARRIVED),
                ],
            ),
        ),
        Template(
            id=NEW_OR_EXISTING_TEMPLATE_ID,
            name="New or Existing Patient?",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Welcome!",
                body="Are you a new patient or an existing patient? Please choose:",
                footer="We will help you accordingly",
                buttons=[
                    _button(
                        "btn_new_patient", "New Patient", "trigger_new_patient",
                        action=NextAction.START_EXTERNAL_FLOW,
                    ),
                    _button("btn_existing_patient", "Existing Patient", "trigger_existing_patient", PATIENT_SELECT_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=NEW_PATIENT_FORM_TEMPLATE_ID,
            name="New Patient - Form",
            kind=TemplateKind.PLAIN_TEXT,
            content=TemplateContent(
                body=f"To register as a new patient please fill this form. Form ID: {REGISTRATION_FLOW_ID}",
            ),
        ),
        Template(
            id=PATIENT_SELECT_TEMPLATE_ID,
            name="Select Existing Patient",
            kind=TemplateKind.LIST_MENU,
            content=TemplateContent(
                header="Existing Patients",
                body="Select your name from the list:",
                footer="Your details will be loaded",
                button_text="Choose Name",
                sections=[ListSection(title="Patients", rows=[])],
            ),
        ),
        Template(
            id=BOOK_TEMPLATE_ID,
            name="Book Appointment - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Book Your Appointment 📅",
                body="Which type of appointment would you like to book?",
                footer="Select your preferred option",
                buttons=[
                    _button("btn_general_checkup", "👩‍⚕️ General Checkup", "trigger_general_checkup", DOCTOR_LIST_TEMPLATE_ID),
                    _button("btn_back_main", "⬅️ Back to Main", "trigger_back_main", WELCOME_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=DOCTOR_LIST_TEMPLATE_ID,
            name="Doctor Selection - Interactive",
            kind=TemplateKind.LIST_MENU,
            content=TemplateContent(
                header="Available Doctors 👩‍⚕️",
                body="Please select a doctor for your appointment:",
                footer="All doctors are available for booking",
                button_text="Choose Doctor",
                sections=[
                    ListSection(
                        title="General Physicians",
                        rows=[
                            _row("dr_sharma", "Dr. Sharma", "General Physician - Available Mon-Fri",
                                 "trigger_dr_sharma", SLOTS_TEMPLATE_ID),
                            _row("dr_patel", "Dr. Patel", "General Physician - Available Tue-Sat",
                                 "trigger_dr_patel", SLOTS_TEMPLATE_ID),
                        ],
                    )
                ],
            ),
        ),
        Template(
            id=SLOTS_TEMPLATE_ID,
            name="Doctor Slots - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header=f"Dr. Sharma - {SLOTS_HEADER_SUFFIX}",
                body="Please select your preferred time slot:",
                footer="Consultation fee: ₹750",
                buttons=[
                    _button("btn_slot_930", "🕘 Mon 9:30 AM", "trigger_slot_930", CONFIRM_TEMPLATE_ID),
                    _button("btn_slot_4pm", "🕐 Wed 4:00 PM", "trigger_slot_4pm", CONFIRM_TEMPLATE_ID),
                    _button("btn_back_doctors", "⬅️ Back to Doctors", "trigger_back_doctors", DOCTOR_LIST_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=CONFIRM_TEMPLATE_ID,
            name="Confirm Appointment - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header=CONFIRM_HEADER,
                body=(
                    "Appointment Details:\n👨‍⚕️ Dr. Sharma\n📅 Monday, Oct 14\n🕘 9:30 AM\n"
                    "💰 Fee: ₹750\n\nWould you like to confirm and proceed to payment?"
                ),
                footer="You can reschedule if needed",
                buttons=[
                    _button("btn_confirm_pay", "✅ Confirm & Pay", "trigger_confirm_pay", PAYMENT_TEMPLATE_ID),
                    _button("btn_reschedule", "🔄 Reschedule", "trigger_reschedule", SLOTS_TEMPLATE_ID),
                    _button("btn_cancel", "❌ Cancel", "trigger_cancel", WELCOME_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=PAYMENT_TEMPLATE_ID,
            name="Payment Link - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Payment Required 💳",
                body=PAYMENT_BODY.format(doctor="Dr. Sharma", slot="Monday, Oct 14, 9:30 AM", reference="abc123"),
                footer="Secure payment powered by Razorpay",
                buttons=[
                    _button(PAYMENT_DONE_BUTTON_ID, "✅ Payment Completed", "trigger_payment_done", WELCOME_TEMPLATE_ID),
                    _button("btn_payment_help", "❓ Payment Help", "trigger_payment_help", "msg_payment_support"),
                    _button("btn_cancel_payment", "❌ Cancel", "trigger_cancel_payment", WELCOME_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=CONFIRMED_TEMPLATE_ID,
            name="Appointment Confirmed - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Appointment Confirmed! 🎉",
                body=CONFIRMED_BODY.format(reference="GM-015", doctor="Dr. Sharma", slot="Monday, Oct 14, 9:30 AM"),
                footer="Thank you for choosing our hospital",
                buttons=[
                    _button("btn_add_calendar", "📅 Add to Calendar", "trigger_add_calendar", "msg_calendar_added"),
                    _button("btn_book_another", "➕ Book Another", "trigger_book_another", BOOK_TEMPLATE_ID),
                    _button("btn_main_menu", "🏠 Main Menu", "trigger_main_menu", WELCOME_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=LAB_LIST_TEMPLATE_ID,
            name="Lab Tests - Interactive",
            kind=TemplateKind.LIST_MENU,
            content=TemplateContent(
                header="Laboratory Services 🧪",
                body="Choose the type of lab test you need:",
                footer="All tests include home collection option",
                button_text="Select Test",
                sections=[
                    ListSection(
                        title="Common Tests",
                        rows=[
                            _row("test_blood_sugar", "Blood Sugar Test", "Fasting & Random - ₹200",
                                 "trigger_blood_sugar", LAB_BOOKED_TEMPLATE_ID),
                            _row("test_full_body", "Full Body Checkup", "Complete health screening - ₹1200",
                                 "trigger_full_body", LAB_BOOKED_TEMPLATE_ID),
                        ],
                    ),
                    ListSection(
                        title="Specialized Tests",
                        rows=[
                            _row("test_cardiac", "Cardiac Profile", "Heart health assessment - ₹800",
                                 "trigger_cardiac", LAB_BOOKED_TEMPLATE_ID),
                        ],
                    ),
                ],
            ),
        ),
        Template(
            id=LAB_BOOKED_TEMPLATE_ID,
            name="Lab Test Booked - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Lab Test Booked 🧪",
                body="Your lab test request has been noted. You can pay now or at the lab counter.",
                footer="Carry a valid ID for sample collection",
                buttons=[
                    _button("btn_prescription_pay_now", "💳 Pay Now", "trigger_prescription_pay_now", PAYMENT_TEMPLATE_ID),
                    _button("btn_prescription_pay_later", "⏰ Pay Later", "trigger_prescription_pay_later", WELCOME_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=LAB_CONFIRMED_TEMPLATE_ID,
            name="Lab Payment Confirmed - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="Lab Test Confirmed 🧪",
                body=LAB_CONFIRMED_BODY.format(reference="LAB-001", lab="Blood Sugar Test"),
                footer="Thank you for choosing our hospital",
                buttons=[
                    _button("btn_main_menu", "🏠 Main Menu", "trigger_main_menu", WELCOME_TEMPLATE_ID),
                ],
            ),
        ),
        Template(
            id=EMERGENCY_TEMPLATE_ID,
            name="Emergency Services - Interactive",
            kind=TemplateKind.BUTTON_MENU,
            content=TemplateContent(
                header="🚨 Emergency Services",
                body=(
                    "This is for medical emergencies only. If this is a life-threatening situation, "
                    "please call 108 immediately.\n\nFor non-emergency urgent care, choose an option:"
                ),
                footer="Emergency helpline: 108",
                buttons=[
                    _button("btn_urgent_care", "🏥 Urgent Care", "trigger_urgent_care", "msg_urgent_care_info"),
                    _button("btn_ambulance", "🚑 Book Ambulance", "trigger_ambulance", "msg_ambulance_booking"),
                    _button("btn_call_emergency", "📞 Call Emergency", "trigger_call_emergency", "msg_emergency_contact"),
                ],
            ),
        ),
    ]


def _on_button(trigger_id, button_id, target=None, purpose=TriggerPurpose.GENERAL, **extra) -> Trigger:
    return Trigger(
        id=trigger_id,
        kind=TriggerKind.BUTTON_ID,
        value=button_id,
        next_action=extra.pop("next_action", NextAction.SEND_TEMPLATE),
        target_template_id=target,
        purpose=purpose,
        **extra,
    )


def _on_row(trigger_id, row_id, target, purpose, **extra) -> Trigger:
    return Trigger(
        id=trigger_id,
        kind=TriggerKind.LIST_ROW_ID,
        value=row_id,
        next_action=NextAction.SEND_TEMPLATE,
        target_template_id=target,
        purpose=purpose,
        **extra,
    )


def _on_keywords(trigger_id, keywords, target=None, purpose=TriggerPurpose.GENERAL, **extra) -> Trigger:
    return Trigger(
        id=trigger_id,
        kind=TriggerKind.KEYWORD_SET,
        value=list(keywords),
        next_action=extra.pop("next_action", NextAction.SEND_TEMPLATE),
        target_template_id=target,
        purpose=purpose,
        **extra,
    )


def seed_triggers(registration_flow_id: str = REGISTRATION_FLOW_ID) -> List[Trigger]:
    """The fixed trigger table in declaration order."""
    return [
        _on_button("trigger_book_appointment", "btn_book_appointment", BOOK_TEMPLATE_ID),
        _on_button("trigger_lab_tests", "btn_lab_tests", LAB_LIST_TEMPLATE_ID),
        _on_button("trigger_emergency", "btn_emergency", EMERGENCY_TEMPLATE_ID),
        _on_button("trigger_general_checkup", "btn_general_checkup", DOCTOR_LIST_TEMPLATE_ID),
        _on_button("trigger_back_main", "btn_back_main", WELCOME_TEMPLATE_ID),
        _on_row("trigger_dr_sharma", "dr_sharma", SLOTS_TEMPLATE_ID, TriggerPurpose.DOCTOR_SELECTION, label="Dr. Sharma"),
        _on_row("trigger_dr_patel", "dr_patel", SLOTS_TEMPLATE_ID, TriggerPurpose.DOCTOR_SELECTION, label="Dr. Patel"),
        _on_button("trigger_slot_930", "btn_slot_930", CONFIRM_TEMPLATE_ID, TriggerPurpose.SLOT_SELECTION, label="🕘 Mon 9:30 AM"),
        _on_button("trigger_slot_4pm", "btn_slot_4pm", CONFIRM_TEMPLATE_ID, TriggerPurpose.SLOT_SELECTION, label="🕐 Wed 4:00 PM"),
        _on_button("trigger_reschedule", "btn_reschedule", SLOTS_TEMPLATE_ID),
        _on_button("trigger_cancel", "btn_cancel", WELCOME_TEMPLATE_ID),
        _on_button("trigger_back_doctors", "btn_back_doctors", DOCTOR_LIST_TEMPLATE_ID),
        _on_button("trigger_confirm_pay", "btn_confirm_pay", PAYMENT_TEMPLATE_ID, TriggerPurpose.CONFIRM_AND_PAY),
        # Only minted per-booking and per-lab copies of this button confirm anything.
        _on_button("trigger_payment_done", PAYMENT_DONE_BUTTON_ID, WELCOME_TEMPLATE_ID),
        _on_button("trigger_cancel_payment", "btn_cancel_payment", WELCOME_TEMPLATE_ID),
        _on_button("trigger_book_another", "btn_book_another", BOOK_TEMPLATE_ID),
        _on_button("trigger_main_menu", "btn_main_menu", WELCOME_TEMPLATE_ID),
        _on_button(
            "trigger_new_patient", "btn_new_patient",
            next_action=NextAction.START_EXTERNAL_FLOW, external_flow_id=registration_flow_id,
        ),
        _on_button("trigger_existing_patient", "btn_existing_patient", PATIENT_SELECT_TEMPLATE_ID),
        _on_keywords(
            "trigger_hi", ["hi", "hello", "hey", "start", "menu"], WELCOME_TEMPLATE_ID,
            TriggerPurpose.GREETING, external_flow_id=registration_flow_id,
        ),
        _on_button("trigger_checkin", "btn_checkin", next_action=NextAction.MARK_ARRIVED),
        _on_keywords(
            "trigger_arrived",
            ["arrived", "i arrived", "i've arrived", "here", "i am here", "checkin", "check in", "check-in"],
            next_action=NextAction.MARK_ARRIVED,
        ),
        _on_keywords("trigger_help", ["help", "support", "assist"], WELCOME_TEMPLATE_ID),
        _on_row("trigger_blood_sugar", "test_blood_sugar", LAB_BOOKED_TEMPLATE_ID, TriggerPurpose.LAB_SELECTION,
                label="Blood Sugar Test"),
        _on_row("trigger_full_body", "test_full_body", LAB_BOOKED_TEMPLATE_ID, TriggerPurpose.LAB_SELECTION,
                label="Full Body Checkup"),
        _on_row("trigger_cardiac", "test_cardiac", LAB_BOOKED_TEMPLATE_ID, TriggerPurpose.LAB_SELECTION,
                label="Cardiac Profile"),
        _on_button("trigger_prescription_pay_now", "btn_prescription_pay_now", PAYMENT_TEMPLATE_ID,
                   TriggerPurpose.LAB_PAYMENT),
        _on_button("trigger_prescription_pay_later", "btn_prescription_pay_later", WELCOME_TEMPLATE_ID),
    ]
