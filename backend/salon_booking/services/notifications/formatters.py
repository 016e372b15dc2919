# backend/salon_booking/services/notifications/formatters.py
"""
Plain-text email bodies for booking events.

Two recipients per event:
- client  (only when the booking has client_email)
- owner   (tenant email; not for reminders)
"""

from dataclasses import dataclass
from datetime import datetime

WEEKDAYS = ["Montag", "Dienstag", "Mittwoch", "Donnerstag", "Freitag", "Samstag", "Sonntag"]
MONTHS = [
    "Januar", "Februar", "März", "April", "Mai", "Juni",
    "Juli", "August", "September", "Oktober", "November", "Dezember",
]


@dataclass
class EmailMessage:
    to: str
    subject: str
    text: str


def format_price(cents: int) -> str:
    euros, rest = divmod(cents, 100)
    return f"{euros:,}".replace(",", ".") + f",{rest:02d} €"


def format_duration(minutes: int) -> str:
    if minutes < 60:
        return f"{minutes} Min."
    hours, rest = divmod(minutes, 60)
    return f"{hours} Std. {rest} Min." if rest else f"{hours} Std."


def format_date(value: datetime) -> str:
    return f"{WEEKDAYS[value.weekday()]}, {value.day}. {MONTHS[value.month - 1]} {value.year}"


def format_time(value: datetime) -> str:
    return value.strftime("%H:%M")


def _details(b: dict) -> list[str]:
    lines = [
        f"Leistung: {b['service_name']}",
        f"Mitarbeiter: {b['staff_name']}",
        f"Datum: {format_date(b['start_local'])}",
        f"Uhrzeit: {format_time(b['start_local'])}",
        f"Dauer: {format_duration(b['duration'])}",
        f"Preis: {format_price(b['price'])}",
    ]
    if b.get("salon_address"):
        lines.append(f"Adresse: {b['salon_address']}")
    if b.get("salon_phone"):
        lines.append(f"Telefon: {b['salon_phone']}")
    return lines


def _client_contact(b: dict) -> list[str]:
    lines = [f"Kunde: {b['client_name']}", f"Telefon: {b['client_phone']}"]
    if b.get("client_email"):
        lines.append(f"E-Mail: {b['client_email']}")
    return lines


def build_messages(event_type: str, b: dict) -> list[EmailMessage]:
    """Messages for one event; empty when the event type has no emails."""
    salon = b["salon_name"]
    date_str = format_date(b["start_local"])
    messages: list[EmailMessage] = []

    if event_type == "booking_created":
        if b.get("client_email"):
            body = [f"Hallo {b['client_name']},", "", f"Ihr Termin bei {salon} ist gebucht.", ""]
            body += _details(b)
            if b.get("reschedule_url"):
                body += ["", f"Termin verschieben: {b['reschedule_url']}"]
            if b.get("cancel_url"):
                body += [f"Termin stornieren: {b['cancel_url']}"]
            messages.append(EmailMessage(b["client_email"], f"Buchungsbestätigung - {salon}", "\n".join(body)))
        if b.get("salon_email"):
            body = ["Neue Buchung über das Buchungs-Widget.", ""] + _client_contact(b) + [""] + _details(b)
            messages.append(EmailMessage(
                b["salon_email"], f"Neue Buchung: {b['service_name']} am {date_str}", "\n".join(body)
            ))

    elif event_type == "booking_rescheduled":
        old = b.get("old_start_local")
        old_line = f"Bisher: {format_date(old)}, {format_time(old)}" if old else None
        if b.get("client_email"):
            body = [f"Hallo {b['client_name']},", "", f"Ihr Termin bei {salon} wurde verschoben.", ""]
            if old_line:
                body.append(old_line)
            body += _details(b)
            if b.get("cancel_url"):
                body += ["", f"Termin stornieren: {b['cancel_url']}"]
            messages.append(EmailMessage(b["client_email"], f"Termin verschoben - {salon}", "\n".join(body)))
        if b.get("salon_email"):
            body = ["Ein Kunde hat seinen Termin verschoben.", ""] + _client_contact(b) + [""]
            if old_line:
                body.append(old_line)
            body += _details(b)
            messages.append(EmailMessage(
                b["salon_email"], f"Termin verschoben: {b['service_name']} am {date_str}", "\n".join(body)
            ))

    elif event_type == "booking_cancelled":
        if b.get("client_email"):
            body = [f"Hallo {b['client_name']},", "", f"Ihr Termin bei {salon} wurde storniert.", ""]
            body += _details(b)
            messages.append(EmailMessage(b["client_email"], f"Stornierungsbestätigung - {salon}", "\n".join(body)))
        if b.get("salon_email"):
            body = ["Ein Kunde hat seinen Termin storniert.", ""] + _client_contact(b) + [""] + _details(b)
            messages.append(EmailMessage(
                b["salon_email"], f"Stornierung: {b['service_name']} am {date_str}", "\n".join(body)
            ))

    elif event_type == "booking_reminder":
        # Client only
        if b.get("client_email"):
            body = [
                f"Hallo {b['client_name']},",
                "",
                f"wir möchten Sie an Ihren Termin morgen bei {salon} erinnern.",
                "",
            ]
            body += _details(b)
            if b.get("cancel_url"):
                body += ["", f"Falls Sie den Termin nicht wahrnehmen können: {b['cancel_url']}"]
            body += ["", "Wir freuen uns auf Ihren Besuch!"]
            messages.append(EmailMessage(
                b["client_email"], f"Erinnerung: Ihr Termin morgen bei {salon}", "\n".join(body)
            ))

    return messages
