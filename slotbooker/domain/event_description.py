"""
Text composition for external events and appointment notes.
"""

from typing import Mapping, Optional


def render_event_description(
    notes: Optional[str] = None,
    answers: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Build the event description from caller notes and intake answers.

    Example:
        Please call before
        <blank>
        --- Appointment Details ---
        name: Ada
        email: ada@example.com
    """
    lines = []
    if notes:
        lines.append(notes)
    if answers:
        lines.extend(["", "--- Appointment Details ---"])
        for key, value in answers.items():
            lines.append(f"{key}: {value}")
    return "\n".join(lines)


def render_appointment_notes(
    notes: Optional[str],
    external_event_id: str,
    zone: str,
    attendee_email: Optional[str],
) -> str:
    """Compose the stored notes, embedding the external event id for reconciliation."""
    parts = [
        notes or "",
        f"eventId={external_event_id}",
        f"timezone={zone}",
        f"attendee={attendee_email or 'none'}",
    ]
    return "\n".join(part for part in parts if part)
