"""Email templates for verification notifications."""

from dataclasses import dataclass
from typing import Any, Callable, Dict


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    text: str


def _verification_status(params: Dict[str, Any]) -> RenderedMessage:
    status = params["status"]
    name = params.get("first_name") or "there"

    if status == "APPROVED":
        expires = params.get("expires_at") or "one year from today"
        subject = "Your accredited investor verification was approved"
        body = (
            f"You are now verified as an accredited investor. "
            f"Your verification is valid until {expires}."
        )
    elif status == "REJECTED":
        reason = params.get("rejection_reason") or "No reason was given"
        subject = "Your accredited investor verification was not approved"
        body = (
            f"We could not approve your verification request.\n\n"
            f"Reason: {reason}\n\n"
            f"You may submit a new request with updated information."
        )
    elif status == "IN_REVIEW":
        subject = "Your accredited investor verification is under review"
        body = "A reviewer has started looking at your verification request. We will email you once a decision is made."
    else:
        subject = "Your accredited investor verification was updated"
        body = f"The status of your verification request is now {status}."

    notes = params.get("reviewer_notes")
    if notes:
        body += f"\n\nReviewer notes: {notes}"

    text = f"""Hello {name},

{body}

Request reference: {params.get("verification_id", "n/a")}

Best regards,
The Accreditation Team
"""
    return RenderedMessage(subject=subject, text=text)


TEMPLATES: Dict[str, Callable[[Dict[str, Any]], RenderedMessage]] = {
    "verification_status": _verification_status,
}


def render(template: str, params: Dict[str, Any]) -> RenderedMessage:
    """Render a named template.

    Raises:
        KeyError: If the template is unknown
    """
    return TEMPLATES[template](params)
