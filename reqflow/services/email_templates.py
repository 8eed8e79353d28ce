"""Email templates for requisition and custom notifications.

Templates use ``str.format`` placeholders. Every placeholder is required:
rendering fails with ``TemplateError`` rather than falling back to a default,
so an email can never go out naming the wrong organization.
"""

from __future__ import annotations

import html
import string
from dataclasses import dataclass
from typing import Any

from reqflow.core.errors import NotFoundError, TemplateError

TEMPLATE_REQUISITION_SUBMITTED = "requisition_submitted"
TEMPLATE_REQUISITION_APPROVED = "requisition_approved"
TEMPLATE_REQUISITION_REJECTED = "requisition_rejected"
TEMPLATE_CUSTOM = "custom_notification"

_BUTTON_STYLE = (
    "background-color: #2563eb; color: white; padding: 12px 24px; "
    "text-decoration: none; border-radius: 6px; display: inline-block;"
)


@dataclass(frozen=True)
class EmailTemplate:
    template_id: str
    subject: str
    html: str
    text: str

    def placeholders(self) -> set[str]:
        formatter = string.Formatter()
        names: set[str] = set()
        for part in (self.subject, self.html, self.text):
            for _, field_name, _, _ in formatter.parse(part):
                if field_name:
                    names.add(field_name)
        return names


@dataclass(frozen=True)
class RenderedEmail:
    template_id: str
    subject: str
    html: str
    text: str


TEMPLATES: dict[str, EmailTemplate] = {
    TEMPLATE_REQUISITION_SUBMITTED: EmailTemplate(
        template_id=TEMPLATE_REQUISITION_SUBMITTED,
        subject="New Requisition Submitted: {requisition_reference}",
        html=(
            "<html><body>"
            "<h2>New Requisition Submitted</h2>"
            "<p>Dear {recipient_name},</p>"
            "<p>A new requisition has been submitted in <strong>{organization_name}</strong> "
            "and requires your attention.</p>"
            "<table>"
            "<tr><td><strong>Requisition #:</strong></td><td>{requisition_reference}</td></tr>"
            "<tr><td><strong>Title:</strong></td><td>{requisition_title}</td></tr>"
            "<tr><td><strong>Submitted By:</strong></td><td>{actor_name}</td></tr>"
            "<tr><td><strong>Amount:</strong></td><td>{total_amount}</td></tr>"
            "</table>"
            f'<p><a href="{{link}}" style="{_BUTTON_STYLE}">View Requisition</a></p>'
            "<p>This is an automated message from {organization_name}.</p>"
            "</body></html>"
        ),
        text=(
            "New Requisition Submitted\n\n"
            "Dear {recipient_name},\n\n"
            "A new requisition has been submitted in {organization_name} "
            "and requires your attention.\n\n"
            "Requisition #: {requisition_reference}\n"
            "Title: {requisition_title}\n"
            "Submitted By: {actor_name}\n"
            "Amount: {total_amount}\n\n"
            "View requisition at: {link}\n\n"
            "This is an automated message from {organization_name}."
        ),
    ),
    TEMPLATE_REQUISITION_APPROVED: EmailTemplate(
        template_id=TEMPLATE_REQUISITION_APPROVED,
        subject="Requisition Approved: {requisition_reference}",
        html=(
            "<html><body>"
            "<h2>Requisition Approved</h2>"
            "<p>Dear {recipient_name},</p>"
            "<p>Your requisition in <strong>{organization_name}</strong> has been approved "
            "by {actor_name}.</p>"
            "<table>"
            "<tr><td><strong>Requisition #:</strong></td><td>{requisition_reference}</td></tr>"
            "<tr><td><strong>Title:</strong></td><td>{requisition_title}</td></tr>"
            "<tr><td><strong>Amount:</strong></td><td>{total_amount}</td></tr>"
            "</table>"
            f'<p><a href="{{link}}" style="{_BUTTON_STYLE}">View Requisition</a></p>'
            "<p>This is an automated message from {organization_name}.</p>"
            "</body></html>"
        ),
        text=(
            "Requisition Approved\n\n"
            "Dear {recipient_name},\n\n"
            "Your requisition in {organization_name} has been approved by {actor_name}.\n\n"
            "Requisition #: {requisition_reference}\n"
            "Title: {requisition_title}\n"
            "Amount: {total_amount}\n\n"
            "View requisition at: {link}\n\n"
            "This is an automated message from {organization_name}."
        ),
    ),
    TEMPLATE_REQUISITION_REJECTED: EmailTemplate(
        template_id=TEMPLATE_REQUISITION_REJECTED,
        subject="Requisition Rejected: {requisition_reference}",
        html=(
            "<html><body>"
            "<h2>Requisition Rejected</h2>"
            "<p>Dear {recipient_name},</p>"
            "<p>Your requisition in <strong>{organization_name}</strong> has been rejected "
            "by {actor_name}.</p>"
            "<table>"
            "<tr><td><strong>Requisition #:</strong></td><td>{requisition_reference}</td></tr>"
            "<tr><td><strong>Title:</strong></td><td>{requisition_title}</td></tr>"
            "<tr><td><strong>Reason:</strong></td><td>{rejection_reason}</td></tr>"
            "</table>"
            f'<p><a href="{{link}}" style="{_BUTTON_STYLE}">View Requisition</a></p>'
            "<p>This is an automated message from {organization_name}.</p>"
            "</body></html>"
        ),
        text=(
            "Requisition Rejected\n\n"
            "Dear {recipient_name},\n\n"
            "Your requisition in {organization_name} has been rejected by {actor_name}.\n\n"
            "Requisition #: {requisition_reference}\n"
            "Title: {requisition_title}\n"
            "Reason: {rejection_reason}\n\n"
            "View requisition at: {link}\n\n"
            "This is an automated message from {organization_name}."
        ),
    ),
    TEMPLATE_CUSTOM: EmailTemplate(
        template_id=TEMPLATE_CUSTOM,
        subject="[{organization_name}] {title}",
        html=(
            "<html><body>"
            "<h2>{title}</h2>"
            "<p>Dear {recipient_name},</p>"
            "<p>{message}</p>"
            "<p>This is an automated message from {organization_name}.</p>"
            "</body></html>"
        ),
        text=(
            "{title}\n\n"
            "Dear {recipient_name},\n\n"
            "{message}\n\n"
            "This is an automated message from {organization_name}."
        ),
    ),
}


def get_template(template_id: str) -> EmailTemplate:
    template = TEMPLATES.get(template_id)
    if template is None:
        raise NotFoundError(f"Email template '{template_id}' not found")
    return template


def render_template(template_id: str, context: dict[str, Any]) -> RenderedEmail:
    """Render a template, failing closed on any missing or empty placeholder."""
    template = get_template(template_id)
    missing = sorted(
        name for name in template.placeholders() if context.get(name) in (None, "")
    )
    if missing:
        raise TemplateError(
            f"Template '{template_id}' is missing values for: {', '.join(missing)}",
            missing=missing,
        )

    values = {name: str(context[name]) for name in template.placeholders()}
    escaped = {name: html.escape(value) for name, value in values.items()}
    return RenderedEmail(
        template_id=template_id,
        subject=template.subject.format_map(values),
        html=template.html.format_map(escaped),
        text=template.text.format_map(values),
    )
