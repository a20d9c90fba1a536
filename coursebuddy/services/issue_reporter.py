"""
Issue reports sent by email through the Resend API.
"""
import html
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx

from coursebuddy.config import settings

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class IssueValidationError(ValueError):
    """The report is missing a field or a field is out of bounds."""


class IssueDeliveryError(RuntimeError):
    """The email provider rejected or failed the send."""


@dataclass
class IssueReport:
    name: str
    email: str
    issue: str

    def validate(self) -> None:
        if not self.name or not self.name.strip() or len(self.name) > 100:
            raise IssueValidationError("Name must be between 1 and 100 characters")
        if not self.email or not EMAIL_PATTERN.match(self.email) or len(self.email) > 255:
            raise IssueValidationError("Invalid email address")
        if not self.issue or not self.issue.strip() or len(self.issue) > 2000:
            raise IssueValidationError("Issue description must be between 1 and 2000 characters")

    def to_html(self) -> str:
        return (
            "<h2>New Issue Report</h2>"
            f"<p><strong>From:</strong> {html.escape(self.name)}</p>"
            f"<p><strong>Email:</strong> {html.escape(self.email)}</p>"
            "<hr />"
            "<h3>Issue Description:</h3>"
            f'<p style="white-space: pre-wrap;">{html.escape(self.issue)}</p>'
        )


class IssueReporter:
    """Sends issue reports to the maintainers' inbox."""

    def __init__(self, client: Optional[httpx.Client] = None):
        self.client = client or httpx.Client(timeout=settings.resend_timeout)

    def send(self, report: IssueReport) -> dict:
        """
        Validate and email a report.

        Raises:
            IssueValidationError: a field failed validation
            IssueDeliveryError: the provider is not configured or the send failed
        """
        report.validate()
        logger.info(f"Processing issue report from: {report.email}")

        if not settings.resend_api_key or not settings.issue_report_recipient:
            raise IssueDeliveryError("Issue reporting is not configured")

        try:
            response = self.client.post(
                settings.resend_api_url,
                headers={
                    "Authorization": f"Bearer {settings.resend_api_key}",
                    "Content-Type": "application/json",
                },
                json={
                    "from": settings.issue_report_sender,
                    "to": [settings.issue_report_recipient],
                    "reply_to": report.email,
                    "subject": f"Issue Report from {report.name}",
                    "html": report.to_html(),
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed: {e}")
            raise IssueDeliveryError("Failed to send issue report") from e

        if response.status_code >= 400:
            try:
                message = response.json().get("message")
            except ValueError:
                message = None
            logger.error(f"Resend API error: {response.status_code} {response.text[:200]}")
            raise IssueDeliveryError(message or "Failed to send email")

        logger.info("Issue report email sent")
        return response.json()


_reporter: Optional[IssueReporter] = None


def get_issue_reporter() -> IssueReporter:
    """Get or create the reporter singleton."""
    global _reporter
    if _reporter is None:
        _reporter = IssueReporter()
    return _reporter
