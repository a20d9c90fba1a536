import json

import httpx
import pytest

from coursebuddy.config import settings
from coursebuddy.services.issue_reporter import (
    IssueDeliveryError,
    IssueReport,
    IssueReporter,
    IssueValidationError,
)


@pytest.fixture()
def resend_configured(monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "re_test")
    monkeypatch.setattr(settings, "issue_report_recipient", "maintainers@example.com")


@pytest.mark.parametrize(
    "report,message",
    [
        (IssueReport(name="  ", email="a@b.co", issue="Broken"), "Name must be between 1 and 100 characters"),
        (IssueReport(name="x" * 101, email="a@b.co", issue="Broken"), "Name must be between 1 and 100 characters"),
        (IssueReport(name="Sam", email="not-an-email", issue="Broken"), "Invalid email address"),
        (IssueReport(name="Sam", email="a b@c.co", issue="Broken"), "Invalid email address"),
        (IssueReport(name="Sam", email="a@b.co", issue=""), "Issue description must be between 1 and 2000 characters"),
        (IssueReport(name="Sam", email="a@b.co", issue="x" * 2001), "Issue description must be between 1 and 2000 characters"),
    ],
)
def test_validation(report, message):
    with pytest.raises(IssueValidationError, match=message):
        report.validate()


def test_html_escapes_input():
    report = IssueReport(name="<b>Sam</b>", email="sam@example.com", issue="<script>alert(1)</script>")
    html = report.to_html()
    assert "<script>" not in html
    assert "&lt;script&gt;" in html
    assert "&lt;b&gt;Sam&lt;/b&gt;" in html


def test_send_posts_to_resend(reporter, sent_emails, resend_configured):
    reporter.send(IssueReport(name="Sam", email="sam@example.com", issue="Grid is blank"))

    request = sent_emails[0]
    payload = json.loads(request.content)
    assert request.headers["Authorization"] == "Bearer re_test"
    assert payload["to"] == ["maintainers@example.com"]
    assert payload["reply_to"] == "sam@example.com"
    assert payload["subject"] == "Issue Report from Sam"
    assert "Grid is blank" in payload["html"]


def test_provider_error_is_raised(resend_configured):
    def handler(request):
        return httpx.Response(422, json={"message": "Invalid `to` field"})

    reporter = IssueReporter(client=httpx.Client(transport=httpx.MockTransport(handler)))
    with pytest.raises(IssueDeliveryError, match="Invalid `to` field"):
        reporter.send(IssueReport(name="Sam", email="sam@example.com", issue="Grid is blank"))


def test_not_configured(reporter, monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", None)
    with pytest.raises(IssueDeliveryError):
        reporter.send(IssueReport(name="Sam", email="sam@example.com", issue="Grid is blank"))


def test_default_client_uses_resend_timeout(monkeypatch):
    monkeypatch.setattr(settings, "resend_timeout", 3.5)
    monkeypatch.setattr(settings, "auth_timeout", 30.0)

    reporter = IssueReporter()

    assert reporter.client.timeout == httpx.Timeout(3.5)
