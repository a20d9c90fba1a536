"""
Issue report endpoint.
"""
from fastapi import APIRouter, Depends, Request
from starlette.responses import JSONResponse

from coursebuddy.api.deps import get_reporter
from coursebuddy.api.rate_limit import write_limit
from coursebuddy.api.schemas import IssueReportRequest
from coursebuddy.services.issue_reporter import (
    IssueDeliveryError,
    IssueReport,
    IssueReporter,
    IssueValidationError,
)

router = APIRouter(prefix="/functions", tags=["Issues"])


@router.post("/report-issue")
@write_limit
async def report_issue(
    request: Request,
    body: IssueReportRequest,
    reporter: IssueReporter = Depends(get_reporter),
):
    """Email a problem report to the maintainers."""
    report = IssueReport(name=body.name, email=body.email, issue=body.issue)
    try:
        reporter.send(report)
    except IssueValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except IssueDeliveryError as e:
        return JSONResponse(status_code=500, content={"error": str(e) or "Failed to send issue report"})
    return {"success": True}
