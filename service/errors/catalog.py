"""
Backend error catalog.

Maps regex patterns from known DynamoDB / S3 / endpoint errors to a code and
severity. The router still answers 500 for all of them; the catalog only
decides how loudly the failure is logged and what an operator should do.

When a new backend error shows up in the logs:
  1. Capture the raw error text
  2. Add a pattern here
  3. Add a unit test
"""

import re

from service.errors.models import ErrorReport, ErrorSeverity

# Order matters, first match wins.

BACKEND_ERROR_PATTERNS: list[tuple[re.Pattern, ErrorReport]] = [
    # ── DynamoDB ──────────────────────────────────────────────────────────

    (
        re.compile(r"ResourceNotFoundException.*(table|Requested resource)", re.IGNORECASE),
        ErrorReport(
            severity=ErrorSeverity.CRITICAL,
            error_code="DYNAMODB_TABLE_MISSING",
            action="Verify TABLE_NAME and that the data stack deployed",
        ),
    ),
    (
        re.compile(r"ProvisionedThroughputExceededException|ThrottlingException", re.IGNORECASE),
        ErrorReport(
            severity=ErrorSeverity.INFO,
            error_code="THROTTLED",
            action="Retry in a moment",
        ),
    ),

    # ── S3 ────────────────────────────────────────────────────────────────

    (
        re.compile(r"NoSuchBucket", re.IGNORECASE),
        ErrorReport(
            severity=ErrorSeverity.CRITICAL,
            error_code="S3_BUCKET_MISSING",
            action="Verify BUCKET_NAME and that the data stack deployed",
        ),
    ),

    # ── IAM / credentials ─────────────────────────────────────────────────

    (
        re.compile(r"AccessDenied", re.IGNORECASE),
        ErrorReport(
            severity=ErrorSeverity.CRITICAL,
            error_code="IAM_DENIED",
            action="Grant the function role access to the table and bucket",
        ),
    ),
    (
        re.compile(r"Unable to locate credentials|ExpiredToken|InvalidClientTokenId", re.IGNORECASE),
        ErrorReport(
            severity=ErrorSeverity.CONFIG,
            error_code="CREDENTIALS",
            action="Check AWS credentials or the function role",
        ),
    ),

    # ── Local emulation endpoint ──────────────────────────────────────────

    (
        re.compile(r"Could not connect to the endpoint URL|Connection refused", re.IGNORECASE),
        ErrorReport(
            severity=ErrorSeverity.CONFIG,
            error_code="ENDPOINT_UNREACHABLE",
            action="Start LocalStack or unset USE_LOCALSTACK",
        ),
    ),
]


GENERIC_BACKEND_ERROR = ErrorReport(
    severity=ErrorSeverity.INFO,
    error_code="UNKNOWN",
    action="Check the function logs",
)
