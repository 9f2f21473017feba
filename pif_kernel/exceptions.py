"""
Typed exception hierarchy for the PIF kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Submissions, promotions and reports fail for very different reasons, and the
caller has to react differently to each:

  - a malformed cell value is the submitter's problem and is shown in the
    validation report;
  - a failed promotion transaction has been rolled back and may be retried;
  - a missing reporting period means the reporting layer would produce
    wrong columns and must not run at all.

Every exception therefore has:
  1. A TYPED class (catch by type, not by message)
  2. A CODE class attribute (machine-readable, log-safe)
  3. Structured DATA attributes (site, field, key, ...)

Example:
    try:
        service.archive_approved("ANO")
    except TransactionFailedError as e:
        log.error("promotion failed", extra={"site": e.site, "code": e.code})

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PifKernelError (base)
    |
    +-- SubmissionError
    |   +-- TypeConversionError
    |   +-- DuplicateKeyError
    |   +-- SubmissionRejectedError
    |
    +-- PromotionError
    |   +-- TransactionFailedError
    |   +-- PromotionRefusedError
    |
    +-- ConfigurationError
    |   +-- ReportingPeriodUnavailableError
    |   +-- UnsupportedDialectError
    |
    +-- ReportingError
        +-- UnknownStoreError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                          | When Raised
----------------|-------------------------------|---------------------------------------
Submission      | TYPE_CONVERSION_FAILED        | Value does not parse as its field type
                | DUPLICATE_KEY                 | Natural key already present (non-upsert path)
                | SUBMISSION_REJECTED           | Blocking validation failures in a batch
----------------|-------------------------------|---------------------------------------
Promotion       | TRANSACTION_FAILED            | Any step of an atomic operation failed
                | PROMOTION_REFUSED             | Caller supplied a report with hard failures
----------------|-------------------------------|---------------------------------------
Configuration   | CONFIGURATION_ERROR           | Missing/invalid configuration value
                | REPORTING_PERIOD_UNAVAILABLE  | No reporting period has been recorded
                | UNSUPPORTED_DIALECT           | Upsert not available on this database
----------------|-------------------------------|---------------------------------------
Reporting       | UNKNOWN_STORE                 | Store name is not inflight/approved

Validation failures are NOT exceptions: they are collected as data in a
ValidationReport so the submitter sees every problem in one pass.
TypeConversionError is raised by the coercion primitive and converted into a
failing report entry by the validator.
"""


class PifKernelError(Exception):
    """
    Base exception for all PIF kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PIF_KERNEL_ERROR"


# Submission-related exceptions


class SubmissionError(PifKernelError):
    """Base exception for submission-related errors."""

    code: str = "SUBMISSION_ERROR"


class TypeConversionError(SubmissionError):
    """A value could not be parsed as its declared field type."""

    code: str = "TYPE_CONVERSION_FAILED"

    def __init__(self, field: str, value: object, expected_type: str, reason: str = ""):
        self.field = field
        self.value = value
        self.expected_type = expected_type
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Cannot convert {field}={value!r} to {expected_type}{detail}"
        )


class DuplicateKeyError(SubmissionError):
    """A record with the same natural key already exists in the store."""

    code: str = "DUPLICATE_KEY"

    def __init__(self, store: str, pif_id: str, project_id: str, line_item: int):
        self.store = store
        self.pif_id = pif_id
        self.project_id = project_id
        self.line_item = line_item
        super().__init__(
            f"Duplicate key in {store}: "
            f"PIF {pif_id}, Project {project_id}, Line {line_item}"
        )


class SubmissionRejectedError(SubmissionError):
    """A batch has blocking validation failures and cannot be written."""

    code: str = "SUBMISSION_REJECTED"

    def __init__(self, site: str, error_count: int, warning_count: int = 0):
        self.site = site
        self.error_count = error_count
        self.warning_count = warning_count
        super().__init__(
            f"Submission for site {site} rejected: "
            f"{error_count} error(s), {warning_count} warning(s)"
        )


# Promotion-related exceptions


class PromotionError(PifKernelError):
    """Base exception for promotion-related errors."""

    code: str = "PROMOTION_ERROR"


class TransactionFailedError(PromotionError):
    """
    A step of an atomic operation failed.

    The surrounding transaction must be rolled back by its owner; the
    underlying database error message is preserved in `reason`.
    """

    code: str = "TRANSACTION_FAILED"

    def __init__(self, operation: str, site: str, reason: str):
        self.operation = operation
        self.site = site
        self.reason = reason
        super().__init__(f"{operation} failed for site {site}: {reason}")


class PromotionRefusedError(PromotionError):
    """Promotion was requested with a validation report that has hard failures."""

    code: str = "PROMOTION_REFUSED"

    def __init__(self, site: str, error_count: int):
        self.site = site
        self.error_count = error_count
        super().__init__(
            f"Promotion refused for site {site}: "
            f"{error_count} blocking validation failure(s)"
        )


# Configuration exceptions


class ConfigurationError(PifKernelError):
    """A required configuration value or lookup is missing or invalid."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


class ReportingPeriodUnavailableError(ConfigurationError):
    """No reporting period is available to anchor the wide views."""

    code: str = "REPORTING_PERIOD_UNAVAILABLE"

    def __init__(self, source: str):
        self.source = source
        super().__init__(
            f"Reporting period unavailable from {source}; "
            "record an actuals load before querying wide views",
            key="reporting_period",
        )


class UnsupportedDialectError(ConfigurationError):
    """The connected database does not support the set-based upsert."""

    code: str = "UNSUPPORTED_DIALECT"

    def __init__(self, dialect: str):
        self.dialect = dialect
        super().__init__(
            f"Database dialect {dialect!r} is not supported "
            "(expected postgresql or sqlite)",
            key="database.url",
        )


# Reporting exceptions


class ReportingError(PifKernelError):
    """Base exception for reporting-layer errors."""

    code: str = "REPORTING_ERROR"


class UnknownStoreError(ReportingError):
    """A store name other than inflight/approved was requested."""

    code: str = "UNKNOWN_STORE"

    def __init__(self, store: str):
        self.store = store
        super().__init__(
            f"Unknown store {store!r}; expected 'inflight' or 'approved'"
        )
