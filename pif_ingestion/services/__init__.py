"""Intake services: staging reload, validation, submission."""

from pif_ingestion.services.staging_service import StagingService
from pif_ingestion.services.submission_service import SubmissionService
from pif_ingestion.services.validation_service import ValidationService

__all__ = [
    "StagingService",
    "SubmissionService",
    "ValidationService",
]
