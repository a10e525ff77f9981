"""Subject rights: data export and token-confirmed erasure.

Usage:
    from storeguard.compliance.subject import SubjectRightsWorkflow

    workflow = SubjectRightsWorkflow(session, settings, ledger, engine, crm=crm, notifier=notifier)
    await workflow.request_deletion(subject_id)
    response = await workflow.confirm_deletion(subject_id, token)
"""

from storeguard.compliance.subject.aggregator import SubjectDataAggregator
from storeguard.compliance.subject.anonymizer import anonymize_profile, anonymized_email
from storeguard.compliance.subject.formatting import format_export, to_flat, to_structured
from storeguard.compliance.subject.tokens import (
    generate_token,
    hash_token,
    validate_token_format,
    verify_token,
)
from storeguard.compliance.subject.types import (
    DELETION_TRANSITIONS,
    DeletionRequest,
    DeletionResponse,
    DeletionStatus,
    ExportPayload,
    SubjectData,
)
from storeguard.compliance.subject.workflow import SubjectRightsWorkflow, validate_subject_id

__all__ = [
    "DELETION_TRANSITIONS",
    "DeletionRequest",
    "DeletionResponse",
    "DeletionStatus",
    "ExportPayload",
    "SubjectData",
    "SubjectDataAggregator",
    "SubjectRightsWorkflow",
    "anonymize_profile",
    "anonymized_email",
    "format_export",
    "generate_token",
    "hash_token",
    "to_flat",
    "to_structured",
    "validate_subject_id",
    "validate_token_format",
    "verify_token",
]
