"""Submission service: persistence and lifecycle of generated forms."""

import logging
from typing import Optional, List
from datetime import datetime

from sqlalchemy.orm import Session

from formengine.collaborators import AuditSink
from formengine.exceptions import NotFoundError, InvalidStateError, ValidationError
from formengine.models.audit_event import AuditEntityType
from formengine.models.submission import FormSubmission, SubmissionStatus
from formengine.services.audit import AuditService
from formengine.services.template import TemplateService
from formengine.services.validation import is_blank

logger = logging.getLogger(__name__)


class SubmissionService:
    """Service for form submission records."""

    # Valid status transitions, driven by portal-submission collaborators
    TRANSITIONS = {
        SubmissionStatus.GENERATED: [SubmissionStatus.SUBMITTED, SubmissionStatus.FAILED],
        SubmissionStatus.FAILED: [SubmissionStatus.SUBMITTED, SubmissionStatus.FAILED],
        SubmissionStatus.SUBMITTED: [],  # Terminal state
        SubmissionStatus.INCOMPLETE: [],  # Terminal state
    }

    @staticmethod
    def check_consistency(db: Session, submission: FormSubmission) -> None:
        """
        Enforce the status invariants of a submission.

        ``missing_fields`` is populated if and only if the status is
        INCOMPLETE, and a GENERATED submission covers every required field
        of its template version.
        """
        missing = submission.missing_fields or []
        if submission.status == SubmissionStatus.INCOMPLETE and not missing:
            raise ValidationError("An INCOMPLETE submission must list its missing fields")
        if submission.status != SubmissionStatus.INCOMPLETE and missing:
            raise ValidationError(
                f"Only INCOMPLETE submissions may list missing fields, not {submission.status.value}"
            )

        if submission.status == SubmissionStatus.GENERATED:
            template = TemplateService.require_template(db, submission.template_id)
            data = submission.data or {}
            uncovered = [
                field_id for field_id in template.required_field_ids
                if is_blank(data.get(field_id))
            ]
            if uncovered:
                raise ValidationError(
                    f"GENERATED submission is missing required fields: {', '.join(uncovered)}",
                    details={"missing_fields": uncovered},
                )

    @staticmethod
    def save(db: Session, submission: FormSubmission) -> FormSubmission:
        """Persist a new submission after checking its invariants."""
        if submission.missing_fields is None:
            submission.missing_fields = []
        SubmissionService.check_consistency(db, submission)

        db.add(submission)
        db.commit()
        db.refresh(submission)
        return submission

    @staticmethod
    def get_by_id(db: Session, submission_id: int) -> Optional[FormSubmission]:
        """Get a submission by ID."""
        return db.query(FormSubmission).filter(FormSubmission.id == submission_id).first()

    @staticmethod
    def require_submission(db: Session, submission_id: int) -> FormSubmission:
        submission = SubmissionService.get_by_id(db, submission_id)
        if not submission:
            raise NotFoundError(f"Submission {submission_id} not found")
        return submission

    @staticmethod
    def list_by_case(db: Session, case_id: str) -> List[FormSubmission]:
        """Get all submissions for a case, newest first."""
        return db.query(FormSubmission).filter(
            FormSubmission.case_id == case_id
        ).order_by(FormSubmission.created_at.desc(), FormSubmission.id.desc()).all()

    @staticmethod
    def update_status(
        db: Session,
        submission_id: int,
        status: SubmissionStatus,
        user_id: Optional[str] = None,
        reason: Optional[str] = None,
        audit: Optional[AuditSink] = None
    ) -> FormSubmission:
        """
        Record a portal-submission outcome.

        Status is the only part of a submission that changes after creation.
        """
        submission = SubmissionService.require_submission(db, submission_id)

        if status not in SubmissionService.TRANSITIONS.get(submission.status, []):
            raise InvalidStateError(
                f"Cannot move submission {submission_id} from {submission.status.value} to {status.value}"
            )

        previous = submission.status
        submission.status = status
        submission.status_reason = reason
        if status == SubmissionStatus.SUBMITTED:
            submission.submitted_at = datetime.utcnow()

        try:
            SubmissionService.check_consistency(db, submission)
        except ValidationError:
            db.rollback()
            raise

        db.commit()
        db.refresh(submission)

        logger.info("Submission %s: %s -> %s", submission_id, previous.value, status.value)
        AuditService.emit(
            audit, AuditEntityType.FORM_SUBMISSION, submission_id, "status_update",
            user_id or "system",
            {"from": previous.value, "to": status.value, "reason": reason},
        )
        return submission

    @staticmethod
    def submit(
        db: Session,
        submission_id: int,
        user_id: str,
        audit: Optional[AuditSink] = None
    ) -> FormSubmission:
        """Mark a freshly generated submission as submitted."""
        submission = SubmissionService.require_submission(db, submission_id)
        if submission.status != SubmissionStatus.GENERATED:
            raise InvalidStateError(
                f"Submission {submission_id} is already {submission.status.value}"
            )
        return SubmissionService.update_status(
            db, submission_id, SubmissionStatus.SUBMITTED, user_id=user_id, audit=audit
        )
