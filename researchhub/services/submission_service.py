"""Submission service: the request surface the UI and API call into.

Every owner mutation re-reads the stored record and evaluates the
status check and the time window against it before anything is
written. Stored files that a write leaves orphaned are removed only
after the record write succeeds.
"""

from __future__ import annotations

import logging
import secrets
import uuid
from collections import Counter
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from researchhub.config import DEFAULT_SIGNING_SECRET, Settings
from researchhub.errors import Forbidden, NoFileAttached, NotFound, ValidationFailed
from researchhub.models.submission import (
    FileRef,
    Status,
    Submission,
    SubmissionPatch,
    SubmissionType,
    UploadedFile,
)
from researchhub.services.access_service import (
    AccessPlan,
    FileAccessResolver,
    Requester,
    UrlSigner,
)
from researchhub.services.revision_service import merge
from researchhub.services.status_service import (
    check_owner_mutable,
    derive_submission_type,
    transition,
)
from researchhub.services.window_guard import TimeWindowGuard
from researchhub.utils.clock import Clock, utc_now
from researchhub.utils.text import clean_text, normalize_keywords

if TYPE_CHECKING:
    from researchhub.database.repository import SubmissionRepository
    from researchhub.services.storage_service import FileStorage

logger = logging.getLogger(__name__)

REVIEW_DECISIONS = (Status.APPROVED, Status.REJECTED)

REPOSITORY_SORTS = ("latest", "year")


class SubmissionService:
    """Coordinates permission checks, policy, and the storage collaborators."""

    def __init__(
        self,
        repo: "SubmissionRepository",
        storage: "FileStorage",
        guard: TimeWindowGuard,
        resolver: FileAccessResolver,
        clock: Optional[Clock] = None,
    ) -> None:
        """Initialize service.

        Args:
            repo: Record store
            storage: File store
            guard: Revise/delete window guard
            resolver: File access resolver
            clock: Source of creation and review timestamps (defaults to UTC now)
        """
        self.repo = repo
        self.storage = storage
        self.guard = guard
        self.resolver = resolver
        self._clock = clock or utc_now

    @classmethod
    def from_settings(cls, settings: "Settings", clock: Optional[Clock] = None) -> "SubmissionService":
        """Wire the service and its collaborators from application settings."""
        from researchhub.database.repository import SubmissionRepository
        from researchhub.services.storage_service import FileStorage

        clock = clock or utc_now
        secret = settings.signing_secret
        if not secret or secret == DEFAULT_SIGNING_SECRET:
            # Links signed with this secret stop working on restart
            secret = secrets.token_urlsafe(32)
            logger.warning(
                "signing_secret is not set in config.yaml; using a random per-process secret"
            )
        signer = UrlSigner(
            secret,
            ttl_seconds=settings.signed_url_ttl_seconds,
            clock=clock,
        )
        return cls(
            repo=SubmissionRepository(settings.db_path),
            storage=FileStorage(
                settings.storage_dir,
                max_file_size=settings.max_file_size,
                allowed_mime_types=settings.allowed_mime_types,
            ),
            guard=TimeWindowGuard(
                revise_window_seconds=settings.revise_window_seconds,
                delete_window_seconds=settings.delete_window_seconds,
                clock=clock,
            ),
            resolver=FileAccessResolver(signer, base_url=settings.public_base_url),
            clock=clock,
        )

    # ── Lookups ───────────────────────────────────────────────────────

    def _load(self, submission_id: str) -> Submission:
        record = self.repo.find_by_id(submission_id)
        if record is None:
            raise NotFound(submission_id=submission_id)
        return record

    def _load_owned(self, owner_id: str, submission_id: str) -> Submission:
        record = self._load(submission_id)
        if record.owner_id != owner_id:
            logger.info("User %s is not the owner of %s", owner_id, submission_id)
            raise Forbidden(submission_id=submission_id)
        return record

    def list_my_submissions(
        self,
        owner_id: str,
        status: Optional[Status] = None,
        query: Optional[str] = None,
    ) -> list[Submission]:
        """Return the owner's submissions, newest first."""
        return self.repo.find_by_owner(owner_id, status=status, query=query)

    def list_for_review(self, status: Optional[Status] = None) -> list[Submission]:
        """Return every submission, optionally filtered by status (reviewer queue)."""
        return self.repo.find_all(status=status)

    def list_repository(self, query: Optional[str] = None, sort: str = "latest") -> list[Submission]:
        """Return approved submissions, the public research repository.

        Raises:
            ValidationFailed: unknown sort order
        """
        if sort not in REPOSITORY_SORTS:
            raise ValidationFailed(
                f"Sort must be one of: {', '.join(REPOSITORY_SORTS)}.", field="sort"
            )
        return self.repo.find_all(status=Status.APPROVED, query=query, sort=sort)

    def repository_facets(self) -> dict[str, list[dict[str, Any]]]:
        """Keyword and type counts across the approved repository."""
        keywords: Counter[str] = Counter()
        types: Counter[str] = Counter()
        for record in self.repo.find_all(status=Status.APPROVED):
            keywords.update(record.keywords)
            types[record.submission_type.value] += 1
        return {
            "keywords": [
                {"keyword": k, "count": n}
                for k, n in sorted(keywords.items(), key=lambda kv: (-kv[1], kv[0]))
            ],
            "submissionTypes": [{"type": t, "count": n} for t, n in sorted(types.items())],
        }

    def get_submission(
        self,
        requester_id: str,
        submission_id: str,
        is_reviewer: bool = False,
    ) -> Submission:
        """Return one submission visible to the requester.

        Approved submissions are visible to everyone; the rest only to
        their owner and reviewers.
        """
        record = self._load(submission_id)
        if record.is_approved or is_reviewer or record.owner_id == requester_id:
            return record
        raise Forbidden(submission_id=submission_id)

    def get_status_counts(self, owner_id: Optional[str] = None) -> dict[str, int]:
        return self.repo.get_status_counts(owner_id)

    # ── Owner actions ─────────────────────────────────────────────────

    def create_submission(
        self,
        owner_id: str,
        title: str,
        abstract: str,
        file: Optional[UploadedFile],
        adviser: Optional[str] = None,
        submission_type: Optional[SubmissionType] = None,
        keywords: Any = None,
        author: Optional[str] = None,
        co_authors: Any = None,
    ) -> Submission:
        """Create a submission in ``pending`` status.

        Raises:
            ValidationFailed: title, abstract, or file missing or invalid
        """
        title = clean_text(title)
        abstract = (abstract or "").strip()
        if not owner_id:
            raise ValidationFailed("An owner is required.", field="ownerId")
        if not title:
            raise ValidationFailed("Please fill in Title.", field="title")
        if not abstract:
            raise ValidationFailed("Please fill in Abstract.", field="abstract")
        if file is None:
            raise ValidationFailed("Please attach a file.", field="file")
        self.storage.validate(file)

        status = Status.PENDING
        file_ref = self.storage.save(owner_id, file)
        record = Submission(
            id=uuid.uuid4().hex,
            owner_id=owner_id,
            title=title,
            author=clean_text(author) or owner_id,
            abstract=abstract,
            adviser=clean_text(adviser) or None,
            status=status,
            submission_type=derive_submission_type(status, submission_type),
            keywords=normalize_keywords(keywords),
            co_authors=normalize_keywords(co_authors),
            file_ref=file_ref,
            created_at=self._clock(),
            revision_count=0,
        )
        try:
            self.repo.insert(record)
        except Exception:
            self.storage.discard(file_ref)
            raise

        logger.info("Created submission %s for %s", record.id, owner_id)
        return record

    def revise_submission(
        self,
        owner_id: str,
        submission_id: str,
        patch: SubmissionPatch,
        file: Optional[UploadedFile] = None,
    ) -> Submission:
        """Apply a revision from the owner.

        Raises:
            NotFound, Forbidden, SubmissionLocked, EditWindowExpired, ValidationFailed
        """
        record = self._load_owned(owner_id, submission_id)
        check_owner_mutable(record)
        self.guard.check_revise(record)

        new_ref: Optional[FileRef] = None
        if file is not None:
            new_ref = self.storage.save(owner_id, file)
            patch = replace(patch, file_ref=new_ref)

        result = merge(record, patch)
        try:
            updated = self.repo.update(result.record)
        except Exception:
            self.storage.discard(new_ref)
            raise
        if not updated:
            # Deleted between the read and the write
            self.storage.discard(new_ref)
            raise NotFound(submission_id=submission_id)

        if result.orphaned_file is not None:
            self._discard_quietly(result.orphaned_file)

        logger.info(
            "Revised submission %s (revision %d)",
            submission_id,
            result.record.revision_count,
        )
        return result.record

    def delete_submission(self, owner_id: str, submission_id: str) -> None:
        """Hard-delete the owner's submission and its stored file.

        Raises:
            NotFound, Forbidden, SubmissionLocked, DeleteWindowExpired
        """
        record = self._load_owned(owner_id, submission_id)
        check_owner_mutable(record)
        self.guard.check_delete(record)

        if not self.repo.delete(submission_id):
            raise NotFound(submission_id=submission_id)
        self._discard_quietly(record.file_ref)
        logger.info("Deleted submission %s", submission_id)

    # ── Reviewer actions ──────────────────────────────────────────────

    def start_review(self, reviewer_id: str, submission_id: str) -> Submission:
        """Move a pending submission to ``reviewing``."""
        record = transition(self._load(submission_id), Status.REVIEWING)
        record = replace(record, reviewed_by=reviewer_id)
        if not self.repo.update(record):
            raise NotFound(submission_id=submission_id)
        logger.info("Review of %s started by %s", submission_id, reviewer_id)
        return record

    def review_submission(
        self,
        reviewer_id: str,
        submission_id: str,
        decision: Status,
        comment: Optional[str] = None,
        submission_type: Optional[SubmissionType] = None,
    ) -> Submission:
        """Record a reviewer decision (approved or rejected) and comment.

        ``submission_type`` is only changed when explicitly given.

        Raises:
            ValidationFailed: decision is not approved/rejected
            InvalidTransition: the submission is already terminal
        """
        if decision not in REVIEW_DECISIONS:
            raise ValidationFailed(
                "Decision must be approved or rejected.", field="decision"
            )
        record = transition(self._load(submission_id), decision)
        changes: dict = {
            "reviewed_by": reviewer_id,
            "reviewed_at": self._clock(),
        }
        if comment is not None and comment.strip():
            changes["faculty_comment"] = comment.strip()
        if submission_type is not None:
            changes["submission_type"] = submission_type
        record = replace(record, **changes)
        if not self.repo.update(record):
            raise NotFound(submission_id=submission_id)
        logger.info("Submission %s %s by %s", submission_id, decision.value, reviewer_id)
        return record

    # ── File access ───────────────────────────────────────────────────

    def resolve_file_access(
        self,
        requester_id: str,
        submission_id: str,
        is_reviewer: bool = False,
    ) -> AccessPlan:
        """Resolve how ``requester_id`` may retrieve the submission's file.

        Raises:
            NotFound, NoFileAttached, Forbidden
        """
        record = self._load(submission_id)
        requester = Requester(
            user_id=requester_id,
            is_owner=record.owner_id == requester_id,
            is_reviewer=is_reviewer,
        )
        return self.resolver.resolve(record, requester)

    def open_owned_file(
        self,
        requester_id: str,
        submission_id: str,
        is_reviewer: bool = False,
    ) -> tuple[Path, FileRef]:
        """Return the file to stream for an authenticated request."""
        record = self._load(submission_id)
        requester = Requester(
            user_id=requester_id,
            is_owner=record.owner_id == requester_id,
            is_reviewer=is_reviewer,
        )
        ref = record.file_ref
        if ref is None:
            raise NoFileAttached(submission_id=submission_id)
        # Approved files are public, so any session may stream them
        if not (record.is_approved or requester.is_owner or requester.is_reviewer):
            raise Forbidden(submission_id=submission_id)
        return self.storage.path_for(ref.storage_path), ref

    def open_signed_file(self, token: str) -> Path:
        """Return the file bound to a capability token."""
        storage_path = self.resolver.signer.verify(token)
        return self.storage.path_for(storage_path)

    # ── Private ───────────────────────────────────────────────────────

    def _discard_quietly(self, ref: Optional[FileRef]) -> None:
        """Remove an orphaned file; the record write already succeeded."""
        try:
            self.storage.discard(ref)
        except OSError as e:
            logger.warning(
                "Could not remove orphaned file %s: %s",
                ref.storage_path if ref else None,
                e,
            )
