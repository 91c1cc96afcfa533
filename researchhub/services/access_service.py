"""File access resolution: signed capability links vs. authenticated streams.

Approved documents are the repository's public-facing artifacts and
resolve to a short-lived signed link that does not depend on the
requester's session. Anything else is a work in progress and must be
streamed through a request carrying the session credential.
"""

import base64
import hashlib
import hmac
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from researchhub.errors import Forbidden, NoFileAttached
from researchhub.models.submission import Status, Submission
from researchhub.utils.clock import Clock, ensure_utc, to_iso, utc_now

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL_SECONDS = 300

# Roles allowed to review and to read any non-approved file
REVIEWER_ROLES = frozenset({"faculty", "staff"})


def is_reviewer_role(role: Optional[str]) -> bool:
    return (role or "").strip().lower() in REVIEWER_ROLES


def require_reviewer_role(role: Optional[str]) -> None:
    """Raise ``Forbidden`` unless ``role`` may review submissions."""
    if not is_reviewer_role(role):
        raise Forbidden("Only faculty or staff can review submissions.")


class AccessKind(str, Enum):
    SIGNED_URL = "signed_url"
    AUTHENTICATED_STREAM = "authenticated_stream"


@dataclass(frozen=True)
class Requester:
    """Who is asking for a file, as established by the session layer."""

    user_id: str
    is_owner: bool = False
    is_reviewer: bool = False


@dataclass(frozen=True)
class AccessPlan:
    """How the caller should retrieve a submission's document."""

    kind: AccessKind
    url: str
    submission_id: str
    file_name: str
    mime_type: str
    requires_session: bool
    expires_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "url": self.url,
            "submissionId": self.submission_id,
            "fileName": self.file_name,
            "mimeType": self.mime_type,
            "requiresSession": self.requires_session,
            "expiresAt": to_iso(self.expires_at),
        }


def compute_hmac_sha256_hex(secret: str, body: bytes) -> str:
    mac = hmac.new(secret.encode("utf-8"), body, hashlib.sha256)
    return mac.hexdigest()


def _b64encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _b64decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


class UrlSigner:
    """Issues and verifies short-lived capability tokens bound to a stored file."""

    def __init__(
        self,
        secret: str,
        ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
        clock: Optional[Clock] = None,
    ):
        if not secret:
            raise ValueError("A signing secret is required")
        if ttl_seconds <= 0:
            raise ValueError("Signed URL TTL must be positive")
        self._secret = secret
        self.ttl_seconds = ttl_seconds
        self._clock = clock or utc_now

    def sign(self, storage_path: str) -> tuple[str, datetime]:
        """Return ``(token, expires_at)`` for ``storage_path``."""
        expires_at = self._clock() + timedelta(seconds=self.ttl_seconds)
        payload = json.dumps(
            {"p": storage_path, "e": int(expires_at.timestamp())},
            separators=(",", ":"),
            sort_keys=True,
        ).encode("utf-8")
        body = _b64encode(payload)
        signature = compute_hmac_sha256_hex(self._secret, body.encode("ascii"))
        return f"{body}.{signature}", expires_at.replace(microsecond=0)

    def verify(self, token: str) -> str:
        """Return the storage path bound to ``token``.

        Raises:
            Forbidden: the token is malformed, tampered with, or expired
        """
        body, _, signature = token.partition(".")
        if not body or not signature:
            raise Forbidden("Invalid file link.")

        expected = compute_hmac_sha256_hex(self._secret, body.encode("ascii"))
        if not hmac.compare_digest(expected, signature):
            logger.warning("Rejected signed link with bad signature")
            raise Forbidden("Invalid file link.")

        try:
            payload = json.loads(_b64decode(body))
            storage_path = str(payload["p"])
            expires_ts = int(payload["e"])
        except (ValueError, KeyError, TypeError):
            raise Forbidden("Invalid file link.") from None

        if self._clock().timestamp() > expires_ts:
            raise Forbidden("This file link has expired.")
        return storage_path


class FileAccessResolver:
    """Decides which retrieval path a requester gets for a submission's file."""

    def __init__(self, signer: UrlSigner, base_url: str = ""):
        """Initialize resolver.

        Args:
            signer: Signer for approved-document capability links
            base_url: Public base URL prefixed to generated links
        """
        self.signer = signer
        self.base_url = base_url.rstrip("/")

    def signed_url(self, token: str) -> str:
        return f"{self.base_url}/files/signed/{token}"

    def stream_url(self, submission_id: str) -> str:
        return f"{self.base_url}/student/file/{submission_id}"

    def resolve(self, record: Submission, requester: Requester) -> AccessPlan:
        """Return the access plan for ``record``'s file.

        Raises:
            NoFileAttached: the record has no file reference
            Forbidden: non-approved file and requester is neither owner nor reviewer
        """
        ref = record.file_ref
        if ref is None:
            raise NoFileAttached(submission_id=record.id)

        if record.status is Status.APPROVED:
            token, expires_at = self.signer.sign(ref.storage_path)
            return AccessPlan(
                kind=AccessKind.SIGNED_URL,
                url=self.signed_url(token),
                submission_id=record.id,
                file_name=ref.name,
                mime_type=ref.mime_type,
                requires_session=False,
                expires_at=ensure_utc(expires_at),
            )

        if not (requester.is_owner or requester.is_reviewer):
            logger.info(
                "File access denied for %s on %s (status=%s)",
                requester.user_id,
                record.id,
                record.status.value,
            )
            raise Forbidden(submission_id=record.id)

        return AccessPlan(
            kind=AccessKind.AUTHENTICATED_STREAM,
            url=self.stream_url(record.id),
            submission_id=record.id,
            file_name=ref.name,
            mime_type=ref.mime_type,
            requires_session=True,
        )
