"""ResearchHub - research submission review core.

Tracks student and faculty research submissions through review,
gates owner edits and deletes behind a short window after upload,
and resolves stored documents to signed links or authenticated streams.
"""

__version__ = "1.0.0"

from researchhub.config import Settings
from researchhub.models.submission import Status, Submission, SubmissionType

__all__ = ["Settings", "Status", "Submission", "SubmissionType", "__version__"]
