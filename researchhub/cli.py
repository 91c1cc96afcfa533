"""Command-line interface handlers."""

import argparse
import sys
from pathlib import Path
from typing import Optional

from researchhub.config import Settings
from researchhub.console import ConsoleUI, configure_logging
from researchhub.errors import SubmissionError, ValidationFailed
from researchhub.models.submission import (
    Status,
    SubmissionPatch,
    SubmissionType,
    UploadedFile,
)
from researchhub.services.access_service import is_reviewer_role, require_reviewer_role
from researchhub.services.storage_service import guess_mime_type
from researchhub.services.submission_service import SubmissionService


def read_upload(path: Path) -> UploadedFile:
    """Load a local file as an upload, guessing its MIME type from the name."""
    if not path.is_file():
        raise ValidationFailed(f"File not found: {path}", field="file")
    return UploadedFile(
        name=path.name,
        mime_type=guess_mime_type(path.name),
        content=path.read_bytes(),
    )


class ResearchHubCLI:
    """CLI application for ResearchHub."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        service: Optional[SubmissionService] = None,
        ui: Optional[ConsoleUI] = None,
    ):
        """Initialize CLI with settings.

        Args:
            settings: Application settings (loads from .metadata if not provided)
            service: Pre-built service (built from settings if not provided)
            ui: Console UI
        """
        self.settings = settings or Settings.load()
        self.ui = ui or ConsoleUI()
        self.service = service or SubmissionService.from_settings(self.settings)

    def cmd_list(self, user: str, status: Optional[str] = None, query: Optional[str] = None) -> None:
        """List the user's submissions."""
        records = self.service.list_my_submissions(
            user,
            status=Status.parse(status) if status else None,
            query=query,
        )
        self.ui.display_submissions(records)

    def cmd_upload(
        self,
        user: str,
        title: str,
        abstract: str,
        file: Path,
        adviser: Optional[str] = None,
        submission_type: Optional[str] = None,
        keywords: Optional[str] = None,
        author: Optional[str] = None,
        co_authors: Optional[str] = None,
    ) -> None:
        """Upload a new submission."""
        record = self.service.create_submission(
            user,
            title=title,
            abstract=abstract,
            file=read_upload(file),
            adviser=adviser,
            submission_type=SubmissionType.parse(submission_type) if submission_type else None,
            keywords=keywords,
            author=author,
            co_authors=co_authors,
        )
        self.ui.created(record)

    def cmd_revise(
        self,
        user: str,
        submission_id: str,
        title: Optional[str] = None,
        adviser: Optional[str] = None,
        abstract: Optional[str] = None,
        keywords: Optional[str] = None,
        submission_type: Optional[str] = None,
        file: Optional[Path] = None,
    ) -> None:
        """Revise one of the user's submissions."""
        patch = SubmissionPatch.from_form(
            title=title,
            adviser=adviser,
            abstract=abstract,
            keywords=keywords,
            submission_type=submission_type,
        )
        record = self.service.revise_submission(
            user,
            submission_id,
            patch,
            file=read_upload(file) if file else None,
        )
        self.ui.revised(record)

    def cmd_delete(self, user: str, submission_id: str) -> None:
        """Delete one of the user's submissions."""
        self.service.delete_submission(user, submission_id)
        self.ui.deleted(submission_id)

    def cmd_open(self, user: str, submission_id: str, role: str = "student") -> None:
        """Show how to retrieve a submission's file."""
        plan = self.service.resolve_file_access(
            user, submission_id, is_reviewer=is_reviewer_role(role)
        )
        self.ui.access_plan(plan)

    def cmd_review(
        self,
        user: str,
        submission_id: str,
        decision: str,
        comment: Optional[str] = None,
        submission_type: Optional[str] = None,
        role: str = "student",
    ) -> None:
        """Approve or reject a submission as a reviewer."""
        require_reviewer_role(role)
        record = self.service.review_submission(
            user,
            submission_id,
            Status.parse(decision),
            comment=comment,
            submission_type=SubmissionType.parse(submission_type) if submission_type else None,
        )
        self.ui.reviewed(record)

    def cmd_repository(self, query: Optional[str] = None, sort: str = "latest") -> None:
        """List approved submissions in the public repository."""
        records = self.service.list_repository(query=query, sort=sort)
        self.ui.display_submissions(records, title="Research repository")

    def cmd_stats(self, user: Optional[str] = None) -> None:
        """Show submission counts per status."""
        self.ui.status_counts(self.service.get_status_counts(user))


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="researchhub",
        description="Research submission review core",
    )
    parser.add_argument(
        "--user",
        required=True,
        help="Acting user ID (as issued by the session layer)",
    )
    parser.add_argument(
        "--role",
        default="student",
        choices=["student", "faculty", "staff"],
        help="Acting role; faculty and staff may review",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # list command
    list_parser = subparsers.add_parser("list", help="List my submissions")
    list_parser.add_argument(
        "--status",
        choices=[s.value for s in Status],
        help="Filter by status",
    )
    list_parser.add_argument("--query", "-q", help="Search title, adviser, or author")

    # upload command
    upload_parser = subparsers.add_parser("upload", help="Upload a new submission")
    upload_parser.add_argument("--title", required=True)
    upload_parser.add_argument("--abstract", required=True)
    upload_parser.add_argument("--file", type=Path, required=True, help="PDF or DOCX file")
    upload_parser.add_argument("--adviser")
    upload_parser.add_argument("--type", dest="submission_type", choices=[t.value for t in SubmissionType])
    upload_parser.add_argument("--keywords", help="Comma-separated keywords")
    upload_parser.add_argument("--author")
    upload_parser.add_argument("--co-authors", dest="co_authors", help="Comma-separated names")

    # revise command
    revise_parser = subparsers.add_parser("revise", help="Revise a submission (within the edit window)")
    revise_parser.add_argument("id")
    revise_parser.add_argument("--title")
    revise_parser.add_argument("--adviser")
    revise_parser.add_argument("--abstract")
    revise_parser.add_argument("--keywords", help="Comma-separated keywords (replaces existing)")
    revise_parser.add_argument("--type", dest="submission_type", choices=[t.value for t in SubmissionType])
    revise_parser.add_argument("--file", type=Path, help="Replacement PDF or DOCX file")

    # delete command
    delete_parser = subparsers.add_parser("delete", help="Delete a submission (within the delete window)")
    delete_parser.add_argument("id")

    # open command
    open_parser = subparsers.add_parser("open", help="Resolve how to retrieve a submission's file")
    open_parser.add_argument("id")

    # review command
    review_parser = subparsers.add_parser("review", help="Approve or reject a submission")
    review_parser.add_argument("id")
    review_parser.add_argument("--decision", required=True, choices=["approved", "rejected"])
    review_parser.add_argument("--comment")
    review_parser.add_argument("--type", dest="submission_type", choices=[t.value for t in SubmissionType])

    # repository command
    repo_parser = subparsers.add_parser("repository", help="Browse approved submissions")
    repo_parser.add_argument("--query", "-q", help="Search title, adviser, or author")
    repo_parser.add_argument("--sort", choices=["latest", "year"], default="latest")

    # stats command
    stats_parser = subparsers.add_parser("stats", help="Show counts per status")
    stats_parser.add_argument("--all", action="store_true", help="Count every owner's submissions")

    return parser


def run_cli(argv: Optional[list[str]] = None, cli: Optional[ResearchHubCLI] = None) -> int:
    """Main entry point for CLI.

    Returns:
        Process exit status
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if cli is None:
        settings = Settings.load()
        configure_logging(settings.log_level)
        cli = ResearchHubCLI(settings)

    try:
        if args.command == "list":
            cli.cmd_list(args.user, args.status, args.query)
        elif args.command == "upload":
            cli.cmd_upload(
                args.user,
                args.title,
                args.abstract,
                args.file,
                adviser=args.adviser,
                submission_type=args.submission_type,
                keywords=args.keywords,
                author=args.author,
                co_authors=args.co_authors,
            )
        elif args.command == "revise":
            cli.cmd_revise(
                args.user,
                args.id,
                title=args.title,
                adviser=args.adviser,
                abstract=args.abstract,
                keywords=args.keywords,
                submission_type=args.submission_type,
                file=args.file,
            )
        elif args.command == "delete":
            cli.cmd_delete(args.user, args.id)
        elif args.command == "open":
            cli.cmd_open(args.user, args.id, role=args.role)
        elif args.command == "review":
            cli.cmd_review(
                args.user,
                args.id,
                args.decision,
                comment=args.comment,
                submission_type=args.submission_type,
                role=args.role,
            )
        elif args.command == "repository":
            cli.cmd_repository(args.query, args.sort)
        elif args.command == "stats":
            cli.cmd_stats(None if args.all else args.user)
    except SubmissionError as e:
        cli.ui.error(e.message)
        return 1
    return 0


def main() -> None:
    sys.exit(run_cli())
