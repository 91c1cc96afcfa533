"""Submission repository for database operations."""

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from researchhub.models.submission import FileRef, Status, Submission, SubmissionType
from researchhub.services.status_service import derive_submission_type
from researchhub.utils.clock import parse_timestamp, to_iso
from researchhub.utils.text import normalize_keywords

_COLUMNS = """
    id, owner_id, title, author, adviser, abstract, status, submission_type,
    keywords, co_authors, file_name, file_path, file_type, file_size,
    faculty_comment, created_at, revision_count, reviewed_by, reviewed_at
"""

# ORDER BY clauses for listing; ``year`` groups by upload year, then title
SORT_ORDERS = {
    "latest": "created_at DESC",
    "year": "SUBSTR(created_at, 1, 4) DESC, LOWER(title) ASC",
}


class SubmissionRepository:
    """Repository for submission CRUD operations using SQLite."""

    def __init__(self, db_path: Path):
        """Initialize repository with database path.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database connections."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize database schema."""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS submissions (
                    id TEXT PRIMARY KEY,
                    owner_id TEXT NOT NULL,
                    title TEXT NOT NULL,
                    author TEXT NOT NULL,
                    adviser TEXT,
                    abstract TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL DEFAULT 'pending',
                    submission_type TEXT,
                    keywords TEXT NOT NULL DEFAULT '[]',
                    co_authors TEXT NOT NULL DEFAULT '[]',
                    file_name TEXT,
                    file_path TEXT,
                    file_type TEXT,
                    file_size INTEGER NOT NULL DEFAULT 0,
                    faculty_comment TEXT,
                    created_at TEXT NOT NULL,
                    revision_count INTEGER NOT NULL DEFAULT 0,
                    reviewed_by TEXT,
                    reviewed_at TEXT
                );
            """)
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_owner ON submissions(owner_id);")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_status ON submissions(status);")
            conn.commit()

    @staticmethod
    def _to_row(record: Submission) -> dict:
        ref = record.file_ref
        return {
            "id": record.id,
            "owner_id": record.owner_id,
            "title": record.title,
            "author": record.author,
            "adviser": record.adviser,
            "abstract": record.abstract,
            "status": record.status.value,
            "submission_type": record.submission_type.value,
            "keywords": json.dumps(record.keywords, ensure_ascii=False),
            "co_authors": json.dumps(record.co_authors, ensure_ascii=False),
            "file_name": ref.name if ref else None,
            "file_path": ref.storage_path if ref else None,
            "file_type": ref.mime_type if ref else None,
            "file_size": ref.size if ref else 0,
            "faculty_comment": record.faculty_comment,
            "created_at": to_iso(record.created_at),
            "revision_count": record.revision_count,
            "reviewed_by": record.reviewed_by,
            "reviewed_at": to_iso(record.reviewed_at),
        }

    @staticmethod
    def _from_row(row: sqlite3.Row) -> Submission:
        status = Status(row["status"])
        stored_type = row["submission_type"]
        file_ref = None
        if row["file_path"]:
            file_ref = FileRef(
                name=row["file_name"] or row["file_path"],
                storage_path=row["file_path"],
                mime_type=row["file_type"] or "application/octet-stream",
                size=row["file_size"] or 0,
            )
        return Submission(
            id=row["id"],
            owner_id=row["owner_id"],
            title=row["title"],
            author=row["author"],
            adviser=row["adviser"],
            abstract=row["abstract"] or "",
            status=status,
            # Rows written before the type column was filled get the default
            submission_type=derive_submission_type(
                status, SubmissionType(stored_type) if stored_type else None
            ),
            keywords=normalize_keywords(json.loads(row["keywords"] or "[]")),
            co_authors=normalize_keywords(json.loads(row["co_authors"] or "[]")),
            file_ref=file_ref,
            faculty_comment=row["faculty_comment"],
            created_at=parse_timestamp(row["created_at"]),
            revision_count=row["revision_count"],
            reviewed_by=row["reviewed_by"],
            reviewed_at=parse_timestamp(row["reviewed_at"]),
        )

    def insert(self, record: Submission) -> None:
        """Insert a new submission.

        Args:
            record: Submission to persist
        """
        row = self._to_row(record)
        placeholders = ", ".join(f":{key}" for key in row)
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"INSERT INTO submissions ({', '.join(row)}) VALUES ({placeholders})",
                row,
            )
            conn.commit()

    def update(self, record: Submission) -> bool:
        """Overwrite every mutable column of an existing submission.

        ``id``, ``owner_id`` and ``created_at`` are never rewritten.

        Returns:
            True if a row was updated
        """
        row = self._to_row(record)
        immutable = {"id", "owner_id", "created_at"}
        assignments = ", ".join(f"{key} = :{key}" for key in row if key not in immutable)
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE submissions SET {assignments} WHERE id = :id",
                row,
            )
            conn.commit()
            return cursor.rowcount > 0

    def delete(self, submission_id: str) -> bool:
        """Hard-delete a submission.

        Returns:
            True if a row was removed
        """
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM submissions WHERE id = ?", (submission_id,))
            conn.commit()
            return cursor.rowcount > 0

    def find_by_id(self, submission_id: str) -> Optional[Submission]:
        """Find a single submission by ID.

        Returns:
            Submission if found, None otherwise
        """
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT {_COLUMNS} FROM submissions WHERE id = ?",
                (submission_id,),
            )
            row = cursor.fetchone()

        if row is None:
            return None
        return self._from_row(row)

    def find_by_owner(
        self,
        owner_id: str,
        status: Optional[Status] = None,
        query: Optional[str] = None,
        limit: int = 500,
    ) -> list[Submission]:
        """Find an owner's submissions, newest first.

        Args:
            owner_id: Owning user
            status: If set, only this status
            query: Case-insensitive substring match on title, adviser, or author
            limit: Maximum number of submissions to return

        Returns:
            List of Submission objects
        """
        return self._find(
            ["owner_id = ?"], [owner_id], status=status, query=query, limit=limit
        )

    def find_all(
        self,
        status: Optional[Status] = None,
        query: Optional[str] = None,
        sort: str = "latest",
        limit: int = 500,
    ) -> list[Submission]:
        """Find submissions from every owner.

        Args:
            status: If set, only this status
            query: Case-insensitive substring match on title, adviser, or author
            sort: ``latest`` (newest first) or ``year`` (by year, then title)
            limit: Maximum number of submissions to return
        """
        return self._find([], [], status=status, query=query, sort=sort, limit=limit)

    def _find(
        self,
        conditions: list[str],
        params: list,
        status: Optional[Status] = None,
        query: Optional[str] = None,
        sort: str = "latest",
        limit: int = 500,
    ) -> list[Submission]:
        if sort not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {sort}")
        conditions = list(conditions)
        params = list(params)
        if status is not None:
            conditions.append("status = ?")
            params.append(status.value)
        if query and query.strip():
            conditions.append(
                "(LOWER(title) LIKE ? OR LOWER(COALESCE(adviser, '')) LIKE ?"
                " OR LOWER(author) LIKE ?)"
            )
            like = f"%{query.strip().lower()}%"
            params.extend([like, like, like])
        params.append(limit)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        with self._connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_COLUMNS}
                FROM submissions
                {where_clause}
                ORDER BY {SORT_ORDERS[sort]}
                LIMIT ?
                """,
                params,
            )
            rows = cursor.fetchall()

        return [self._from_row(row) for row in rows]

    def get_status_counts(self, owner_id: Optional[str] = None) -> dict[str, int]:
        """Return counts per status plus ``total``.

        Args:
            owner_id: If set, count only this owner's submissions
        """
        with self._connection() as conn:
            cursor = conn.cursor()
            if owner_id is None:
                cursor.execute(
                    "SELECT status, COUNT(*) AS cnt FROM submissions GROUP BY status"
                )
            else:
                cursor.execute(
                    """
                    SELECT status, COUNT(*) AS cnt FROM submissions
                    WHERE owner_id = ? GROUP BY status
                    """,
                    (owner_id,),
                )
            by_status = {row["status"]: row["cnt"] for row in cursor.fetchall()}

        counts = {status.value: by_status.get(status.value, 0) for status in Status}
        counts["total"] = sum(counts.values())
        return counts
