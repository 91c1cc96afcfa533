"""Configuration management.

All user-editable configuration lives in ``.metadata/config.yaml``.
On first run, a missing file is copied from ``.metadata.example/``.

``Settings.load()`` is called only by the entry points (CLI, API
startup); services receive plain values through their constructors,
so tests can build them with explicit windows and a fake clock.
"""

import logging
import shutil
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE = "config.yaml"

# Placeholder secret; the service replaces it with a random one at startup
DEFAULT_SIGNING_SECRET = "change-me"

DEFAULT_ALLOWED_MIME_TYPES = [
    "application/pdf",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
]


# ---------------------------------------------------------------------------
# Settings dataclass
# ---------------------------------------------------------------------------

@dataclass
class Settings:
    """Application settings.

    Usage::

        settings = Settings.load()                 # read .metadata/config.yaml
        settings.update(db_path=Path("/tmp/x.db")) # runtime change
        save_settings(settings)                    # persist
    """

    base_dir: Path = Path(".")
    metadata_dir: Path = Path(".metadata")
    db_path: Path = Path("submissions.db")
    storage_dir: Path = Path("uploads")

    # Owner edit/delete windows (seconds after creation)
    revise_window_seconds: int = 300
    delete_window_seconds: int = 300

    # Signed links for approved documents
    signed_url_ttl_seconds: int = 300
    signing_secret: str = DEFAULT_SIGNING_SECRET
    public_base_url: str = "http://127.0.0.1:8000"

    # Upload limits
    max_file_size: int = 25 * 1024 * 1024
    allowed_mime_types: list[str] = field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )

    log_level: str = "INFO"

    # ── Runtime helpers ───────────────────────────────────────────────

    def update(self, **kwargs: Any) -> None:
        """Mutate settings fields at runtime.

        >>> Settings().update(db_path=Path("/tmp/test.db"))
        """
        for key, value in kwargs.items():
            if not hasattr(self, key):
                raise AttributeError(f"Settings has no field '{key}'")
            setattr(self, key, value)

    @property
    def config_path(self) -> Path:
        return self.metadata_dir / CONFIG_FILE

    # ── Factory ───────────────────────────────────────────────────────

    @classmethod
    def load(cls, base_dir: Optional[Path] = None) -> "Settings":
        """Load settings from ``<base_dir>/.metadata/config.yaml``.

        Relative ``db_path`` and ``storage_dir`` values are resolved
        against *base_dir* (defaults to the repository root one level
        above ``researchhub/``).
        """
        if base_dir is None:
            base_dir = Path(__file__).resolve().parent.parent
        base_dir = Path(base_dir)

        metadata_dir = base_dir / ".metadata"
        cls._ensure_default_files(base_dir, metadata_dir)

        data = _load_config(metadata_dir / CONFIG_FILE)
        settings = cls(base_dir=base_dir, metadata_dir=metadata_dir)
        for f in fields(cls):
            if f.name in ("base_dir", "metadata_dir") or f.name not in data:
                continue
            setattr(settings, f.name, _coerce(f.name, data[f.name], getattr(settings, f.name)))

        if not settings.db_path.is_absolute():
            settings.db_path = base_dir / settings.db_path
        if not settings.storage_dir.is_absolute():
            settings.storage_dir = base_dir / settings.storage_dir
        return settings

    # ── Private ───────────────────────────────────────────────────────

    @staticmethod
    def _ensure_default_files(base_dir: Path, metadata_dir: Path) -> None:
        """Copy ``.metadata.example/`` templates when real files are missing."""
        metadata_dir.mkdir(parents=True, exist_ok=True)

        example_dir = base_dir / ".metadata.example"
        if not example_dir.exists():
            return

        for example_file in example_dir.iterdir():
            if example_file.is_file():
                target = metadata_dir / example_file.name
                if not target.exists():
                    shutil.copy2(example_file, target)
                    logger.info("Created .metadata/%s from template", example_file.name)


# ---------------------------------------------------------------------------
# YAML loaders
# ---------------------------------------------------------------------------

def _coerce(name: str, value: Any, current: Any) -> Any:
    """Convert a YAML value to the type of the field's current value."""
    if value is None:
        return current
    if isinstance(current, Path):
        return Path(str(value))
    if isinstance(current, bool):
        return bool(value)
    if isinstance(current, int):
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValueError(f"config.yaml: '{name}' must be an integer") from None
    if isinstance(current, list):
        if isinstance(value, str):
            return [v.strip() for v in value.split(",") if v.strip()]
        return [str(v) for v in value]
    return str(value)


def _load_config(path: Path) -> dict[str, Any]:
    """Load the raw mapping from ``config.yaml`` (empty if missing)."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping")
    return data


def save_settings(settings: Settings) -> None:
    """Persist settings to ``config.yaml``."""
    data: dict[str, Any] = {}
    for f in fields(settings):
        if f.name in ("base_dir", "metadata_dir"):
            continue
        value = getattr(settings, f.name)
        data[f.name] = str(value) if isinstance(value, Path) else value

    settings.metadata_dir.mkdir(parents=True, exist_ok=True)
    with open(settings.config_path, "w", encoding="utf-8") as f:
        f.write("# ResearchHub settings\n")
        f.write("# Window durations and signed-link TTL are in seconds.\n\n")
        yaml.dump(
            data,
            f,
            default_flow_style=False,
            allow_unicode=True,
            sort_keys=False,
        )
