"""
Persistence for the snapshot JSON document.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Final

from ..shared.exceptions import SnapshotWriteError
from .models import Snapshot
from .settings import snapshot_settings

# Readable by a web server running as another user
SNAPSHOT_FILE_MODE: Final[int] = 0o644

logger = logging.getLogger(__name__)


class SnapshotWriter:
    """File-based storage for the latest snapshot."""

    def __init__(self, snapshot_path: str | Path | None = None):
        """Initialize the snapshot writer."""
        self.path = Path(snapshot_path or snapshot_settings.snapshot_path)

    def write(self, snapshot: Snapshot) -> None:
        """
        Persist a snapshot, replacing the previous one atomically.

        The document is written to a temporary file next to the target and
        renamed into place, so readers see either the old or the new file.
        The file is made world-readable, unlike the temporary file default.

        Raises:
            SnapshotWriteError: If the snapshot cannot be written
        """
        document = snapshot.to_json()
        tmp_path: str | None = None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(document)
                tmp.flush()
                os.fchmod(tmp.fileno(), SNAPSHOT_FILE_MODE)
                os.fsync(tmp.fileno())
            os.replace(tmp_path, self.path)
        except OSError as e:
            if tmp_path is not None:
                Path(tmp_path).unlink(missing_ok=True)
            raise SnapshotWriteError(str(self.path), str(e)) from e

        logger.info(
            f"Saved snapshot to {self.path}: "
            f"{snapshot.summary.total_coupon_bonds} BTPs, "
            f"{snapshot.summary.total_discount_bills} BOTs"
        )

    def read_text(self) -> str | None:
        """Return the stored document as text, or None if there is none."""
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def read(self) -> Snapshot | None:
        """
        Load the stored snapshot.

        Returns:
            Snapshot object or None if nothing has been persisted yet

        Raises:
            ValidationError: If the stored document is not a valid snapshot
        """
        if (text := self.read_text()) is None:
            return None
        return Snapshot.model_validate_json(text)

    def exists(self) -> bool:
        """Check whether a snapshot has been persisted."""
        return self.path.is_file()

