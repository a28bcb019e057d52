"""Single active claim challenge, mirrored to a file only an admin can read."""

import os
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path

from agent_claim.logging_config import get_logger

logger = get_logger(__name__)

CHALLENGE_FILE_MODE = 0o640


@dataclass(frozen=True)
class Challenge:
    value: uuid.UUID
    backing_path: Path
    mirrored: bool = True

    def __str__(self) -> str:
        return str(self.value)


def parse_challenge(candidate: str | None) -> uuid.UUID | None:
    """
    Parse a caller supplied key.

    Only the canonical lowercase hyphenated form is accepted; braces, URNs,
    bare hex and uppercase are rejected rather than normalized.
    """
    if not candidate or len(candidate) != 36:
        return None
    try:
        value = uuid.UUID(candidate)
    except ValueError:
        return None
    if str(value) != candidate:
        return None
    return value


class ChallengeStore:
    """
    Owns the process-wide challenge.

    At most one challenge is valid at a time: ``generate`` replaces it, and the
    handshake calls ``verify_and_rotate`` so a disclosed value is never usable
    twice. The in-memory value is authoritative, the file is a convenience
    channel for the operator.
    """

    def __init__(self, backing_path: Path):
        self.backing_path = Path(backing_path)
        self._lock = threading.Lock()
        self._current: Challenge | None = None

    @property
    def current(self) -> Challenge | None:
        with self._lock:
            return self._current

    def generate(self) -> Challenge:
        with self._lock:
            return self._generate_locked()

    def matches(self, candidate: str | None) -> bool:
        with self._lock:
            return self._matches_locked(candidate)

    def verify_and_rotate(self, candidate: str | None) -> bool:
        """Check ``candidate`` and rotate unconditionally, as one locked step."""
        with self._lock:
            matched = self._matches_locked(candidate)
            self._generate_locked()
            return matched

    def filename(self) -> Path:
        with self._lock:
            if self._current is None:
                self._generate_locked()
            return self.backing_path

    def _matches_locked(self, candidate: str | None) -> bool:
        if self._current is None or self._current.value.int == 0:
            return False
        parsed = parse_challenge(candidate)
        if parsed is None:
            return False
        return parsed == self._current.value

    def _generate_locked(self) -> Challenge:
        value = uuid.uuid4()
        mirrored = self._write_backing_file(str(value))
        self._current = Challenge(value=value, backing_path=self.backing_path, mirrored=mirrored)
        logger.info("challenge_rotated", path=str(self.backing_path), mirrored=mirrored)
        return self._current

    def _write_backing_file(self, rendered: str) -> bool:
        # Recreate instead of truncating so a reader never sees a stale value
        try:
            self.backing_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("challenge_file_remove_failed", path=str(self.backing_path), error=str(e))

        try:
            self.backing_path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(
                self.backing_path,
                os.O_WRONLY | os.O_CREAT | os.O_TRUNC | getattr(os, "O_CLOEXEC", 0),
                CHALLENGE_FILE_MODE,
            )
            with os.fdopen(fd, "w", encoding="ascii") as f:
                f.write(rendered + "\n")
        except OSError as e:
            logger.error("challenge_file_write_failed", path=str(self.backing_path), error=str(e))
            return False
        return True
