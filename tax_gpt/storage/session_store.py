"""
File-backed session storage.
One JSON file per session under the sessions directory.
"""

from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Optional

from pydantic import ValidationError

from tax_gpt.utils import ensure_dir, get_logger, safe_filename
from tax_gpt.utils.config import Settings

from .models import Message, Role, Session, SessionMetadata

logger = get_logger(__name__)

SAVE_FAILURE_POLICIES = ("log", "surface")


class SessionSaveError(Exception):
    """A background session write failed and the store is set to surface it."""


class SessionListing(NamedTuple):
    """Result of scanning the sessions directory."""
    ids: list[str]
    error: Optional[OSError] = None


def default_session_id(now: Optional[datetime] = None) -> str:
    """Build the timestamped id used when the user does not name a session."""
    now = now or datetime.now(timezone.utc)
    stamp = now.isoformat().replace(":", "-").replace(".", "-")[:19]
    return f"session-{stamp}"


class SessionStore:
    """
    Persists conversation sessions and tracks the current one.

    Appending a message schedules a background write and returns at once,
    so the file on disk may briefly lag behind memory. Call ``flush()``
    before exiting to wait for pending writes and save the final state.
    """

    def __init__(
        self,
        sessions_dir: str | Path,
        model: str,
        max_history_turns: int = 10,
        save_failure_policy: str = "log",
    ):
        """
        Initialize the session store.

        Args:
            sessions_dir: Directory holding <session-id>.json files
            model: Model identifier recorded in new sessions
            max_history_turns: Number of user/assistant pairs kept per session
            save_failure_policy: "log" to log failed background writes,
                "surface" to raise them on the next store call
        """
        if save_failure_policy not in SAVE_FAILURE_POLICIES:
            raise ValueError(f"Unknown save failure policy: {save_failure_policy}")

        self.sessions_dir = Path(sessions_dir)
        self.model = model
        self.max_history_turns = max_history_turns
        self.save_failure_policy = save_failure_policy

        self.current: Optional[Session] = None
        self.sessions: list[str] = []

        # One worker keeps background writes in append order
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="session-save")
        self._pending: list[Future] = []
        self._save_error: Optional[Exception] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionStore":
        """Create a store configured from application settings."""
        return cls(
            sessions_dir=settings.paths.resolved_sessions_dir,
            model=settings.llm.model,
            max_history_turns=settings.history.max_history_turns,
            save_failure_policy=settings.history.save_failure_policy,
        )

    @property
    def max_messages(self) -> int:
        return self.max_history_turns * 2

    def _path_for(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def init(self) -> None:
        """Create the sessions directory and refresh the list of known sessions."""
        ensure_dir(self.sessions_dir)
        self.list_sessions()

    def scan_sessions(self) -> SessionListing:
        """
        Scan the sessions directory.

        Returns:
            Session ids newest first, plus the read error if the scan failed
        """
        try:
            ids = [p.stem for p in self.sessions_dir.iterdir() if p.suffix == ".json"]
        except OSError as e:
            return SessionListing([], e)
        return SessionListing(sorted(ids, reverse=True))

    def list_sessions(self) -> list[str]:
        """
        List saved session ids, newest first.

        A directory that cannot be read is reported as having no sessions.
        """
        listing = self.scan_sessions()
        if listing.error is not None:
            logger.warning(f"Could not list sessions in {self.sessions_dir}: {listing.error}")
        self.sessions = listing.ids
        return self.sessions

    def create(self, name: Optional[str] = None) -> Session:
        """
        Start a new session, persist it and make it current.

        Args:
            name: Optional session name, also used as its id

        Returns:
            The new session
        """
        session_id = safe_filename(name) if name else default_session_id()
        self.current = Session(
            id=session_id,
            name=session_id,
            metadata=SessionMetadata(model=self.model, total_turns=0),
        )
        self.save()
        logger.info(f"Created session {session_id}")
        return self.current

    def load(self, session_id: str) -> Optional[Session]:
        """
        Load a saved session and make it current.

        Returns:
            The session, or None if the file is missing or unreadable
        """
        path = self._path_for(session_id)
        try:
            session = Session.from_json(path.read_bytes())
        except (OSError, ValidationError) as e:
            logger.debug(f"Could not load session {session_id}: {e}")
            return None

        self.current = session
        return session

    def save(self) -> None:
        """Write the current session to disk, replacing the previous file."""
        if self.current is None:
            return
        self._write(self.current.id, self.current.to_json())

    def _write(self, session_id: str, payload: str) -> None:
        ensure_dir(self.sessions_dir)
        self._path_for(session_id).write_text(payload, encoding="utf-8")

    def delete(self, session_id: str) -> bool:
        """
        Delete a saved session.

        Returns:
            True if the file was removed, False otherwise
        """
        try:
            self._path_for(session_id).unlink()
        except OSError as e:
            logger.debug(f"Could not delete session {session_id}: {e}")
            return False

        self.list_sessions()
        return True

    def append_message(self, role: Role | str, content: str) -> None:
        """
        Append a message to the current session and persist it in the background.

        Does nothing when no session is current.
        """
        self._raise_save_error()
        if self.current is None:
            return

        session = self.current
        session.messages.append(Message(role=Role(role), content=content))
        session.metadata.total_turns = sum(1 for m in session.messages if m.role == Role.USER)
        if len(session.messages) > self.max_messages:
            session.messages = session.messages[-self.max_messages:]

        self._schedule_write(session.id, session.to_json())

    def recent_messages(self, count: int = 5) -> list[Message]:
        """Return the last ``count`` user/assistant pairs in chronological order."""
        if self.current is None or count <= 0:
            return []
        return self.current.messages[-count * 2:]

    def clear_history(self) -> None:
        """Drop every message from the current session."""
        if self.current is None:
            return
        self.current.messages = []
        self.current.metadata.total_turns = 0
        self._schedule_write(self.current.id, self.current.to_json())

    def export_markdown(self, directory: str | Path = ".") -> Optional[Path]:
        """
        Write the current session as a Markdown transcript.

        Returns:
            Path of the written <session-id>.md file, or None with no current session
        """
        if self.current is None:
            return None
        export_path = Path(directory) / f"{self.current.id}.md"
        export_path.write_text(self.current.to_markdown(), encoding="utf-8")
        return export_path

    def _schedule_write(self, session_id: str, payload: str) -> None:
        self._pending = [f for f in self._pending if not f.done()]
        self._pending.append(self._executor.submit(self._background_write, session_id, payload))

    def _background_write(self, session_id: str, payload: str) -> None:
        try:
            self._write(session_id, payload)
        except OSError as e:
            logger.error(f"Background save of session {session_id} failed: {e}")
            if self.save_failure_policy == "surface":
                self._save_error = e

    def _raise_save_error(self) -> None:
        if self._save_error is None:
            return
        error, self._save_error = self._save_error, None
        raise SessionSaveError(f"Session could not be saved: {error}") from error

    def flush(self) -> None:
        """
        Wait for pending background writes, then save the current session.

        Raises:
            SessionSaveError: A background write failed under the "surface" policy
            OSError: The final save failed
        """
        wait(self._pending)
        self._pending.clear()
        self._raise_save_error()
        self.save()

    def close(self) -> None:
        """Finish pending writes and release the writer thread."""
        self._executor.shutdown(wait=True)
        self._pending.clear()

    def abort(self) -> None:
        """Drop queued writes and stop the writer without waiting for it."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self._pending.clear()
