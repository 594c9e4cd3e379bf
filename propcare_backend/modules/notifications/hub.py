from ...core.exceptions import Unauthorized
from ...core.logging import get_logger
from ..auth.models import RoleSlug
from ..auth.role_gate import Action, require
from ..auth.schemas import AuthenticatedUser
from .coalescer import RecipientSession
from .events import Stream
from .feed import ChangeFeed, change_feed

logger = get_logger(__name__)


class NotificationHub:
    """Keeps one notification session per recipient."""

    def __init__(self, feed: ChangeFeed) -> None:
        # recipient id (str) -> live session
        self._sessions: dict[str, RecipientSession] = {}
        self.feed = feed

    def open_session(
        self, actor: AuthenticatedUser, window: float | None = None
    ) -> RecipientSession:
        """Start a session for ``actor``, replacing any session it already has.

        Helpdesk staff watch every stream; contractors watch the assignments
        that name them.
        """
        require(actor, Action.SUBSCRIBE_NOTIFICATIONS)
        if actor.role == RoleSlug.CONTRACTOR and actor.contractor_id is None:
            raise Unauthorized(
                "subscribe notifications", "profile is not linked to a contractor"
            )

        recipient_id = str(actor.id)
        self.close_session(recipient_id)

        session = RecipientSession(recipient_id, self.feed, window=window)
        if actor.role == RoleSlug.HELPDESK:
            for stream in Stream:
                session.subscribe(stream.value)
        else:
            session.subscribe(
                Stream.ASSIGNMENTS.value, "contractor_id", actor.contractor_id
            )

        self._sessions[recipient_id] = session
        logger.info(
            "Notification session opened",
            extra={"recipient_id": recipient_id, "role": actor.role.value},
        )
        return session

    def close_session(
        self, recipient_id: str, session: RecipientSession | None = None
    ) -> None:
        """Close the recipient's session.

        When ``session`` is given, only close it if it is still the current one,
        so a replaced connection cannot tear down its successor.
        """
        current = self._sessions.get(recipient_id)
        if current is None or (session is not None and current is not session):
            if session is not None:
                session.close()
            return
        self._sessions.pop(recipient_id, None)
        current.close()

    def get_session(self, recipient_id: str) -> RecipientSession | None:
        return self._sessions.get(recipient_id)

    def close_all(self) -> None:
        for recipient_id in list(self._sessions):
            self.close_session(recipient_id)


# Global singleton hub
hub = NotificationHub(change_feed)
