"""Comment and notification repositories."""

from app.domain.models import Notification, RequestComment
from app.repositories.base import BaseRepository


class CommentRepository(BaseRepository[RequestComment]):
    """Data access for RequestComment records."""

    def __init__(self):
        super().__init__(RequestComment)


class NotificationRepository(BaseRepository[Notification]):
    """Data access for Notification records."""

    def __init__(self):
        super().__init__(Notification)

    def exists_since(self, user_id: int, title: str, since) -> bool:
        """Whether ``user_id`` already got a notification with this title."""
        return (
            Notification.query
            .filter(
                Notification.user_id == user_id,
                Notification.title == title,
                Notification.created_at >= since,
            )
            .first()
            is not None
        )
