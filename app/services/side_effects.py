"""Notification and comment collaborators.

The accounting services only *request* these side effects. They are
emitted after the accounting transaction has committed, and a failing
collaborator is logged and otherwise ignored: it must never undo a charge
or a revision that already happened.
"""

import logging
from abc import ABC, abstractmethod

from app.extensions import db
from app.repositories.activity_repository import CommentRepository, NotificationRepository

logger = logging.getLogger(__name__)


class CommentType:
    SYSTEM = "SYSTEM"
    MESSAGE = "MESSAGE"
    DELIVERABLE = "DELIVERABLE"


# ---------------------------------------------------------------------------
# Collaborator interfaces
# ---------------------------------------------------------------------------
class NotificationPublisher(ABC):
    """Delivers a notification to one user."""

    @abstractmethod
    def create_notification(
        self, user_id: int, title: str, message: str, link: str | None = None,
    ) -> None:
        """Publish a notification."""


class CommentPublisher(ABC):
    """Appends an entry to a request's timeline."""

    @abstractmethod
    def create_system_comment(
        self, request_id: int, user_id: int, content: str, type: str = CommentType.SYSTEM,
    ) -> None:
        """Publish a comment."""


# ---------------------------------------------------------------------------
# Default database-backed collaborators
# ---------------------------------------------------------------------------
class DatabaseNotificationPublisher(NotificationPublisher):
    def __init__(self):
        self._repo = NotificationRepository()

    def create_notification(self, user_id, title, message, link=None) -> None:
        self._repo.create(user_id=user_id, title=title, message=message, link=link)
        self._repo.commit()


class DatabaseCommentPublisher(CommentPublisher):
    def __init__(self):
        self._repo = CommentRepository()

    def create_system_comment(self, request_id, user_id, content, type=CommentType.SYSTEM) -> None:
        self._repo.create(request_id=request_id, user_id=user_id, content=content, type=type)
        self._repo.commit()


# ---------------------------------------------------------------------------
# Fire-and-forget facade
# ---------------------------------------------------------------------------
class SideEffects:
    """Calls the collaborators, swallowing and logging their failures.

    Only call after the accounting change has been committed; the rollback
    below would otherwise discard it.
    """

    def __init__(
        self,
        notifications: NotificationPublisher | None = None,
        comments: CommentPublisher | None = None,
    ):
        self.notifications = notifications or DatabaseNotificationPublisher()
        self.comments = comments or DatabaseCommentPublisher()

    def notify(self, user_id: int | None, title: str, message: str, link: str | None = None) -> None:
        if user_id is None:
            return
        try:
            self.notifications.create_notification(user_id, title, message, link)
        except Exception:
            db.session.rollback()
            logger.exception("Notification to user=%s failed (title=%r)", user_id, title)

    def comment(
        self, request_id: int, user_id: int, content: str, type: str = CommentType.SYSTEM,
    ) -> None:
        try:
            self.comments.create_system_comment(request_id, user_id, content, type)
        except Exception:
            db.session.rollback()
            logger.exception("Comment on request=%s failed", request_id)
