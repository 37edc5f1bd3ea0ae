"""
Notification seam.

Delivery (push, email, SMS) lives outside this service. The lifecycle only
tells a Notifier that an issue was assigned; failures are logged and never
propagate into the transition that triggered them.
"""

from abc import ABC, abstractmethod
import logging

from civic_dispatch.models.authority import Authority
from civic_dispatch.models.issue import Issue

logger = logging.getLogger(__name__)


class Notifier(ABC):

    @abstractmethod
    def notify(self, issue: Issue, authority: Authority) -> None:
        raise NotImplementedError


class LoggingNotifier(Notifier):
    """Default notifier: records the assignment in the application log."""

    def notify(self, issue: Issue, authority: Authority) -> None:
        logger.info(
            f"[NOTIFY] Issue {issue.id} ({issue.category.value}) assigned to "
            f"{authority.name} <{authority.contact_email or 'no email'}>"
        )


def notify_safely(notifier: Notifier, issue: Issue, authority: Authority) -> bool:
    """Fire-and-forget: returns False instead of raising when delivery fails."""
    try:
        notifier.notify(issue, authority)
        return True
    except Exception as e:
        logger.error(f"Notification for issue {issue.id} to {authority.id} failed: {e}", exc_info=True)
        return False
