import logging
from abc import ABC, abstractmethod

import resend

from .config import Settings
from .errors import MailFailure

logger = logging.getLogger(__name__)


class BaseMailer(ABC):
    """Delivers an already-rendered HTML newsletter."""

    @abstractmethod
    def send(self, from_email: str, to: list[str], subject: str, html: str) -> str:
        """Send one email and return the provider's message id."""
        ...


def format_sender(name: str, email: str) -> str:
    return f"{name} <{email}>" if name else email


class ResendMailer(BaseMailer):
    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, from_email: str, to: list[str], subject: str, html: str) -> str:
        """Send the newsletter HTML to all recipients via Resend.

        A single email is addressed to the whole list. Any provider error is
        raised as MailFailure; nothing is retried here.
        """
        if not to:
            raise MailFailure("No recipients to send to.")

        resend.api_key = self.api_key
        try:
            response = resend.Emails.send({
                "from": from_email,
                "to": list(to),
                "subject": subject,
                "html": html,
            })
        except Exception as exc:
            logger.exception(f"Failed to send newsletter to {len(to)} recipient(s)")
            raise MailFailure(f"Failed to send the newsletter: {exc}") from exc

        message_id = response.get("id", "") if isinstance(response, dict) else ""
        logger.info(f"Newsletter sent to {len(to)} recipient(s) (id={message_id or 'unknown'})")
        return message_id


def build_mailer(settings: Settings) -> ResendMailer | None:
    if not settings.resend_api_key:
        return None
    return ResendMailer(api_key=settings.resend_api_key)
