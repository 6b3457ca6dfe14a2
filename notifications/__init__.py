"""Notification backends."""

from flask import current_app

from .abstract_notifier import AbstractNotifier
from .mail_notifier import MailNotifier

__all__ = ["AbstractNotifier", "MailNotifier", "get_notifier"]


def get_notifier() -> AbstractNotifier:
    """Return the notifier installed on the current application."""

    return current_app.extensions["notifier"]
