"""Notifier abstraction layer."""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractNotifier(ABC):
    """Interface for delivering verification links."""

    @abstractmethod
    def send_verification(self, email: str, token: str) -> bool:
        """Deliver the verification link for ``token``; return whether it went out."""

    @abstractmethod
    def verification_url(self, token: str) -> str:
        """Return the public link that verifies ``token``."""
