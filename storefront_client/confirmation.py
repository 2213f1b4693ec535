"""
confirmation.py — Explicit confirmation state for destructive cart actions

A prompt ("Remove this item?", "Clear your entire cart?") is an explicit pending
state holding the action to run. How the prompt is displayed is up to the caller;
the decision logic only needs `confirm()` or `cancel()`.
"""

import logging

log = logging.getLogger(__name__)


class PendingConfirmation:
    """
    Holds at most one pending action. A new request replaces the previous one.
    The action is taken out of the pending slot before it runs, so a second
    `confirm()` cannot run it twice.
    """

    def __init__(self):
        self.message = None
        self._action = None

    @property
    def is_pending(self) -> bool:
        return self._action is not None

    def request(self, message: str, action):
        """
        Args:
            message (str): Question shown to the shopper.
            action: Zero-argument callable returning an awaitable, run on confirmation.
        """
        if self._action is not None:
            log.info(f"[Confirm] Offene Rückfrage '{self.message}' ersetzt.")
        self.message = message
        self._action = action

    async def confirm(self):
        """Runs the pending action and returns its result; None if nothing is pending."""
        action = self._action
        self.message, self._action = None, None
        if action is None:
            return None
        return await action()

    def cancel(self):
        self.message, self._action = None, None
