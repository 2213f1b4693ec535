"""
identity.py — Identity Session and Credential Persistence

The identity session supplies "is logged in", the current user profile and the
bearer credential used by every authenticated call. Login and logout are
transitions: the new state is applied first, then subscribers (the cart store)
are notified in registration order.

The credential and profile are cached in a JSON file under the fixed keys
`user` and `token`. Nothing else in the client persists state outside memory.
"""

import json
import logging
import os
import tempfile

log = logging.getLogger(__name__)

SESSION_FILE = os.environ.get(
    "STOREFRONT_SESSION_FILE", os.path.join(os.path.expanduser("~"), ".storefront", "session.json")
)

USER_KEY = "user"
TOKEN_KEY = "token"


class CredentialStore:
    """
    Durable storage for the identity credential.

    Both keys are written and removed together: saving replaces the whole file
    via a temporary file and `os.replace`, clearing deletes it.
    """

    def __init__(self, path: str = SESSION_FILE):
        self.path = path

    def load(self):
        """
        Returns:
            tuple: (user, token), or (None, None) if nothing usable is stored.
        """
        try:
            with open(self.path, encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return None, None
        except (OSError, ValueError) as e:
            log.error(f"[Identity] Gespeicherte Sitzung nicht lesbar ({self.path}): {e}")
            return None, None

        if not isinstance(data, dict):
            return None, None
        user, token = data.get(USER_KEY), data.get(TOKEN_KEY)
        if not user or not token:
            return None, None
        return user, token

    def save(self, user: dict, token: str):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".session-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump({USER_KEY: user, TOKEN_KEY: token}, fh)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def clear(self):
        try:
            os.remove(self.path)
        except FileNotFoundError:
            pass


class IdentitySession:
    """
    The shopper's identity as seen by the cart and checkout components.

    Listeners are async callables taking the session. They run after the
    state change of a transition has been applied and persisted.
    """

    def __init__(self, storage: CredentialStore | None = None):
        self.storage = storage
        self.user = None
        self.token = None
        self.ready = False
        self._listeners = []

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user and self.token)

    def subscribe(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def restore(self):
        """Initial load: picks up a persisted session, if any, and emits a transition."""
        user, token = self.storage.load() if self.storage else (None, None)
        self._apply(user, token)
        self.ready = True
        log.info(f"[Identity] Sitzung geladen (angemeldet: {self.is_authenticated}).")
        await self._notify()

    async def login(self, user: dict, token: str):
        if not user or not token:
            raise ValueError("login requires both a user profile and a token")
        self._apply(user, token)
        if self.storage:
            self.storage.save(user, token)
        self.ready = True
        log.info(f"[Identity] Angemeldet: {user.get('email') or user.get('id')}.")
        await self._notify()

    async def logout(self):
        self._apply(None, None)
        if self.storage:
            self.storage.clear()
        log.info("[Identity] Abgemeldet.")
        await self._notify()

    def auth_headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def _apply(self, user, token):
        self.user = user
        self.token = token

    async def _notify(self):
        for listener in list(self._listeners):
            await listener(self)
