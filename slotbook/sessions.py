import logging
import secrets
import threading

from werkzeug.security import check_password_hash, generate_password_hash

from .errors import InvalidInput, Unauthorized

logger = logging.getLogger(__name__)


class SessionRegistry:
    """
    Active operator sessions for the lifetime of one process.

    There is one shared admin role: a successful login against the
    configured password mints an opaque bearer token, and any token in the
    set is authorized. Tokens never expire on their own; they go away on
    logout or when the process restarts.
    """

    def __init__(self, password_hash, token_bytes=32):
        self._password_hash = password_hash
        self._token_bytes = token_bytes
        self._tokens = set()
        self._lock = threading.Lock()

    @classmethod
    def from_password(cls, password, **kwargs):
        return cls(generate_password_hash(password), **kwargs)

    def login(self, password):
        if not password:
            raise InvalidInput('Password is required')
        if not isinstance(password, str):
            raise InvalidInput('Password must be a string')
        if not check_password_hash(self._password_hash, password):
            logger.warning("Admin login failed: wrong password")
            raise Unauthorized('Invalid password')

        token = secrets.token_urlsafe(self._token_bytes)
        with self._lock:
            self._tokens.add(token)
        logger.info("Admin session opened")
        return token

    def logout(self, token):
        with self._lock:
            removed = token in self._tokens
            self._tokens.discard(token)
        if removed:
            logger.info("Admin session closed")

    def authorize(self, token):
        if not token or not isinstance(token, str):
            return False
        with self._lock:
            return token in self._tokens

    def __len__(self):
        with self._lock:
            return len(self._tokens)
