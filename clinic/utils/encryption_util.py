# /clinic/utils/encryption_util.py
from cryptography.fernet import Fernet, InvalidToken
from flask import current_app


def mask(value, visible=4):
    """'POL-12345678' -> '********5678'. Used wherever a policy number leaves the API boundary."""
    if not value:
        return value
    return '*' * max(len(value) - visible, 0) + value[-visible:]


class Encryptor:
    """Fernet wrapper for columns stored encrypted at rest.

    Insurance policy numbers are the only such column. The key comes from
    CLINIC_ENCRYPTION_KEY, so rotating it makes existing rows unreadable.
    """
    def __init__(self, app=None):
        self.fernet = None
        if app:
            self.init_app(app)

    def init_app(self, app):
        key = app.config.get('CLINIC_ENCRYPTION_KEY')
        if not key:
            raise ValueError("CLINIC_ENCRYPTION_KEY must be configured to store policy numbers.")
        self.fernet = Fernet(key.encode() if isinstance(key, str) else key)

    def _suite(self):
        if self.fernet is None:
            raise RuntimeError("Encryptor used before create_app() initialized it.")
        return self.fernet

    def encrypt(self, plaintext) -> str:
        return self._suite().encrypt(str(plaintext).encode('utf-8')).decode('utf-8')

    def decrypt(self, token):
        """Returns the plaintext, or None for an empty column or a token written under another key."""
        suite = self._suite()
        if not token:
            return None
        try:
            return suite.decrypt(token.encode('utf-8')).decode('utf-8')
        except InvalidToken:
            current_app.logger.error("Could not decrypt a stored policy number; was CLINIC_ENCRYPTION_KEY rotated?")
            return None


encryptor = Encryptor()
