# identity/core/security.py
"""
Password hashing.

Stored credential format: `<salt>:<derived key>`, both hex.
The salt is kept as hex text and its UTF-8 bytes are fed to scrypt, which
keeps credentials written by the previous deployment verifiable.
"""
import hashlib
import hmac
import secrets

from identity.core.errors import MalformedCredential

SALT_BYTES = 16


class PasswordHasher:
    """
    scrypt-based password hasher.

    Parameters default to N=2**14, r=8, p=1 with a 64-byte key.
    Hashing is CPU-bound; callers on the event loop must run it in a
    thread pool (sync FastAPI routes already do).
    """

    def __init__(self, n: int = 16384, r: int = 8, p: int = 1, dklen: int = 64):
        if n < 2 or n & (n - 1):
            raise ValueError("scrypt N must be a power of two greater than 1")
        self.n = n
        self.r = r
        self.p = p
        self.dklen = dklen

    def _derive(self, password: str, salt: str) -> bytes:
        return hashlib.scrypt(
            password.encode("utf-8"),
            salt=salt.encode("utf-8"),
            n=self.n,
            r=self.r,
            p=self.p,
            # OpenSSL rejects anything above its 32 MiB default without this.
            maxmem=128 * self.n * self.r * self.p + 1024 * 1024,
            dklen=self.dklen,
        )

    def hash(self, password: str) -> str:
        """Hash a password with a fresh random salt."""
        salt = secrets.token_hex(SALT_BYTES)
        return f"{salt}:{self._derive(password, salt).hex()}"

    def verify(self, password: str, credential: str) -> bool:
        """
        Check a password against a stored credential in constant time.

        Raises:
            MalformedCredential: if the credential is not `salt:key` hex.
        """
        salt, sep, key_hex = credential.partition(":")
        if not sep or not salt or not key_hex or ":" in key_hex:
            raise MalformedCredential("credential is not in salt:key form")
        try:
            expected = bytes.fromhex(key_hex)
        except ValueError as exc:
            raise MalformedCredential("credential key is not hex") from exc

        derived = self._derive(password, salt)
        return hmac.compare_digest(derived, expected)
