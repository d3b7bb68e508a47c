import secrets

import anyio
from passlib.context import CryptContext

DEFAULT_ROUNDS = 12


class PasswordHasher:
    """
    Bcrypt password hashing via passlib.

    New hashes use bcrypt_sha256: the password is SHA-256 digested before
    bcrypt, so every byte counts (plain bcrypt ignores anything past 72
    bytes). Plain bcrypt hashes from older rows still verify.

    bcrypt generates a unique salt per call, so hashing the same password
    twice gives two different digests; verify() is what stays deterministic.

    The sync methods are CPU-bound (≈250ms at 12 rounds). Request handlers
    should use hash_async / verify_async, which run on a worker thread so the
    event loop keeps serving other requests.
    """

    def __init__(self, rounds: int = DEFAULT_ROUNDS):
        # "deprecated=auto" → plain bcrypt hashes still verify, new ones are bcrypt_sha256
        self._context = CryptContext(
            schemes=["bcrypt_sha256", "bcrypt"],
            deprecated="auto",
            bcrypt_sha256__rounds=rounds,
            bcrypt__rounds=rounds,
        )
        # Real hash at the configured cost, used when there is nothing to
        # compare against so "no such account" takes as long as "wrong password".
        self._dummy_hash = self._context.hash(secrets.token_urlsafe(16))

    def hash(self, plain: str) -> str:
        return self._context.hash(plain)

    def verify(self, plain: str, hashed: str | None) -> bool:
        """
        Timing-safe comparison. Never raises.

        Guards against:
          - None hash  (no account / no password set)
          - Truncated / malformed hash  (passlib raises ValueError)
        """
        if not hashed:
            self._context.verify(plain, self._dummy_hash)
            return False
        try:
            return self._context.verify(plain, hashed)
        except (ValueError, TypeError):
            self._context.verify(plain, self._dummy_hash)
            return False

    async def hash_async(self, plain: str) -> str:
        return await anyio.to_thread.run_sync(self.hash, plain)

    async def verify_async(self, plain: str, hashed: str | None) -> bool:
        return await anyio.to_thread.run_sync(self.verify, plain, hashed)
