"""
bcrypt password hashing.

bcrypt only reads the first 72 bytes of its input; longer passwords are cut
there explicitly so every bcrypt release treats them the same way.
"""

import bcrypt

BCRYPT_ROUNDS = 12
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """Hash and check principal passwords."""

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    @staticmethod
    def hash(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
        salt = bcrypt.gensalt(rounds=rounds)
        return bcrypt.hashpw(PasswordHasher._encode(password), salt).decode("utf-8")

    @staticmethod
    def verify(plain_password: str, hashed_password: str) -> bool:
        """
        Check a password against a stored hash.

        A malformed stored hash is a non-match, not an error.
        """
        try:
            return bcrypt.checkpw(
                PasswordHasher._encode(plain_password),
                hashed_password.encode("utf-8"),
            )
        except ValueError:
            return False

    @staticmethod
    def cost(hashed_password: str) -> int:
        """Work factor encoded in a hash (``$2b$<cost>$...``), 0 if unreadable."""
        parts = hashed_password.split("$")
        if len(parts) < 4 or not parts[2].isdigit():
            return 0
        return int(parts[2])

    @staticmethod
    def needs_rehash(hashed_password: str) -> bool:
        return PasswordHasher.cost(hashed_password) != BCRYPT_ROUNDS


# Checked when the email is unknown, so both login failures cost one bcrypt round trip
DUMMY_PASSWORD_HASH = PasswordHasher.hash("herbario-dummy-password")


def hash_password(password: str) -> str:
    return PasswordHasher.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return PasswordHasher.verify(plain_password, hashed_password)


def needs_rehash(hashed_password: str) -> bool:
    return PasswordHasher.needs_rehash(hashed_password)
