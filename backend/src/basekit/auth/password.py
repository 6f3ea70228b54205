"""bcrypt password hashes for the ``auth-credentials`` collection."""

from passlib.context import CryptContext


class PasswordService:
    """Hashes new passwords and checks login attempts.

    Stored hashes made with fewer rounds than currently configured are
    reported by ``check`` so the caller can replace them.
    """

    def __init__(self, rounds: int = 12):
        self._context = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds,
            bcrypt__min_rounds=rounds,
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hash: str) -> bool:
        valid, _ = self.check(password, hash)
        return valid

    def check(self, password: str, hash: str) -> tuple[bool, str | None]:
        """Verify ``password`` and rehash it if ``hash`` is out of date.

        Returns:
            (matches, replacement hash or None); a malformed hash never matches
        """
        try:
            return self._context.verify_and_update(password, hash)
        except (ValueError, TypeError):
            return False, None
