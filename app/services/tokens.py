"""Opaque issuance tokens.

A token only tells one issued card apart from its replacement; it is never
used to look a person up.
"""
import secrets
import string
from typing import Callable, Optional

TOKEN_ALPHABET = string.ascii_letters + string.digits + "_-"
DEFAULT_TOKEN_LENGTH = 8


class TokenCollisionError(RuntimeError):
    pass


def generate_token(rng=None, length: int = DEFAULT_TOKEN_LENGTH) -> str:
    """Return ``length`` URL-safe characters.

    ``rng`` is anything with a ``choice`` method (``random.Random(seed)`` in
    tests); the default draws from ``secrets``.
    """
    if length <= 0:
        raise ValueError("token length must be positive")
    choice = rng.choice if rng is not None else secrets.choice
    return "".join(choice(TOKEN_ALPHABET) for _ in range(length))


def generate_unique_token(
    is_taken: Callable[[str], bool],
    rng=None,
    length: int = DEFAULT_TOKEN_LENGTH,
    max_attempts: int = 5,
) -> str:
    """Generate a token not reported as taken by ``is_taken``.

    Read-then-retry with no locking. Raises ``TokenCollisionError`` after
    ``max_attempts`` taken tokens.
    """
    last: Optional[str] = None
    for _ in range(max_attempts):
        last = generate_token(rng=rng, length=length)
        if not is_taken(last):
            return last
    raise TokenCollisionError(f"no free token after {max_attempts} attempts (last: {last})")
