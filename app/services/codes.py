import secrets

# No 0/O or 1/I/L, so codes survive being read aloud at the counter
CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"


def generate_reward_code(length: int = 10) -> str:
    """Return a random reward code such as ``K7QX2-M9RTA``.

    Uniqueness is enforced by the ``reward_codes.code`` constraint; callers
    retry on collision.
    """
    raw = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    half = (length + 1) // 2
    return f"{raw[:half]}-{raw[half:]}" if length >= 8 else raw


def generate_otp(length: int = 6) -> str:
    """Return a numeric one-time code, zero-padded to ``length`` digits."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"
