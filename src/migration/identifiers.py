"""Short random identifiers (nanoid-style, lowercase alphanumeric)."""
import secrets

ID_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
DEFAULT_ID_LENGTH = 12
SECRET_LENGTH = 24


def generate_id(size: int = DEFAULT_ID_LENGTH) -> str:
    """Random id of ``size`` characters. Collisions are not checked."""
    if size <= 0:
        raise ValueError("size must be positive")
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(size))


def generate_secret() -> str:
    return generate_id(SECRET_LENGTH)
