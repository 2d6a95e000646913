from __future__ import annotations

from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def password_matches(password_hash: str, password: Optional[str]) -> bool:
    if password is None or not password_hash:
        return False
    try:
        return check_password_hash(password_hash, password)
    except (ValueError, TypeError):
        # e.g. placeholder hashes or corrupted values
        return False
