import os
from typing import Optional

import bcrypt
from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired

COOKIE_NAME = "auth_token"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def session_max_age() -> int:
    return int(os.getenv("SESSION_MAX_AGE", str(24 * 60 * 60)))


def _serializer() -> URLSafeTimedSerializer:
    secret = os.getenv("SECRET_KEY") or "dev-secret-key-change-me"
    return URLSafeTimedSerializer(secret_key=secret, salt="admin-session")


def encode_token(admin_id: int) -> str:
    return _serializer().dumps({"aid": admin_id})


def decode_token(token: str, max_age: Optional[int] = None) -> Optional[dict]:
    # Timed serializer embarque l'horodatage; la limite est appliquée à la lecture.
    try:
        return _serializer().loads(token, max_age=max_age or session_max_age())
    except (BadSignature, SignatureExpired):
        return None
