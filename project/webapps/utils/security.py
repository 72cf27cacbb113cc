# webapps/utils/security.py

"""
Хэширование паролей и подписанные токены сессии.
Используется passlib с pbkdf2_sha256 (hashlib), чтобы избежать проблем с bcrypt;
старые хэши sha256_crypt ещё проверяются.
Кука сессии блога хранит JWT (sub = id пользователя), а не голый id.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

from jwt import encode, decode, InvalidTokenError
from passlib.context import CryptContext

ALGORITHM = "HS256"

# Создаём контекст для хэширования паролей
# deprecated="auto" - всё, кроме первой схемы, считается устаревшим
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "sha256_crypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Хэширует пароль.

    :param password: строка пароля пользователя
    :return: хэшированный пароль в виде строки
    """
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Проверяет совпадение пароля с его хэшем.

    :param plain_password: строка пароля пользователя
    :param hashed_password: хэшированный пароль из базы
    :return: True если пароль совпадает с хэшем, иначе False
    """
    if not hashed_password:
        return False
    return pwd_context.verify(plain_password, hashed_password)


def create_session_token(user_id: int, secret_key: str, expire_minutes: int) -> str:
    """JWT для куки session_id. Срок жизни совпадает с max_age куки."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    return encode({"sub": str(user_id), "exp": expire}, secret_key, algorithm=ALGORITHM)


def read_session_token(token: str, secret_key: str) -> Optional[int]:
    """
    Возвращает id пользователя из токена.
    Истёкший, подделанный или кривой токен -> None (гость).
    """
    try:
        payload = decode(token, secret_key, algorithms=[ALGORITHM])
        return int(payload.get("sub"))
    except (InvalidTokenError, TypeError, ValueError):
        return None


def sanitize_cookie_value(value) -> str:
    """Оставляет в значении куки только [A-Za-z0-9-]."""
    return re.sub(r"[^a-zA-Z0-9-]", "", str(value)).strip()
