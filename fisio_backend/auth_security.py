from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from .config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash bcrypt da senha; só o hash vai para `Usuario.senha_hash`."""
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """Confere a senha informada no login contra o hash salvo."""
    return pwd_context.verify(password, password_hash)


def create_access_token(settings: Settings, subject: str, extra: dict[str, Any] | None = None) -> str:
    """
    subject: id do usuário.
    Usa datetime com fuso (UTC) só para iat/exp do token.
    """
    now = datetime.now(timezone.utc)
    expire = now + timedelta(minutes=settings.jwt_expire_minutes)

    payload: dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if extra:
        payload.update(extra)

    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(settings: Settings, token: str) -> dict[str, Any]:
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def get_subject(settings: Settings, token: str) -> str | None:
    try:
        payload = decode_token(settings, token)
        return payload.get("sub")
    except JWTError:
        return None


def token_para_usuario(settings: Settings, usuario) -> str:
    """Token de acesso da equipe: sub = id do usuário, com papel e nome como claims."""
    return create_access_token(
        settings,
        subject=usuario.id,
        extra={"papel": usuario.papel.value, "nome": usuario.nome},
    )
