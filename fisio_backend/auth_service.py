from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from .auth_security import hash_password, verify_password
from .common import normaliza_email, valida_nome, valida_telefone
from .db import Database
from .errors import ConflictError, ValidationError
from .models import Papel, Usuario


def email_em_uso(s: Session, email: str, exceto_usuario_id: str | None = None) -> bool:
    q = select(Usuario.id).where(Usuario.email == email)
    if exceto_usuario_id is not None:
        q = q.where(Usuario.id != exceto_usuario_id)
    return s.execute(q.limit(1)).first() is not None


def cria_usuario(s: Session, nome: str, email: str, senha: str, telefone: str | None, papel: Papel) -> Usuario:
    """Cria a conta dentro da transação do chamador (que cria também a extensão do papel)."""
    email = normaliza_email(email)
    if not email:
        raise ValidationError("Email é obrigatório")
    if not senha or len(senha) < 6:
        raise ValidationError("Senha deve ter pelo menos 6 caracteres")

    if email_em_uso(s, email):
        raise ConflictError("Email já cadastrado")

    u = Usuario(
        nome=valida_nome(nome),
        email=email,
        senha_hash=hash_password(senha),
        telefone=valida_telefone(telefone) if telefone else None,
        papel=papel,
        ativo=True,
    )
    s.add(u)
    s.flush()
    return u


def autentica(db: Database, email: str, senha: str) -> Usuario | None:
    email = normaliza_email(email) if email and "@" in email else None
    if not email:
        return None
    with db.session() as s:
        u = s.execute(select(Usuario).where(Usuario.email == email)).scalar_one_or_none()
        if not u or not u.ativo:
            return None
        if not verify_password(senha, u.senha_hash):
            return None
        return u


def get_usuario_by_id(db: Database, usuario_id: str) -> Usuario | None:
    with db.session() as s:
        return s.scalars(
            select(Usuario)
            .options(joinedload(Usuario.fisioterapeuta), joinedload(Usuario.recepcionista))
            .where(Usuario.id == usuario_id)
        ).first()
