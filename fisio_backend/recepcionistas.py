from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session, joinedload

from .auth_service import cria_usuario, email_em_uso
from .common import Pagina, normaliza_email, offset, valida_nome, valida_telefone
from .db import Database
from .errors import ConflictError, NotFoundError, ValidationError
from .models import Papel, Recepcionista, Usuario

logger = logging.getLogger(__name__)


def _get(s: Session, recepcionista_id: str) -> Recepcionista:
    r = s.scalars(
        select(Recepcionista).options(joinedload(Recepcionista.usuario)).where(Recepcionista.id == recepcionista_id)
    ).first()
    if r is None:
        raise NotFoundError("Recepcionista não encontrado")
    return r


def lista_recepcionistas(
    db: Database, page: int = 1, limit: int = 10, search: str | None = None, ativo: bool | None = None
) -> Pagina[Recepcionista]:
    skip = offset(page, limit)

    filtros = []
    if search:
        filtros.append(Usuario.nome.ilike(f"%{search.strip()}%"))
    if ativo is not None:
        filtros.append(Recepcionista.ativo.is_(ativo))

    with db.session() as s:
        total = s.scalar(
            select(func.count(Recepcionista.id))
            .join(Usuario, Usuario.id == Recepcionista.usuario_id)
            .where(*filtros)
        ) or 0
        itens = list(
            s.scalars(
                select(Recepcionista)
                .join(Usuario, Usuario.id == Recepcionista.usuario_id)
                .options(joinedload(Recepcionista.usuario))
                .where(*filtros)
                .order_by(Usuario.nome.asc(), Recepcionista.id)
                .offset(skip)
                .limit(limit)
            )
        )
    return Pagina(itens=itens, page=page, limit=limit, total=total)


def obtem_recepcionista(db: Database, recepcionista_id: str) -> Recepcionista:
    with db.session() as s:
        return _get(s, recepcionista_id)


def cria_recepcionista(db: Database, nome: str, email: str, senha: str, telefone: str | None) -> Recepcionista:
    with db.session() as s:
        usuario = cria_usuario(s, nome, email, senha, telefone, Papel.RECEPCIONISTA)
        r = Recepcionista(usuario=usuario, ativo=True)
        s.add(r)
        s.flush()
        logger.info("Recepcionista %s cadastrado", r.id)
        return r


def atualiza_recepcionista(
    db: Database,
    recepcionista_id: str,
    nome: str | None = None,
    email: str | None = None,
    telefone: str | None = None,
    ativo: bool | None = None,
) -> Recepcionista:
    with db.session() as s:
        r = _get(s, recepcionista_id)
        usuario = r.usuario

        if email is not None:
            email = normaliza_email(email)
            if not email:
                raise ValidationError("Email é obrigatório")
            if email != usuario.email and email_em_uso(s, email, exceto_usuario_id=usuario.id):
                raise ConflictError("Email já cadastrado")
            usuario.email = email

        if nome is not None:
            usuario.nome = valida_nome(nome)
        if telefone is not None:
            usuario.telefone = valida_telefone(telefone)
        if ativo is not None:
            r.ativo = ativo

        s.flush()
        return r


def desativa_recepcionista(db: Database, recepcionista_id: str) -> Recepcionista:
    """Exclusão lógica: só desativa."""
    with db.session() as s:
        r = _get(s, recepcionista_id)
        r.ativo = False
        logger.info("Recepcionista %s desativado", r.id)
        return r


def exclui_recepcionista_permanente(db: Database, recepcionista_id: str) -> None:
    with db.session() as s:
        r = _get(s, recepcionista_id)
        usuario = r.usuario
        s.delete(usuario)
        logger.info("Recepcionista %s e usuário %s excluídos", recepcionista_id, usuario.id)
