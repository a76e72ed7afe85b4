from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from .auth_service import cria_usuario, email_em_uso
from .common import Pagina, normaliza_email, offset, valida_nome, valida_telefone
from .consultas import conta_consultas_futuras
from .db import Database
from .errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .models import Consulta, Fisioterapeuta, Papel, Usuario

logger = logging.getLogger(__name__)


def _get(s: Session, fisioterapeuta_id: str) -> Fisioterapeuta:
    f = s.scalars(
        select(Fisioterapeuta).options(joinedload(Fisioterapeuta.usuario)).where(Fisioterapeuta.id == fisioterapeuta_id)
    ).first()
    if f is None:
        raise NotFoundError("Fisioterapeuta não encontrado")
    return f


def _crefito_em_uso(s: Session, crefito: str) -> bool:
    return s.execute(select(Fisioterapeuta.id).where(Fisioterapeuta.crefito == crefito)).first() is not None


def _obrigatorio(valor: str | None, mensagem: str) -> str:
    valor = (valor or "").strip()
    if not valor:
        raise ValidationError(mensagem)
    return valor


def lista_fisioterapeutas(
    db: Database, page: int = 1, limit: int = 10, search: str | None = None, ativo: bool | None = None
) -> Pagina[Fisioterapeuta]:
    skip = offset(page, limit)

    filtros = []
    if search:
        termo = f"%{search.strip()}%"
        filtros.append(
            or_(
                Usuario.nome.ilike(termo),
                Usuario.email.ilike(termo),
                Fisioterapeuta.crefito.ilike(termo),
                Fisioterapeuta.especialidade.ilike(termo),
            )
        )
    if ativo is not None:
        filtros.append(Fisioterapeuta.ativo.is_(ativo))

    with db.session() as s:
        total = s.scalar(
            select(func.count(Fisioterapeuta.id))
            .join(Usuario, Usuario.id == Fisioterapeuta.usuario_id)
            .where(*filtros)
        ) or 0
        itens = list(
            s.scalars(
                select(Fisioterapeuta)
                .join(Usuario, Usuario.id == Fisioterapeuta.usuario_id)
                .options(joinedload(Fisioterapeuta.usuario))
                .where(*filtros)
                .order_by(Usuario.nome.asc(), Fisioterapeuta.id)
                .offset(skip)
                .limit(limit)
            )
        )
    return Pagina(itens=itens, page=page, limit=limit, total=total)


def obtem_fisioterapeuta(db: Database, fisioterapeuta_id: str) -> Fisioterapeuta:
    with db.session() as s:
        return _get(s, fisioterapeuta_id)


def cria_fisioterapeuta(
    db: Database,
    nome: str,
    email: str,
    senha: str,
    telefone: str | None,
    crefito: str,
    especialidade: str,
) -> Fisioterapeuta:
    """Cria conta de usuário + fisioterapeuta na mesma transação."""
    crefito = _obrigatorio(crefito, "CREFITO é obrigatório")
    especialidade = _obrigatorio(especialidade, "Especialidade é obrigatória")

    with db.session() as s:
        if _crefito_em_uso(s, crefito):
            raise ConflictError("CREFITO já cadastrado")

        usuario = cria_usuario(s, nome, email, senha, telefone, Papel.FISIOTERAPEUTA)
        f = Fisioterapeuta(usuario=usuario, crefito=crefito, especialidade=especialidade, ativo=True)
        s.add(f)
        s.flush()
        logger.info("Fisioterapeuta %s cadastrado (CREFITO %s)", f.id, crefito)
        return f


def atualiza_fisioterapeuta(
    db: Database,
    fisioterapeuta_id: str,
    nome: str | None = None,
    email: str | None = None,
    telefone: str | None = None,
    crefito: str | None = None,
    especialidade: str | None = None,
) -> Fisioterapeuta:
    with db.session() as s:
        f = _get(s, fisioterapeuta_id)
        usuario = f.usuario

        if email is not None:
            email = normaliza_email(email)
            if not email:
                raise ValidationError("Email é obrigatório")
            if email != usuario.email and email_em_uso(s, email, exceto_usuario_id=usuario.id):
                raise ConflictError("Email já cadastrado")
            usuario.email = email

        if crefito is not None:
            crefito = _obrigatorio(crefito, "CREFITO é obrigatório")
            if crefito != f.crefito and _crefito_em_uso(s, crefito):
                raise ConflictError("CREFITO já cadastrado")
            f.crefito = crefito

        if nome is not None:
            usuario.nome = valida_nome(nome)
        if telefone is not None:
            usuario.telefone = valida_telefone(telefone)
        if especialidade is not None:
            f.especialidade = _obrigatorio(especialidade, "Especialidade é obrigatória")

        s.flush()
        return f


def alterna_status_fisioterapeuta(db: Database, fisioterapeuta_id: str) -> Fisioterapeuta:
    with db.session() as s:
        f = _get(s, fisioterapeuta_id)
        f.ativo = not f.ativo
        logger.info("Fisioterapeuta %s %s", f.id, "ativado" if f.ativo else "desativado")
        return f


def exclui_fisioterapeuta(db: Database, fisioterapeuta_id: str) -> None:
    """
    Exclusão física do fisioterapeuta e da conta de usuário que ele possui.
    Bloqueada enquanto houver consultas futuras não encerradas.
    """
    with db.session() as s:
        f = _get(s, fisioterapeuta_id)

        if conta_consultas_futuras(s, Consulta.fisioterapeuta_id, f.id) > 0:
            raise InvalidStateError("Não é possível excluir fisioterapeuta com consultas futuras agendadas")

        # a conta é a base da extensão: remover o usuário remove o fisioterapeuta e suas consultas
        usuario = f.usuario
        s.delete(usuario)
        logger.info("Fisioterapeuta %s e usuário %s excluídos", fisioterapeuta_id, usuario.id)
