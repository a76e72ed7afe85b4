from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .common import Pagina, normaliza_email, offset, valida_cpf, valida_nascimento, valida_nome, valida_telefone
from .consultas import conta_consultas_futuras
from .db import Database
from .errors import ConflictError, InvalidStateError, NotFoundError
from .models import Consulta, Paciente

logger = logging.getLogger(__name__)


def _get(s: Session, paciente_id: str) -> Paciente:
    p = s.get(Paciente, paciente_id)
    if p is None:
        raise NotFoundError("Paciente não encontrado")
    return p


def _email_em_uso(s: Session, email: str, exceto_id: str | None = None) -> bool:
    q = select(Paciente.id).where(Paciente.email == email)
    if exceto_id is not None:
        q = q.where(Paciente.id != exceto_id)
    return s.execute(q.limit(1)).first() is not None


def lista_pacientes(
    db: Database, page: int = 1, limit: int = 10, search: str | None = None, ativo: bool | None = None
) -> Pagina[Paciente]:
    skip = offset(page, limit)

    filtros = []
    if search:
        termo = f"%{search.strip()}%"
        filtros.append(or_(Paciente.nome.ilike(termo), Paciente.email.ilike(termo), Paciente.cpf.ilike(termo)))
    if ativo is not None:
        filtros.append(Paciente.ativo.is_(ativo))

    with db.session() as s:
        total = s.scalar(select(func.count(Paciente.id)).where(*filtros)) or 0
        itens = list(
            s.scalars(
                select(Paciente).where(*filtros).order_by(Paciente.nome.asc(), Paciente.id).offset(skip).limit(limit)
            )
        )
    return Pagina(itens=itens, page=page, limit=limit, total=total)


def obtem_paciente(db: Database, paciente_id: str) -> Paciente:
    with db.session() as s:
        return _get(s, paciente_id)


def cria_paciente(
    db: Database,
    nome: str,
    cpf: str,
    telefone: str,
    data_nascimento: date | str,
    email: str | None = None,
    convenio: str | None = None,
    historico: str | None = None,
) -> Paciente:
    cpf = valida_cpf(cpf)
    email = normaliza_email(email)

    with db.session() as s:
        if s.execute(select(Paciente.id).where(Paciente.cpf == cpf)).first() is not None:
            raise ConflictError("CPF já cadastrado")
        if email and _email_em_uso(s, email):
            raise ConflictError("Email já cadastrado")

        p = Paciente(
            nome=valida_nome(nome),
            cpf=cpf,
            telefone=valida_telefone(telefone),
            data_nascimento=valida_nascimento(data_nascimento),
            email=email,
            convenio=convenio,
            historico=historico,
            ativo=True,
        )
        s.add(p)
        s.flush()
        logger.info("Paciente %s cadastrado", p.id)
        return p


def atualiza_paciente(
    db: Database,
    paciente_id: str,
    nome: str | None = None,
    email: str | None = None,
    telefone: str | None = None,
    data_nascimento: date | str | None = None,
    convenio: str | None = None,
    historico: str | None = None,
) -> Paciente:
    with db.session() as s:
        p = _get(s, paciente_id)

        if email is not None:
            email = normaliza_email(email)
            if email and email != p.email and _email_em_uso(s, email, exceto_id=p.id):
                raise ConflictError("Email já cadastrado")
            p.email = email

        if nome is not None:
            p.nome = valida_nome(nome)
        if telefone is not None:
            p.telefone = valida_telefone(telefone)
        if data_nascimento is not None:
            p.data_nascimento = valida_nascimento(data_nascimento)
        if convenio is not None:
            p.convenio = convenio
        if historico is not None:
            p.historico = historico

        s.flush()
        return p


def alterna_status_paciente(db: Database, paciente_id: str) -> Paciente:
    with db.session() as s:
        p = _get(s, paciente_id)
        p.ativo = not p.ativo
        logger.info("Paciente %s %s", p.id, "ativado" if p.ativo else "desativado")
        return p


def exclui_paciente(db: Database, paciente_id: str) -> None:
    """Exclusão física bloqueada enquanto houver consultas futuras não encerradas."""
    with db.session() as s:
        p = _get(s, paciente_id)

        if conta_consultas_futuras(s, Consulta.paciente_id, p.id) > 0:
            raise InvalidStateError("Não é possível excluir paciente com consultas futuras agendadas")

        s.delete(p)
        logger.info("Paciente %s excluído", paciente_id)
