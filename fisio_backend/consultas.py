"""
Ciclo de vida das consultas: agendar, atualizar/reagendar, cancelar,
concluir e excluir, além de leitura e listagem paginada.

Máquina de estados:
    AGENDADA     -> CONFIRMADA | CANCELADA | NAO_COMPARECEU
    CONFIRMADA   -> EM_ANDAMENTO | CANCELADA | NAO_COMPARECEU
    EM_ANDAMENTO -> CONCLUIDA | CANCELADA
CONCLUIDA, CANCELADA e NAO_COMPARECEU são terminais.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, joinedload

from .common import Pagina, offset, parse_instante
from .conflitos import verifica_conflitos
from .db import Database
from .errors import InvalidStateError, NotFoundError, ValidationError
from .models import Consulta, Fisioterapeuta, Paciente, StatusConsulta, Usuario

logger = logging.getLogger(__name__)

TRANSICOES: dict[StatusConsulta, frozenset[StatusConsulta]] = {
    StatusConsulta.AGENDADA: frozenset(
        {StatusConsulta.CONFIRMADA, StatusConsulta.CANCELADA, StatusConsulta.NAO_COMPARECEU}
    ),
    StatusConsulta.CONFIRMADA: frozenset(
        {StatusConsulta.EM_ANDAMENTO, StatusConsulta.CANCELADA, StatusConsulta.NAO_COMPARECEU}
    ),
    StatusConsulta.EM_ANDAMENTO: frozenset({StatusConsulta.CONCLUIDA, StatusConsulta.CANCELADA}),
}

STATUS_TERMINAIS = frozenset(
    {StatusConsulta.CONCLUIDA, StatusConsulta.CANCELADA, StatusConsulta.NAO_COMPARECEU}
)

# Horário travado: consulta já confirmada ou em atendimento
STATUS_SEM_REAGENDAMENTO = frozenset({StatusConsulta.CONFIRMADA, StatusConsulta.EM_ANDAMENTO})

DURACAO_MIN = 15
DURACAO_MAX = 240


# =========================
# Helpers
# =========================
def com_partes():
    """Opções de carga: paciente + fisioterapeuta com o usuário."""
    return (
        joinedload(Consulta.paciente),
        joinedload(Consulta.fisioterapeuta).joinedload(Fisioterapeuta.usuario),
    )


def pode_transitar(atual: StatusConsulta, novo: StatusConsulta) -> bool:
    return novo in TRANSICOES.get(atual, frozenset())


def _exige_transicao(consulta: Consulta, novo: StatusConsulta) -> None:
    if not pode_transitar(consulta.status, novo):
        raise InvalidStateError(
            f"Transição de status inválida: {consulta.status.value} -> {novo.value}"
        )


def _valida_duracao(duracao_minutos: int | None) -> int | None:
    if duracao_minutos is None:
        return None
    if not DURACAO_MIN <= duracao_minutos <= DURACAO_MAX:
        raise ValidationError(f"Duração deve estar entre {DURACAO_MIN} e {DURACAO_MAX} minutos")
    return duracao_minutos


def _anexa_observacao(atual: str | None, texto: str) -> str:
    return f"{atual}\n\n{texto}" if atual else texto


def _carrega(s: Session, consulta_id: str) -> Consulta:
    consulta = s.scalars(
        select(Consulta)
        .options(*com_partes())
        .where(Consulta.id == consulta_id)
        .execution_options(populate_existing=True)
    ).first()
    if consulta is None:
        raise NotFoundError("Consulta não encontrada")
    return consulta


def _trava_consulta(s: Session, consulta_id: str) -> Consulta:
    consulta = s.get(Consulta, consulta_id, with_for_update=True)
    if consulta is None:
        raise NotFoundError("Consulta não encontrada")
    return consulta


def _trava_partes(s: Session, paciente_id: str, fisioterapeuta_id: str) -> tuple[Paciente, Fisioterapeuta]:
    """
    Lê paciente e fisioterapeuta com SELECT ... FOR UPDATE: duas requisições
    que disputam o mesmo horário da mesma parte ficam serializadas até o commit.
    """
    paciente = s.get(Paciente, paciente_id, with_for_update=True)
    if paciente is None:
        raise NotFoundError("Paciente não encontrado")

    fisioterapeuta = s.get(Fisioterapeuta, fisioterapeuta_id, with_for_update=True)
    if fisioterapeuta is None:
        raise NotFoundError("Fisioterapeuta não encontrado")

    return paciente, fisioterapeuta


# =========================
# Leitura
# =========================
def conta_consultas_futuras(s: Session, coluna, parte_id: str) -> int:
    """Consultas de agora em diante que ainda não estão em status terminal."""
    return s.scalar(
        select(func.count(Consulta.id)).where(
            coluna == parte_id,
            Consulta.data_hora >= datetime.now(),
            Consulta.status.not_in(list(STATUS_TERMINAIS)),
        )
    ) or 0


def obtem_consulta(db: Database, consulta_id: str) -> Consulta:
    with db.session() as s:
        return _carrega(s, consulta_id)


def lista_consultas(
    db: Database,
    page: int = 1,
    limit: int = 10,
    search: str | None = None,
    status: StatusConsulta | None = None,
    data_inicio: datetime | str | None = None,
    data_fim: datetime | str | None = None,
    paciente_id: str | None = None,
    fisioterapeuta_id: str | None = None,
) -> Pagina[Consulta]:
    skip = offset(page, limit)

    filtros = []
    if status is not None:
        filtros.append(Consulta.status == status)
    if paciente_id:
        filtros.append(Consulta.paciente_id == paciente_id)
    if fisioterapeuta_id:
        filtros.append(Consulta.fisioterapeuta_id == fisioterapeuta_id)
    if data_inicio:
        filtros.append(Consulta.data_hora >= parse_instante(data_inicio, "data_inicio"))
    if data_fim:
        filtros.append(Consulta.data_hora <= parse_instante(data_fim, "data_fim"))
    if search:
        termo = f"%{search.strip()}%"
        filtros.append(
            or_(
                Paciente.nome.ilike(termo),
                Paciente.cpf.ilike(termo),
                Usuario.nome.ilike(termo),
                Consulta.observacoes.ilike(termo),
            )
        )

    base = (
        select(Consulta.id)
        .join(Paciente, Paciente.id == Consulta.paciente_id)
        .join(Fisioterapeuta, Fisioterapeuta.id == Consulta.fisioterapeuta_id)
        .join(Usuario, Usuario.id == Fisioterapeuta.usuario_id)
        .where(*filtros)
    )

    with db.session() as s:
        total = s.scalar(select(func.count()).select_from(base.subquery())) or 0
        q = (
            select(Consulta)
            .options(*com_partes())
            .where(Consulta.id.in_(base))
            .order_by(Consulta.data_hora.asc(), Consulta.id)
            .offset(skip)
            .limit(limit)
        )
        itens = list(s.scalars(q).unique())

    return Pagina(itens=itens, page=page, limit=limit, total=total)


# =========================
# Agendamento (caso de uso central)
# =========================
def cria_consulta(
    db: Database,
    paciente_id: str,
    fisioterapeuta_id: str,
    data_hora: datetime | str,
    observacoes: str | None = None,
    duracao_minutos: int | None = None,
) -> Consulta:
    """
    Caso de uso: agendar consulta.
    - paciente e fisioterapeuta precisam existir e estar ativos
    - nenhuma das duas partes pode ter consulta ativa a menos de 60 min
    - nasce com status AGENDADA
    """
    instante = parse_instante(data_hora)
    duracao = _valida_duracao(duracao_minutos)

    with db.session() as s:
        paciente, fisioterapeuta = _trava_partes(s, paciente_id, fisioterapeuta_id)
        if not paciente.ativo:
            raise InvalidStateError("Paciente inativo")
        if not fisioterapeuta.ativo:
            raise InvalidStateError("Fisioterapeuta inativo")

        verifica_conflitos(s, fisioterapeuta_id=fisioterapeuta.id, paciente_id=paciente.id, instante=instante)

        consulta = Consulta(
            paciente=paciente,
            fisioterapeuta=fisioterapeuta,
            data_hora=instante,
            duracao_minutos=duracao,
            observacoes=observacoes,
            status=StatusConsulta.AGENDADA,
        )
        s.add(consulta)
        s.flush()

        logger.info(
            "Consulta %s agendada: fisioterapeuta=%s paciente=%s em %s",
            consulta.id, fisioterapeuta.id, paciente.id, instante.isoformat(),
        )
        return _carrega(s, consulta.id)


def atualiza_consulta(
    db: Database,
    consulta_id: str,
    data_hora: datetime | str | None = None,
    observacoes: str | None = None,
    status: StatusConsulta | None = None,
    duracao_minutos: int | None = None,
) -> Consulta:
    """
    Atualização parcial. Campos não informados ficam como estão.
    Reagendar exige consulta ainda não confirmada e sem conflito para
    fisioterapeuta e paciente (a própria consulta não conta).
    """
    instante = parse_instante(data_hora) if data_hora is not None else None
    duracao = _valida_duracao(duracao_minutos)

    with db.session() as s:
        consulta = _trava_consulta(s, consulta_id)

        if instante is not None:
            if consulta.status in STATUS_SEM_REAGENDAMENTO:
                raise InvalidStateError(
                    "Não é possível alterar o horário de uma consulta confirmada ou em andamento"
                )
            if consulta.status in STATUS_TERMINAIS:
                raise InvalidStateError(
                    f"Não é possível alterar o horário de uma consulta com status {consulta.status.value}"
                )
            _trava_partes(s, consulta.paciente_id, consulta.fisioterapeuta_id)
            verifica_conflitos(
                s,
                fisioterapeuta_id=consulta.fisioterapeuta_id,
                paciente_id=consulta.paciente_id,
                instante=instante,
                excluir_consulta_id=consulta.id,
            )

        if status is not None and status != consulta.status:
            _exige_transicao(consulta, status)

        if instante is not None:
            consulta.data_hora = instante
        if observacoes is not None:
            consulta.observacoes = observacoes
        if duracao is not None:
            consulta.duracao_minutos = duracao
        if status is not None:
            consulta.status = status

        s.flush()
        logger.info("Consulta %s atualizada (status=%s)", consulta.id, consulta.status.value)
        return _carrega(s, consulta.id)


def cancela_consulta(db: Database, consulta_id: str, motivo: str) -> Consulta:
    motivo = (motivo or "").strip()
    if not motivo:
        raise ValidationError("Motivo do cancelamento é obrigatório")

    with db.session() as s:
        consulta = _trava_consulta(s, consulta_id)

        if consulta.status == StatusConsulta.CANCELADA:
            raise InvalidStateError("Consulta já está cancelada")
        if consulta.status == StatusConsulta.CONCLUIDA:
            raise InvalidStateError("Não é possível cancelar uma consulta já concluída")
        _exige_transicao(consulta, StatusConsulta.CANCELADA)

        consulta.status = StatusConsulta.CANCELADA
        consulta.observacoes = _anexa_observacao(consulta.observacoes, f"CANCELADA: {motivo}")

        s.flush()
        logger.info("Consulta %s cancelada", consulta.id)
        return _carrega(s, consulta.id)


def conclui_consulta(db: Database, consulta_id: str, relatorio: str, evolucao: str | None = None) -> Consulta:
    """
    Só consultas confirmadas ou em andamento podem ser concluídas.
    Uma consulta CONFIRMADA passa implicitamente por EM_ANDAMENTO.
    """
    relatorio = (relatorio or "").strip()
    if not relatorio:
        raise ValidationError("Relatório é obrigatório")

    with db.session() as s:
        consulta = _trava_consulta(s, consulta_id)

        if consulta.status not in STATUS_SEM_REAGENDAMENTO:
            raise InvalidStateError("Só é possível concluir consultas confirmadas ou em andamento")
        if consulta.status == StatusConsulta.CONFIRMADA:
            consulta.status = StatusConsulta.EM_ANDAMENTO
        _exige_transicao(consulta, StatusConsulta.CONCLUIDA)

        texto = f"RELATÓRIO: {relatorio}"
        if evolucao and evolucao.strip():
            texto += f"\nEVOLUÇÃO: {evolucao.strip()}"

        consulta.status = StatusConsulta.CONCLUIDA
        consulta.observacoes = _anexa_observacao(consulta.observacoes, texto)

        s.flush()
        logger.info("Consulta %s concluída", consulta.id)
        return _carrega(s, consulta.id)


def exclui_consulta(db: Database, consulta_id: str) -> None:
    """Exclusão física: apenas consultas ainda AGENDADA (preserva histórico)."""
    with db.session() as s:
        consulta = _trava_consulta(s, consulta_id)

        if consulta.status != StatusConsulta.AGENDADA:
            raise InvalidStateError("Só é possível excluir consultas agendadas")

        s.delete(consulta)
        logger.info("Consulta %s excluída", consulta_id)
