"""
Verificação de conflitos de horário.

Regra única usada por criação, reagendamento e disponibilidade: cada consulta
ativa ocupa a janela [instante - 30min, instante + 30min). Duas consultas
ativas da mesma parte (fisioterapeuta ou paciente) conflitam quando as janelas
se sobrepõem, ou seja, quando estão a menos de 60 minutos uma da outra.
"""
from __future__ import annotations

import enum
import logging
from datetime import datetime, timedelta

from sqlalchemy import and_, select
from sqlalchemy.orm import Session

from .errors import ConflictError
from .models import Consulta, StatusConsulta

logger = logging.getLogger(__name__)

RAIO_CONFLITO = timedelta(minutes=30)
SEPARACAO_MINIMA = 2 * RAIO_CONFLITO

# Status que não ocupam horário: canceladas, concluídas e faltas
STATUS_LIVRES = frozenset(
    {StatusConsulta.CANCELADA, StatusConsulta.CONCLUIDA, StatusConsulta.NAO_COMPARECEU}
)


class TipoParte(enum.Enum):
    THERAPIST = "THERAPIST"
    PATIENT = "PATIENT"


def filtro_ocupando_janela(instante: datetime):
    """Condição SQL: consulta ativa cuja janela se sobrepõe à janela do instante."""
    return and_(
        Consulta.data_hora > instante - SEPARACAO_MINIMA,
        Consulta.data_hora < instante + SEPARACAO_MINIMA,
        Consulta.status.not_in(list(STATUS_LIVRES)),
    )


def tem_conflito(
    s: Session,
    tipo_parte: TipoParte,
    parte_id: str,
    instante: datetime,
    excluir_consulta_id: str | None = None,
) -> bool:
    coluna = Consulta.fisioterapeuta_id if tipo_parte is TipoParte.THERAPIST else Consulta.paciente_id

    q = select(Consulta.id).where(coluna == parte_id, filtro_ocupando_janela(instante))
    if excluir_consulta_id is not None:
        q = q.where(Consulta.id != excluir_consulta_id)

    return s.execute(q.limit(1)).first() is not None


def verifica_conflitos(
    s: Session,
    fisioterapeuta_id: str,
    paciente_id: str,
    instante: datetime,
    excluir_consulta_id: str | None = None,
) -> None:
    """Levanta ConflictError se o fisioterapeuta ou o paciente já estiverem ocupados."""
    if tem_conflito(s, TipoParte.THERAPIST, fisioterapeuta_id, instante, excluir_consulta_id):
        logger.warning("Conflito de horário: fisioterapeuta %s em %s", fisioterapeuta_id, instante.isoformat())
        raise ConflictError("Fisioterapeuta já possui consulta agendada neste horário")

    if tem_conflito(s, TipoParte.PATIENT, paciente_id, instante, excluir_consulta_id):
        logger.warning("Conflito de horário: paciente %s em %s", paciente_id, instante.isoformat())
        raise ConflictError("Paciente já possui consulta agendada neste horário")
