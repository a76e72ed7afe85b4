from __future__ import annotations

from datetime import datetime

from sqlalchemy import select

from .common import parse_instante
from .consultas import com_partes
from .db import Database
from .errors import NotFoundError
from .models import Consulta, Fisioterapeuta, Paciente


def _agenda(db: Database, coluna, titular_cls, titular_id: str, inicio, fim, nao_encontrado: str) -> list[Consulta]:
    # intervalo fechado [inicio, fim], todos os status; inicio > fim -> lista vazia
    dt_inicio = parse_instante(inicio, "data_inicio")
    dt_fim = parse_instante(fim, "data_fim")

    with db.session() as s:
        if s.get(titular_cls, titular_id) is None:
            raise NotFoundError(nao_encontrado)

        if dt_inicio > dt_fim:
            return []

        q = (
            select(Consulta)
            .options(*com_partes())
            .where(coluna == titular_id, Consulta.data_hora >= dt_inicio, Consulta.data_hora <= dt_fim)
            .order_by(Consulta.data_hora.asc(), Consulta.id)
        )
        return list(s.scalars(q).unique())


def agenda_fisioterapeuta(
    db: Database, fisioterapeuta_id: str, inicio: datetime | str, fim: datetime | str
) -> list[Consulta]:
    return _agenda(
        db, Consulta.fisioterapeuta_id, Fisioterapeuta, fisioterapeuta_id, inicio, fim,
        "Fisioterapeuta não encontrado",
    )


def agenda_paciente(db: Database, paciente_id: str, inicio: datetime | str, fim: datetime | str) -> list[Consulta]:
    return _agenda(db, Consulta.paciente_id, Paciente, paciente_id, inicio, fim, "Paciente não encontrado")
