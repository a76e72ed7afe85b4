from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import joinedload

from .common import parse_instante
from .conflitos import filtro_ocupando_janela
from .db import Database
from .models import Consulta, Fisioterapeuta, Usuario


def fisioterapeutas_disponiveis(db: Database, data_hora: datetime | str) -> list[Fisioterapeuta]:
    """
    Fisioterapeutas ativos sem consulta ativa na janela de conflito do instante.
    Mesma regra de ocupação usada no agendamento; ordem: nome, depois id.
    Consultas canceladas, concluídas ou com falta (NAO_COMPARECEU) liberam o horário.
    """
    instante = parse_instante(data_hora)

    with db.session() as s:
        ocupados = set(
            s.scalars(select(Consulta.fisioterapeuta_id).where(filtro_ocupando_janela(instante)).distinct())
        )

        ativos = s.scalars(
            select(Fisioterapeuta)
            .join(Usuario, Usuario.id == Fisioterapeuta.usuario_id)
            .options(joinedload(Fisioterapeuta.usuario))
            .where(Fisioterapeuta.ativo.is_(True))
            .order_by(Usuario.nome.asc(), Fisioterapeuta.id.asc())
        )
        return [f for f in ativos if f.id not in ocupados]
