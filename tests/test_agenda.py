from __future__ import annotations

import pytest

from conftest import em
from fisio_backend.agenda import agenda_fisioterapeuta, agenda_paciente
from fisio_backend.consultas import cancela_consulta, cria_consulta
from fisio_backend.errors import NotFoundError
from fisio_backend.models import StatusConsulta


class TestAgenda:
    def test_periodo_fechado_em_ordem(self, db, novo_paciente, fisioterapeuta):
        tarde = cria_consulta(db, novo_paciente().id, fisioterapeuta.id, em("14:00"))
        manha = cria_consulta(db, novo_paciente().id, fisioterapeuta.id, em("08:00"))
        cria_consulta(db, novo_paciente().id, fisioterapeuta.id, em("08:00", dia="2030-01-15"))

        itens = agenda_fisioterapeuta(db, fisioterapeuta.id, em("08:00"), em("14:00"))
        assert [c.id for c in itens] == [manha.id, tarde.id]

    def test_inclui_todos_os_status(self, db, paciente, fisioterapeuta):
        c = cria_consulta(db, paciente.id, fisioterapeuta.id, em("10:00"))
        cancela_consulta(db, c.id, "Desmarcou")

        itens = agenda_paciente(db, paciente.id, "2030-01-14T00:00:00", "2030-01-14T23:59:59")
        assert [c.status for c in itens] == [StatusConsulta.CANCELADA]
        assert itens[0].fisioterapeuta.usuario.nome == fisioterapeuta.usuario.nome

    def test_somente_do_titular(self, db, novo_paciente, novo_fisioterapeuta):
        p1, p2 = novo_paciente(), novo_paciente()
        f = novo_fisioterapeuta()
        cria_consulta(db, p1.id, f.id, em("08:00"))
        cria_consulta(db, p2.id, f.id, em("10:00"))

        itens = agenda_paciente(db, p2.id, em("00:00"), em("23:00"))
        assert [c.paciente_id for c in itens] == [p2.id]

    def test_inicio_depois_do_fim(self, db, paciente, fisioterapeuta):
        cria_consulta(db, paciente.id, fisioterapeuta.id, em("10:00"))

        assert agenda_fisioterapeuta(db, fisioterapeuta.id, em("12:00"), em("08:00")) == []

    def test_titular_inexistente(self, db):
        with pytest.raises(NotFoundError, match="Fisioterapeuta"):
            agenda_fisioterapeuta(db, "nao-existe", em("08:00"), em("18:00"))
        with pytest.raises(NotFoundError, match="Paciente"):
            agenda_paciente(db, "nao-existe", em("08:00"), em("18:00"))
