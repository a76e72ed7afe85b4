from __future__ import annotations

import re

import pytest

from fisio_backend.cli import main
from fisio_backend.fisioterapeutas import lista_fisioterapeutas
from fisio_backend.pacientes import lista_pacientes


@pytest.fixture
def cli(settings):
    def _run(*argv: str) -> int:
        return main(list(argv), settings=settings)

    return _run


class TestCli:
    def test_init_e_idempotente(self, cli, db, capsys):
        assert cli("init") == 0
        assert cli("init") == 0
        assert "seed concluído" in capsys.readouterr().out

        assert lista_fisioterapeutas(db).total == 2
        assert lista_pacientes(db).total == 2

    def test_agendar_e_conflito(self, cli, db, capsys):
        cli("init")
        paciente_a, paciente_b = lista_pacientes(db).itens
        fisio = lista_fisioterapeutas(db).itens[0]
        capsys.readouterr()

        rc = cli("book", "--paciente-id", paciente_a.id, "--fisioterapeuta-id", fisio.id, "--data-hora", "2030-02-01T10:00")
        assert rc == 0
        out = capsys.readouterr().out
        consulta_id = re.search(r"Consulta ID: (\S+)", out).group(1)

        rc = cli("book", "--paciente-id", paciente_b.id, "--fisioterapeuta-id", fisio.id, "--data-hora", "2030-02-01T10:30")
        assert rc == 1
        assert "Erro: Fisioterapeuta já possui consulta" in capsys.readouterr().err

        assert cli("available", "--data-hora", "2030-02-01T10:00") == 0
        out = capsys.readouterr().out
        assert fisio.id not in out

        assert cli("cancel", "--consulta-id", consulta_id, "--motivo", "Teste") == 0
        assert cli("cancel", "--consulta-id", consulta_id, "--motivo", "Teste") == 1

    def test_agenda_vazia(self, cli, db, capsys):
        cli("init")
        paciente = lista_pacientes(db).itens[0]
        capsys.readouterr()

        rc = cli("agenda", "--paciente-id", paciente.id, "--inicio", "2030-01-01T00:00", "--fim", "2030-01-31T23:59")
        assert rc == 0
        assert "Agenda vazia" in capsys.readouterr().out

    def test_add_patient_com_cpf_invalido(self, cli, capsys):
        rc = cli(
            "add-patient", "--nome", "Teste Silva", "--cpf", "123", "--telefone", "11999998888",
            "--nascimento", "1990-05-20",
        )
        assert rc == 1
        assert "CPF" in capsys.readouterr().err
