"""
Fixtures compartilhadas.

Cada teste recebe um banco SQLite novo em arquivo temporário (o arquivo,
e não :memory:, permite várias conexões para os testes de concorrência).
"""
from __future__ import annotations

import itertools
from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from passlib.context import CryptContext

from fisio_backend import auth_security
from fisio_backend.api_main import create_app
from fisio_backend.config import Settings
from fisio_backend.db import Database
from fisio_backend.fisioterapeutas import cria_fisioterapeuta
from fisio_backend.pacientes import cria_paciente

SENHA = "senha123"

_seq = itertools.count(1)


# ============================================================================
# BANCO
# ============================================================================


@pytest.fixture(autouse=True)
def bcrypt_rapido(monkeypatch):
    """bcrypt com custo mínimo: os testes criam muitas contas."""
    monkeypatch.setattr(auth_security, "pwd_context", CryptContext(schemes=["bcrypt"], bcrypt__rounds=4))


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'teste.sqlite'}",
        jwt_secret="segredo-de-teste",
        log_level="WARNING",
    )


@pytest.fixture
def db(settings):
    database = Database(settings.database_url)
    database.open()
    yield database
    database.close()


# ============================================================================
# FÁBRICAS
# ============================================================================


@pytest.fixture
def novo_paciente(db):
    def _fabrica(**kwargs):
        n = next(_seq)
        dados = {
            "nome": f"Paciente {n}",
            "cpf": f"{n:011d}",
            "telefone": "11999990000",
            "data_nascimento": "1990-01-01",
        }
        dados.update(kwargs)
        return cria_paciente(db, **dados)

    return _fabrica


@pytest.fixture
def novo_fisioterapeuta(db):
    def _fabrica(**kwargs):
        n = next(_seq)
        dados = {
            "nome": f"Fisioterapeuta {n}",
            "email": f"fisio{n}@clinica.test",
            "senha": SENHA,
            "telefone": "11988880000",
            "crefito": f"CREFITO-3/{n:05d}-F",
            "especialidade": "Ortopedia",
        }
        dados.update(kwargs)
        return cria_fisioterapeuta(db, **dados)

    return _fabrica


@pytest.fixture
def paciente(novo_paciente):
    return novo_paciente()


@pytest.fixture
def fisioterapeuta(novo_fisioterapeuta):
    return novo_fisioterapeuta()


def em(hora: str, dia: str = "2030-01-14") -> datetime:
    """Instante futuro fixo: em("10:00") -> 2030-01-14 10:00."""
    return datetime.fromisoformat(f"{dia}T{hora}")


# ============================================================================
# API
# ============================================================================


@pytest.fixture
def client(settings, db):
    with TestClient(create_app(settings, db)) as c:
        yield c


@pytest.fixture
def auth_headers(client) -> dict[str, str]:
    resp = client.post(
        "/api/auth/register",
        json={
            "nome": "Recepção Teste",
            "email": "recepcao@clinica.test",
            "senha": SENHA,
            "telefone": "1133334444",
            "papel": "RECEPCIONISTA",
        },
    )
    assert resp.status_code == 201
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}
