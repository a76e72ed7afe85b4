from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fisio_backend.common import Pagina, offset, parse_instante
from fisio_backend.config import Settings
from fisio_backend.errors import ValidationError


class TestParseInstante:
    @pytest.mark.parametrize(
        "valor",
        ["2030-01-14T10:00", "2030-01-14T10:00:00", "2030-01-14T10:00:00Z", "2030-01-14T10:00:00-03:00"],
    )
    def test_formatos_iso(self, valor):
        assert parse_instante(valor) == datetime(2030, 1, 14, 10, 0)

    def test_datetime_com_fuso(self):
        valor = datetime(2030, 1, 14, 10, 0, tzinfo=timezone(timedelta(hours=2)))
        assert parse_instante(valor) == datetime(2030, 1, 14, 10, 0)

    def test_mensagem_cita_o_campo(self):
        with pytest.raises(ValidationError, match="data_fim"):
            parse_instante("ontem", "data_fim")


class TestPaginacao:
    def test_total_de_paginas(self):
        assert Pagina(itens=[], page=1, limit=10, total=21).total_pages == 3
        assert Pagina(itens=[], page=1, limit=10, total=0).total_pages == 0

    def test_offset(self):
        assert offset(3, 10) == 20
        with pytest.raises(ValidationError):
            offset(1, 0)


class TestSettings:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///outro.sqlite")
        monkeypatch.setenv("JWT_EXPIRE_MINUTES", "15")
        monkeypatch.setenv("SEED_ON_STARTUP", "true")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        s = Settings.from_env()
        assert s.database_url == "sqlite:///outro.sqlite"
        assert s.jwt_expire_minutes == 15
        assert s.seed_on_startup is True
        assert s.log_level == "DEBUG"
