"""Schemas de entrada/saída da API (pydantic v2)."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .models import Papel, StatusConsulta

TELEFONE = r"^\d{10,11}$"


# Schemas Auth

class RegisterIn(BaseModel):
    nome: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., max_length=100)
    senha: str = Field(..., min_length=6, max_length=100)
    telefone: str = Field(..., pattern=TELEFONE)
    papel: Literal["FISIOTERAPEUTA", "RECEPCIONISTA"]
    crefito: str | None = None
    especialidade: str | None = None


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UsuarioOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    nome: str
    email: str
    telefone: str | None = None
    papel: Papel
    ativo: bool


# Schemas Domain

class PacienteIn(BaseModel):
    nome: str = Field(..., min_length=3, max_length=100)
    cpf: str = Field(..., pattern=r"^\d{11}$")
    telefone: str = Field(..., pattern=TELEFONE)
    data_nascimento: date
    email: str | None = Field(default=None, max_length=100)
    convenio: str | None = None
    historico: str | None = None


class PacienteUpdateIn(BaseModel):
    nome: str | None = Field(default=None, min_length=3, max_length=100)
    email: str | None = Field(default=None, max_length=100)
    telefone: str | None = Field(default=None, pattern=TELEFONE)
    data_nascimento: date | None = None
    convenio: str | None = None
    historico: str | None = None


class PacienteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    nome: str
    cpf: str
    telefone: str
    email: str | None = None
    data_nascimento: date
    convenio: str | None = None
    historico: str | None = None
    ativo: bool


class FisioterapeutaIn(BaseModel):
    nome: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., max_length=100)
    senha: str = Field(..., min_length=6, max_length=100)
    telefone: str = Field(..., pattern=TELEFONE)
    crefito: str = Field(..., min_length=1)
    especialidade: str = Field(..., min_length=1)


class FisioterapeutaUpdateIn(BaseModel):
    nome: str | None = Field(default=None, min_length=3, max_length=100)
    email: str | None = Field(default=None, max_length=100)
    telefone: str | None = Field(default=None, pattern=TELEFONE)
    crefito: str | None = Field(default=None, min_length=1)
    especialidade: str | None = Field(default=None, min_length=1)


class UsuarioResumoOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    nome: str
    email: str
    telefone: str | None = None


class FisioterapeutaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    crefito: str
    especialidade: str
    ativo: bool
    usuario: UsuarioResumoOut


class RecepcionistaIn(BaseModel):
    nome: str = Field(..., min_length=3, max_length=100)
    email: str = Field(..., max_length=100)
    senha: str = Field(..., min_length=6, max_length=100)
    telefone: str = Field(..., pattern=TELEFONE)


class RecepcionistaUpdateIn(BaseModel):
    nome: str | None = Field(default=None, min_length=3, max_length=100)
    email: str | None = Field(default=None, max_length=100)
    telefone: str | None = Field(default=None, pattern=TELEFONE)
    ativo: bool | None = None


class RecepcionistaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    ativo: bool
    usuario: UsuarioResumoOut


class ConsultaIn(BaseModel):
    paciente_id: str
    fisioterapeuta_id: str
    # string ISO: a conversão (e o erro de formato) fica com o núcleo de agendamento
    data_hora: str = Field(..., min_length=1)
    observacoes: str | None = None
    duracao_minutos: int | None = Field(default=None, ge=15, le=240)


class ConsultaUpdateIn(BaseModel):
    data_hora: str | None = Field(default=None, min_length=1)
    observacoes: str | None = None
    status: StatusConsulta | None = None
    duracao_minutos: int | None = Field(default=None, ge=15, le=240)


class CancelarIn(BaseModel):
    motivo: str = Field(..., min_length=1)


class ConcluirIn(BaseModel):
    relatorio: str = Field(..., min_length=1)
    evolucao: str | None = None


class ConsultaOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    paciente_id: str
    fisioterapeuta_id: str
    data_hora: datetime
    duracao_minutos: int | None = None
    status: StatusConsulta
    observacoes: str | None = None
    paciente: PacienteOut
    fisioterapeuta: FisioterapeutaOut


class Periodo(BaseModel):
    inicio: datetime
    fim: datetime


class AgendaOut(BaseModel):
    periodo: Periodo
    consultas: list[ConsultaOut]
    total: int
