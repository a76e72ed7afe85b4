from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import Boolean, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def new_uuid() -> str:
    return str(uuid.uuid4())


class StatusConsulta(enum.Enum):
    AGENDADA = "AGENDADA"
    CONFIRMADA = "CONFIRMADA"
    EM_ANDAMENTO = "EM_ANDAMENTO"
    CONCLUIDA = "CONCLUIDA"
    CANCELADA = "CANCELADA"
    NAO_COMPARECEU = "NAO_COMPARECEU"


class Papel(enum.Enum):
    FISIOTERAPEUTA = "FISIOTERAPEUTA"
    RECEPCIONISTA = "RECEPCIONISTA"


class Usuario(Base):
    """
    Conta de usuário (base comum da equipe).
    - email único, usado no login
    - senha_hash com bcrypt (passlib)
    - `papel` indica qual extensão (Fisioterapeuta/Recepcionista) é dona da conta
    """
    __tablename__ = "usuarios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nome: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    senha_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    telefone: Mapped[str | None] = mapped_column(String(11), nullable=True)
    papel: Mapped[Papel] = mapped_column(Enum(Papel), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    criado_em: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    fisioterapeuta: Mapped[Optional["Fisioterapeuta"]] = relationship(
        back_populates="usuario", uselist=False, cascade="all, delete-orphan"
    )
    recepcionista: Mapped[Optional["Recepcionista"]] = relationship(
        back_populates="usuario", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"Usuario({self.email}, {self.papel.value})"


class Paciente(Base):
    __tablename__ = "pacientes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    nome: Mapped[str] = mapped_column(String(100), nullable=False)
    cpf: Mapped[str] = mapped_column(String(11), nullable=False, unique=True)
    telefone: Mapped[str] = mapped_column(String(11), nullable=False)
    email: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    data_nascimento: Mapped[date] = mapped_column(Date, nullable=False)
    convenio: Mapped[str | None] = mapped_column(String(100), nullable=True)
    historico: Mapped[str | None] = mapped_column(Text, nullable=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    criado_em: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)

    consultas: Mapped[list["Consulta"]] = relationship(back_populates="paciente", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"Paciente({self.nome})"


class Fisioterapeuta(Base):
    __tablename__ = "fisioterapeutas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    usuario_id: Mapped[str] = mapped_column(ForeignKey("usuarios.id"), nullable=False, unique=True)
    crefito: Mapped[str] = mapped_column(String(30), nullable=False, unique=True)
    especialidade: Mapped[str] = mapped_column(String(120), nullable=False)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    usuario: Mapped["Usuario"] = relationship(back_populates="fisioterapeuta")
    consultas: Mapped[list["Consulta"]] = relationship(back_populates="fisioterapeuta", cascade="all, delete-orphan")

    @property
    def nome(self) -> str:
        return self.usuario.nome

    def __repr__(self) -> str:
        return f"Fisioterapeuta({self.crefito}, {self.especialidade})"


class Recepcionista(Base):
    __tablename__ = "recepcionistas"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)
    usuario_id: Mapped[str] = mapped_column(ForeignKey("usuarios.id"), nullable=False, unique=True)
    ativo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    usuario: Mapped["Usuario"] = relationship(back_populates="recepcionista")


class Consulta(Base):
    __tablename__ = "consultas"
    __table_args__ = (
        # consultas de conflito e agenda filtram por parte + janela de horário
        Index("ix_consulta_fisio_data", "fisioterapeuta_id", "data_hora"),
        Index("ix_consulta_paciente_data", "paciente_id", "data_hora"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_uuid)

    paciente_id: Mapped[str] = mapped_column(ForeignKey("pacientes.id"), nullable=False)
    fisioterapeuta_id: Mapped[str] = mapped_column(ForeignKey("fisioterapeutas.id"), nullable=False)

    data_hora: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    duracao_minutos: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[StatusConsulta] = mapped_column(
        Enum(StatusConsulta), default=StatusConsulta.AGENDADA, nullable=False
    )

    observacoes: Mapped[str | None] = mapped_column(Text, nullable=True)

    criado_em: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, nullable=False)
    atualizado_em: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.now, onupdate=datetime.now, nullable=False
    )

    paciente: Mapped["Paciente"] = relationship(back_populates="consultas")
    fisioterapeuta: Mapped["Fisioterapeuta"] = relationship(back_populates="consultas")

    def __repr__(self) -> str:
        return f"Consulta({self.data_hora.isoformat()}, {self.status.value})"
