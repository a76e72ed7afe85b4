from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Generic, TypeVar

from .errors import ValidationError

T = TypeVar("T")

_CPF_RE = re.compile(r"^\d{11}$")
_TELEFONE_RE = re.compile(r"^\d{10,11}$")


# =========================
# Datas
# =========================
def parse_instante(valor: datetime | str | None, campo: str = "data_hora") -> datetime:
    """
    Normaliza um instante para datetime "naive" (horário local, sem fuso).
    Aceita datetime ou string ISO-8601 (inclusive com sufixo Z). Um offset
    informado é descartado: vale o horário de parede.
    """
    if valor is None or valor == "":
        raise ValidationError(f"{campo} é obrigatório")

    if isinstance(valor, datetime):
        dt = valor
    elif isinstance(valor, str):
        texto = valor.strip()
        if texto.endswith(("Z", "z")):
            texto = texto[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(texto)
        except ValueError:
            raise ValidationError(f"{campo} inválido: {valor!r}") from None
    else:
        raise ValidationError(f"{campo} inválido: {valor!r}")

    return dt.replace(tzinfo=None)


def parse_data(valor: date | str | None, campo: str) -> date:
    if valor is None or valor == "":
        raise ValidationError(f"{campo} é obrigatório")
    if isinstance(valor, datetime):
        return valor.date()
    if isinstance(valor, date):
        return valor
    try:
        return date.fromisoformat(str(valor).strip())
    except ValueError:
        raise ValidationError(f"{campo} inválido: {valor!r}") from None


# =========================
# Validações de cadastro
# =========================
def valida_nome(nome: str | None) -> str:
    nome = (nome or "").strip()
    if len(nome) < 3:
        raise ValidationError("Nome deve ter pelo menos 3 caracteres")
    return nome


def valida_cpf(cpf: str | None) -> str:
    cpf = (cpf or "").strip()
    if not _CPF_RE.match(cpf):
        raise ValidationError("CPF deve ter 11 dígitos")
    return cpf


def valida_telefone(telefone: str | None) -> str:
    telefone = (telefone or "").strip()
    if not _TELEFONE_RE.match(telefone):
        raise ValidationError("Telefone deve ter 10 ou 11 dígitos")
    return telefone


def valida_nascimento(valor: date | str | None) -> date:
    nascimento = parse_data(valor, "data_nascimento")
    if nascimento >= date.today():
        raise ValidationError("Data de nascimento deve ser no passado")
    return nascimento


def normaliza_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    if not email:
        return None
    if "@" not in email:
        raise ValidationError("Email inválido")
    return email


# =========================
# Paginação
# =========================
@dataclass(frozen=True)
class Pagina(Generic[T]):
    itens: list[T]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def offset(page: int, limit: int) -> int:
    if page < 1 or limit < 1:
        raise ValidationError("Página e limite devem ser positivos")
    return (page - 1) * limit
