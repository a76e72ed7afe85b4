from __future__ import annotations

from datetime import date

from sqlalchemy import select

from .auth_service import cria_usuario
from .db import Database
from .models import Fisioterapeuta, Paciente, Papel, Recepcionista, Usuario

SENHA_PADRAO = "fisio123"


def seed_base(db: Database) -> None:
    """
    Popula dados mínimos (idempotente):
    - fisioterapeutas (com conta de usuário)
    - recepcionista
    - pacientes
    """
    with db.session() as s:
        fisios = [
            ("Ana Souza", "ana.souza@clinica.local", "11987654321", "CREFITO-3/12345-F", "Ortopedia"),
            ("Bruno Lima", "bruno.lima@clinica.local", "11912345678", "CREFITO-3/54321-F", "Neurologia"),
        ]
        for nome, email, telefone, crefito, especialidade in fisios:
            if s.execute(select(Fisioterapeuta).where(Fisioterapeuta.crefito == crefito)).scalar_one_or_none() is None:
                usuario = cria_usuario(s, nome, email, SENHA_PADRAO, telefone, Papel.FISIOTERAPEUTA)
                s.add(Fisioterapeuta(usuario=usuario, crefito=crefito, especialidade=especialidade, ativo=True))

        email_recepcao = "recepcao@clinica.local"
        if s.execute(select(Usuario).where(Usuario.email == email_recepcao)).scalar_one_or_none() is None:
            usuario = cria_usuario(s, "Carla Recepção", email_recepcao, SENHA_PADRAO, "1133334444", Papel.RECEPCIONISTA)
            s.add(Recepcionista(usuario=usuario, ativo=True))

        pacientes = [
            ("Daniel Martins", "12345678901", "11999990001", date(1985, 4, 12), "Unimed"),
            ("Elisa Ferreira", "10987654321", "11999990002", date(1992, 9, 30), None),
        ]
        for nome, cpf, telefone, nascimento, convenio in pacientes:
            if s.execute(select(Paciente).where(Paciente.cpf == cpf)).scalar_one_or_none() is None:
                s.add(Paciente(nome=nome, cpf=cpf, telefone=telefone, data_nascimento=nascimento, convenio=convenio))
