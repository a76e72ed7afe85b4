from __future__ import annotations

import argparse
import sys

from .agenda import agenda_fisioterapeuta, agenda_paciente
from .config import Settings, configure_logging
from .consultas import cancela_consulta, conclui_consulta, cria_consulta, lista_consultas
from .db import Database
from .disponibilidade import fisioterapeutas_disponiveis
from .errors import DomainError, StoreError
from .fisioterapeutas import lista_fisioterapeutas
from .pacientes import cria_paciente, lista_pacientes
from .seed import seed_base


def _linha_consulta(c) -> str:
    return (
        f"{c.id} | {c.data_hora.strftime('%d/%m/%Y %H:%M')} | {c.status.value} | "
        f"{c.paciente.nome} com {c.fisioterapeuta.nome}"
    )


def cmd_init(db: Database, args: argparse.Namespace) -> None:
    seed_base(db)
    print("Banco inicializado e seed concluído.")


def cmd_list(db: Database, args: argparse.Namespace) -> None:
    if args.entity == "pacientes":
        for p in lista_pacientes(db, limit=args.limit).itens:
            print(f"{p.id} | {p.nome} | CPF {p.cpf} | {'ativo' if p.ativo else 'inativo'}")
    elif args.entity == "fisioterapeutas":
        for f in lista_fisioterapeutas(db, limit=args.limit).itens:
            print(f"{f.id} | {f.nome} | {f.crefito} | {f.especialidade}")
    elif args.entity == "consultas":
        for c in lista_consultas(db, limit=args.limit).itens:
            print(_linha_consulta(c))


def cmd_add_patient(db: Database, args: argparse.Namespace) -> None:
    p = cria_paciente(
        db,
        nome=args.nome,
        cpf=args.cpf,
        telefone=args.telefone,
        data_nascimento=args.nascimento,
        email=args.email,
        convenio=args.convenio,
    )
    print(f"Paciente criado: {p.id}")


def cmd_book(db: Database, args: argparse.Namespace) -> None:
    c = cria_consulta(
        db,
        paciente_id=args.paciente_id,
        fisioterapeuta_id=args.fisioterapeuta_id,
        data_hora=args.data_hora,
        observacoes=args.observacoes,
        duracao_minutos=args.duracao,
    )
    print("Consulta agendada.")
    print(f"Consulta ID: {c.id}")


def cmd_cancel(db: Database, args: argparse.Namespace) -> None:
    cancela_consulta(db, args.consulta_id, args.motivo)
    print("Consulta cancelada.")


def cmd_complete(db: Database, args: argparse.Namespace) -> None:
    conclui_consulta(db, args.consulta_id, args.relatorio, args.evolucao)
    print("Consulta concluída.")


def cmd_available(db: Database, args: argparse.Namespace) -> None:
    livres = fisioterapeutas_disponiveis(db, args.data_hora)
    if not livres:
        print("Nenhum fisioterapeuta disponível.")
        return
    for f in livres:
        print(f"{f.id} | {f.nome} | {f.especialidade}")


def cmd_agenda(db: Database, args: argparse.Namespace) -> None:
    if args.fisioterapeuta_id:
        itens = agenda_fisioterapeuta(db, args.fisioterapeuta_id, args.inicio, args.fim)
    else:
        itens = agenda_paciente(db, args.paciente_id, args.inicio, args.fim)

    if not itens:
        print("Agenda vazia no período.")
        return
    for c in itens:
        print(_linha_consulta(c))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="fisio-cli", description="CLI da clínica de fisioterapia")
    sub = p.add_subparsers(required=True)

    p_init = sub.add_parser("init", help="Cria o banco e carrega o seed")
    p_init.set_defaults(func=cmd_init)

    p_list = sub.add_parser("list", help="Lista entidades")
    p_list.add_argument("entity", choices=["pacientes", "fisioterapeutas", "consultas"])
    p_list.add_argument("--limit", type=int, default=50)
    p_list.set_defaults(func=cmd_list)

    p_addp = sub.add_parser("add-patient", help="Cadastra paciente")
    p_addp.add_argument("--nome", required=True)
    p_addp.add_argument("--cpf", required=True)
    p_addp.add_argument("--telefone", required=True)
    p_addp.add_argument("--nascimento", required=True, help="Data ISO ex: 1990-05-20")
    p_addp.add_argument("--email", default=None)
    p_addp.add_argument("--convenio", default=None)
    p_addp.set_defaults(func=cmd_add_patient)

    p_book = sub.add_parser("book", help="Agenda consulta")
    p_book.add_argument("--paciente-id", required=True)
    p_book.add_argument("--fisioterapeuta-id", required=True)
    p_book.add_argument("--data-hora", required=True, help="ISO datetime ex: 2026-01-14T10:30")
    p_book.add_argument("--observacoes", default=None)
    p_book.add_argument("--duracao", type=int, default=None, help="Duração em minutos (15 a 240)")
    p_book.set_defaults(func=cmd_book)

    p_cancel = sub.add_parser("cancel", help="Cancela consulta")
    p_cancel.add_argument("--consulta-id", required=True)
    p_cancel.add_argument("--motivo", required=True)
    p_cancel.set_defaults(func=cmd_cancel)

    p_done = sub.add_parser("complete", help="Conclui consulta")
    p_done.add_argument("--consulta-id", required=True)
    p_done.add_argument("--relatorio", required=True)
    p_done.add_argument("--evolucao", default=None)
    p_done.set_defaults(func=cmd_complete)

    p_av = sub.add_parser("available", help="Fisioterapeutas livres em um horário")
    p_av.add_argument("--data-hora", required=True)
    p_av.set_defaults(func=cmd_available)

    p_ag = sub.add_parser("agenda", help="Agenda de fisioterapeuta ou paciente")
    dono = p_ag.add_mutually_exclusive_group(required=True)
    dono.add_argument("--fisioterapeuta-id")
    dono.add_argument("--paciente-id")
    p_ag.add_argument("--inicio", required=True)
    p_ag.add_argument("--fim", required=True)
    p_ag.set_defaults(func=cmd_agenda)

    return p


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    db = Database(settings.database_url, echo=settings.db_echo)
    db.open()  # garante tabelas
    try:
        args.func(db, args)
    except (DomainError, StoreError) as e:
        print(f"Erro: {e.message}", file=sys.stderr)
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
