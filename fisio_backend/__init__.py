"""
Backend da clínica de fisioterapia.

Estrutura:
- config.py          : configuração (.env) e logging
- db.py              : engine, transações e base ORM
- models.py          : modelos ORM e enums
- conflitos.py       : verificação de conflitos de horário
- consultas.py       : ciclo de vida das consultas
- disponibilidade.py : fisioterapeutas livres em um horário
- agenda.py          : agenda por fisioterapeuta / paciente
- pacientes.py, fisioterapeutas.py, recepcionistas.py : cadastros
- api_main.py        : API HTTP (FastAPI)
- cli.py             : operações via linha de comando
"""
