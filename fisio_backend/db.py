from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .errors import ConflictError, StoreError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base ORM para todos os modelos."""
    pass


def _configura_sqlite(engine: Engine) -> None:
    """
    SQLite: desliga o BEGIN implícito do driver e abre toda transação com
    BEGIN IMMEDIATE, serializando os escritores (verificação de conflito +
    insert acontecem sob o mesmo lock).
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    """
    Acesso ao banco injetado nos serviços.
    - open()    : cria as tabelas (idempotente)
    - session() : transação por requisição
    - close()   : libera o pool de conexões
    """

    def __init__(self, url: str, echo: bool = False) -> None:
        self.url = url
        if url.startswith("sqlite"):
            self.engine = create_engine(url, echo=echo, connect_args={"timeout": 30, "check_same_thread": False})
            _configura_sqlite(self.engine)
        else:
            self.engine = create_engine(url, echo=echo, isolation_level="SERIALIZABLE", pool_pre_ping=True)

        self._sessionmaker = sessionmaker(
            bind=self.engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
        )

    def open(self) -> None:
        # registra todos os modelos no metadata
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info("Banco pronto em %s", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Context manager da sessão:
        - commit se tudo ok
        - rollback em exceções
        - close sempre
        Erros do SQLAlchemy viram ConflictError (violação de unicidade) ou StoreError.
        """
        s: Session = self._sessionmaker()
        try:
            yield s
            s.commit()
        except IntegrityError as exc:
            s.rollback()
            logger.warning("Violação de integridade: %s", exc.orig)
            raise ConflictError("Registro duplicado ou referência inválida") from exc
        except SQLAlchemyError as exc:
            s.rollback()
            logger.exception("Falha no banco de dados")
            raise StoreError("Falha ao acessar o banco de dados") from exc
        except Exception:
            s.rollback()
            raise
        finally:
            s.close()
