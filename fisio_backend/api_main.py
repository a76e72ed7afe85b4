from __future__ import annotations

import logging
from typing import Any

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm

from . import agenda, consultas, disponibilidade, fisioterapeutas, pacientes, recepcionistas
from .auth_security import get_subject, token_para_usuario
from .auth_service import autentica, get_usuario_by_id
from .common import Pagina, parse_instante
from .config import Settings, configure_logging
from .db import Database
from .errors import AuthError, DomainError, StoreError, ValidationError
from .models import StatusConsulta, Usuario
from .schemas import (
    AgendaOut,
    CancelarIn,
    ConcluirIn,
    ConsultaIn,
    ConsultaOut,
    ConsultaUpdateIn,
    FisioterapeutaIn,
    FisioterapeutaOut,
    FisioterapeutaUpdateIn,
    PacienteIn,
    PacienteOut,
    PacienteUpdateIn,
    Periodo,
    RecepcionistaIn,
    RecepcionistaOut,
    RecepcionistaUpdateIn,
    RegisterIn,
    TokenOut,
    UsuarioOut,
)
from .seed import seed_base

logger = logging.getLogger(__name__)

# OAuth2 Bearer (Authorization: Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")

router = APIRouter(prefix="/api")


# Respostas

def _ok(data: Any = None, message: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def _dump(schema, obj) -> dict[str, Any]:
    return schema.model_validate(obj).model_dump(mode="json")


def _paginado(schema, pagina: Pagina) -> dict[str, Any]:
    return {
        "success": True,
        "data": [_dump(schema, item) for item in pagina.itens],
        "pagination": {
            "page": pagina.page,
            "limit": pagina.limit,
            "total": pagina.total,
            "totalPages": pagina.total_pages,
        },
    }


# Dependências

def get_db(request: Request) -> Database:
    return request.app.state.db


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> Usuario:
    # proteção extra: remove espaços / aspas acidentais
    token = token.strip().strip('"').strip("'")

    user_id = get_subject(settings, token)
    if not user_id:
        raise AuthError("Token inválido")

    u = get_usuario_by_id(db, user_id)
    if not u or not u.ativo:
        raise AuthError("Usuário inválido")
    return u


# AUTH endpoints

@router.post("/auth/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: RegisterIn, db: Database = Depends(get_db), settings: Settings = Depends(get_settings)
) -> dict[str, Any]:
    if payload.papel == "FISIOTERAPEUTA":
        if not payload.crefito:
            raise ValidationError("CREFITO é obrigatório para fisioterapeutas")
        if not payload.especialidade:
            raise ValidationError("Especialidade é obrigatória para fisioterapeutas")
        perfil = fisioterapeutas.cria_fisioterapeuta(
            db, payload.nome, payload.email, payload.senha, payload.telefone, payload.crefito, payload.especialidade
        )
    else:
        perfil = recepcionistas.cria_recepcionista(db, payload.nome, payload.email, payload.senha, payload.telefone)

    usuario = perfil.usuario
    token = token_para_usuario(settings, usuario)
    return _ok(
        {"usuario": _dump(UsuarioOut, usuario), "perfil_id": perfil.id, "access_token": token, "token_type": "bearer"},
        "Usuário registrado com sucesso",
    )


@router.post("/auth/login", response_model=TokenOut)
def login(
    form: OAuth2PasswordRequestForm = Depends(),
    db: Database = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> TokenOut:
    u = autentica(db, form.username, form.password)
    if not u:
        raise AuthError("Credenciais inválidas")

    token = token_para_usuario(settings, u)
    return TokenOut(access_token=token)


@router.get("/auth/me")
def me(user: Usuario = Depends(get_current_user)) -> dict[str, Any]:
    return _ok(_dump(UsuarioOut, user))


# Pacientes

@router.get("/pacientes")
def api_lista_pacientes(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    ativo: bool | None = None,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    return _paginado(PacienteOut, pacientes.lista_pacientes(db, page, limit, search, ativo))


@router.post("/pacientes", status_code=status.HTTP_201_CREATED)
def api_cria_paciente(
    payload: PacienteIn, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    p = pacientes.cria_paciente(db, **payload.model_dump())
    return _ok(_dump(PacienteOut, p), "Paciente cadastrado com sucesso")


@router.get("/pacientes/{paciente_id}")
def api_obtem_paciente(
    paciente_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    return _ok(_dump(PacienteOut, pacientes.obtem_paciente(db, paciente_id)))


@router.put("/pacientes/{paciente_id}")
def api_atualiza_paciente(
    paciente_id: str,
    payload: PacienteUpdateIn,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    p = pacientes.atualiza_paciente(db, paciente_id, **payload.model_dump(exclude_unset=True))
    return _ok(_dump(PacienteOut, p), "Paciente atualizado com sucesso")


@router.patch("/pacientes/{paciente_id}/status")
def api_alterna_paciente(
    paciente_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    p = pacientes.alterna_status_paciente(db, paciente_id)
    return _ok(_dump(PacienteOut, p), f"Paciente {'ativado' if p.ativo else 'desativado'} com sucesso")


@router.delete("/pacientes/{paciente_id}")
def api_exclui_paciente(
    paciente_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    pacientes.exclui_paciente(db, paciente_id)
    return _ok(message="Paciente excluído com sucesso")


# Fisioterapeutas

@router.get("/fisioterapeutas")
def api_lista_fisioterapeutas(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    ativo: bool | None = None,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    return _paginado(FisioterapeutaOut, fisioterapeutas.lista_fisioterapeutas(db, page, limit, search, ativo))


@router.get("/fisioterapeutas/disponiveis")
def api_fisioterapeutas_disponiveis(
    data_hora: str = Query(...), db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    livres = disponibilidade.fisioterapeutas_disponiveis(db, data_hora)
    return {
        "success": True,
        "data": [_dump(FisioterapeutaOut, f) for f in livres],
        "dataHora": parse_instante(data_hora).isoformat(),
        "total": len(livres),
    }


@router.post("/fisioterapeutas", status_code=status.HTTP_201_CREATED)
def api_cria_fisioterapeuta(
    payload: FisioterapeutaIn, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    f = fisioterapeutas.cria_fisioterapeuta(db, **payload.model_dump())
    return _ok(_dump(FisioterapeutaOut, f), "Fisioterapeuta cadastrado com sucesso")


@router.get("/fisioterapeutas/{fisioterapeuta_id}")
def api_obtem_fisioterapeuta(
    fisioterapeuta_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    return _ok(_dump(FisioterapeutaOut, fisioterapeutas.obtem_fisioterapeuta(db, fisioterapeuta_id)))


@router.put("/fisioterapeutas/{fisioterapeuta_id}")
def api_atualiza_fisioterapeuta(
    fisioterapeuta_id: str,
    payload: FisioterapeutaUpdateIn,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    f = fisioterapeutas.atualiza_fisioterapeuta(db, fisioterapeuta_id, **payload.model_dump(exclude_unset=True))
    return _ok(_dump(FisioterapeutaOut, f), "Fisioterapeuta atualizado com sucesso")


@router.patch("/fisioterapeutas/{fisioterapeuta_id}/status")
def api_alterna_fisioterapeuta(
    fisioterapeuta_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    f = fisioterapeutas.alterna_status_fisioterapeuta(db, fisioterapeuta_id)
    return _ok(_dump(FisioterapeutaOut, f), f"Fisioterapeuta {'ativado' if f.ativo else 'desativado'} com sucesso")


@router.delete("/fisioterapeutas/{fisioterapeuta_id}")
def api_exclui_fisioterapeuta(
    fisioterapeuta_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    fisioterapeutas.exclui_fisioterapeuta(db, fisioterapeuta_id)
    return _ok(message="Fisioterapeuta excluído com sucesso")


# Recepcionistas

@router.get("/recepcionistas")
def api_lista_recepcionistas(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    ativo: bool | None = None,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    return _paginado(RecepcionistaOut, recepcionistas.lista_recepcionistas(db, page, limit, search, ativo))


@router.post("/recepcionistas", status_code=status.HTTP_201_CREATED)
def api_cria_recepcionista(
    payload: RecepcionistaIn, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    r = recepcionistas.cria_recepcionista(db, **payload.model_dump())
    return _ok(_dump(RecepcionistaOut, r), "Recepcionista cadastrado com sucesso")


@router.get("/recepcionistas/{recepcionista_id}")
def api_obtem_recepcionista(
    recepcionista_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    return _ok(_dump(RecepcionistaOut, recepcionistas.obtem_recepcionista(db, recepcionista_id)))


@router.put("/recepcionistas/{recepcionista_id}")
def api_atualiza_recepcionista(
    recepcionista_id: str,
    payload: RecepcionistaUpdateIn,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    r = recepcionistas.atualiza_recepcionista(db, recepcionista_id, **payload.model_dump(exclude_unset=True))
    return _ok(_dump(RecepcionistaOut, r), "Recepcionista atualizado com sucesso")


@router.delete("/recepcionistas/{recepcionista_id}")
def api_desativa_recepcionista(
    recepcionista_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    recepcionistas.desativa_recepcionista(db, recepcionista_id)
    return _ok(message="Recepcionista desativado com sucesso")


@router.delete("/recepcionistas/{recepcionista_id}/permanente")
def api_exclui_recepcionista(
    recepcionista_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    recepcionistas.exclui_recepcionista_permanente(db, recepcionista_id)
    return _ok(message="Recepcionista excluído permanentemente")


# Consultas

@router.get("/consultas")
def api_lista_consultas(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str | None = None,
    status_: StatusConsulta | None = Query(None, alias="status"),
    data_inicio: str | None = None,
    data_fim: str | None = None,
    paciente_id: str | None = None,
    fisioterapeuta_id: str | None = None,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    pagina = consultas.lista_consultas(
        db,
        page=page,
        limit=limit,
        search=search,
        status=status_,
        data_inicio=data_inicio,
        data_fim=data_fim,
        paciente_id=paciente_id,
        fisioterapeuta_id=fisioterapeuta_id,
    )
    return _paginado(ConsultaOut, pagina)


@router.post("/consultas", status_code=status.HTTP_201_CREATED)
def api_cria_consulta(
    payload: ConsultaIn, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    c = consultas.cria_consulta(db, **payload.model_dump())
    return _ok(_dump(ConsultaOut, c), "Consulta agendada com sucesso")


@router.get("/consultas/agenda/fisioterapeuta/{fisioterapeuta_id}")
def api_agenda_fisioterapeuta(
    fisioterapeuta_id: str,
    data_inicio: str = Query(...),
    data_fim: str = Query(...),
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    itens = agenda.agenda_fisioterapeuta(db, fisioterapeuta_id, data_inicio, data_fim)
    return _ok(_agenda_out(itens, data_inicio, data_fim))


@router.get("/consultas/agenda/paciente/{paciente_id}")
def api_agenda_paciente(
    paciente_id: str,
    data_inicio: str = Query(...),
    data_fim: str = Query(...),
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    itens = agenda.agenda_paciente(db, paciente_id, data_inicio, data_fim)
    return _ok(_agenda_out(itens, data_inicio, data_fim))


def _agenda_out(itens, data_inicio: str, data_fim: str) -> dict[str, Any]:
    out = AgendaOut(
        periodo=Periodo(inicio=parse_instante(data_inicio, "data_inicio"), fim=parse_instante(data_fim, "data_fim")),
        consultas=[ConsultaOut.model_validate(c) for c in itens],
        total=len(itens),
    )
    return out.model_dump(mode="json")


@router.get("/consultas/{consulta_id}")
def api_obtem_consulta(
    consulta_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> dict[str, Any]:
    return _ok(_dump(ConsultaOut, consultas.obtem_consulta(db, consulta_id)))


@router.put("/consultas/{consulta_id}")
def api_atualiza_consulta(
    consulta_id: str,
    payload: ConsultaUpdateIn,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    c = consultas.atualiza_consulta(db, consulta_id, **payload.model_dump(exclude_unset=True))
    return _ok(_dump(ConsultaOut, c), "Consulta atualizada com sucesso")


@router.patch("/consultas/{consulta_id}/cancelar")
def api_cancela_consulta(
    consulta_id: str,
    payload: CancelarIn,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    c = consultas.cancela_consulta(db, consulta_id, payload.motivo)
    return _ok(_dump(ConsultaOut, c), "Consulta cancelada com sucesso")


@router.patch("/consultas/{consulta_id}/concluir")
def api_conclui_consulta(
    consulta_id: str,
    payload: ConcluirIn,
    db: Database = Depends(get_db),
    user: Usuario = Depends(get_current_user),
) -> dict[str, Any]:
    c = consultas.conclui_consulta(db, consulta_id, payload.relatorio, payload.evolucao)
    return _ok(_dump(ConsultaOut, c), "Consulta concluída com sucesso")


@router.delete("/consultas/{consulta_id}", status_code=status.HTTP_204_NO_CONTENT)
def api_exclui_consulta(
    consulta_id: str, db: Database = Depends(get_db), user: Usuario = Depends(get_current_user)
) -> Response:
    consultas.exclui_consulta(db, consulta_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Tratamento de erros

async def _domain_error_handler(request: Request, exc: DomainError | StoreError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(
        status_code=exc.status_code, content={"success": False, "error": exc.message}, headers=headers
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": "Dados inválidos", "details": jsonable_encoder(exc.errors())},
    )


async def _unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Erro inesperado em %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Erro interno do servidor"})


# App

def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)
    db = database or Database(settings.database_url, echo=settings.db_echo)

    app = FastAPI(title="Fisio Clínica API", version="1.0.0")
    app.state.settings = settings
    app.state.db = db

    @app.on_event("startup")
    def startup() -> None:
        # Cria tabelas e, se configurado, o seed base (idempotente)
        db.open()
        if settings.seed_on_startup:
            seed_base(db)

    @app.on_event("shutdown")
    def shutdown() -> None:
        db.close()

    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(StoreError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unexpected_error_handler)

    app.include_router(router)
    return app


app = create_app()


def serve(host: str = "127.0.0.1", port: int = 8000) -> None:
    """Sobe a API com uvicorn (`fisio-api`)."""
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    serve()
