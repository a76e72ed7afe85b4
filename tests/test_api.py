from __future__ import annotations

import pytest

from conftest import SENHA
from fisio_backend.auth_security import decode_token


@pytest.fixture
def ids(client, auth_headers):
    """Cadastra um paciente e um fisioterapeuta pela API."""
    p = client.post(
        "/api/pacientes",
        json={"nome": "Fernanda Luz", "cpf": "55566677788", "telefone": "11955554444", "data_nascimento": "1988-07-21"},
        headers=auth_headers,
    )
    f = client.post(
        "/api/fisioterapeutas",
        json={
            "nome": "Gustavo Pires",
            "email": "gustavo@clinica.test",
            "senha": SENHA,
            "telefone": "11944443333",
            "crefito": "CREFITO-3/77777-F",
            "especialidade": "Esportiva",
        },
        headers=auth_headers,
    )
    assert p.status_code == 201 and f.status_code == 201
    return p.json()["data"]["id"], f.json()["data"]["id"]


class TestAuth:
    def test_login_e_me(self, client, auth_headers):
        resp = client.post("/api/auth/login", data={"username": "recepcao@clinica.test", "password": SENHA})
        assert resp.status_code == 200
        token = resp.json()["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["data"]["papel"] == "RECEPCIONISTA"

    def test_token_carrega_papel(self, settings, auth_headers):
        token = auth_headers["Authorization"].split()[1]
        payload = decode_token(settings, token)
        assert payload["papel"] == "RECEPCIONISTA"
        assert payload["nome"] == "Recepção Teste"

    def test_login_com_senha_errada(self, client, auth_headers):
        resp = client.post("/api/auth/login", data={"username": "recepcao@clinica.test", "password": "errada"})
        assert resp.status_code == 401
        assert resp.json() == {"success": False, "error": "Credenciais inválidas"}

    def test_rotas_exigem_token(self, client):
        assert client.get("/api/consultas").status_code == 401

    def test_token_invalido(self, client):
        resp = client.get("/api/pacientes", headers={"Authorization": "Bearer nao-e-um-jwt"})
        assert resp.status_code == 401
        assert resp.json()["success"] is False

    def test_register_fisioterapeuta_exige_crefito(self, client):
        resp = client.post(
            "/api/auth/register",
            json={
                "nome": "Sem Registro",
                "email": "sem@clinica.test",
                "senha": SENHA,
                "telefone": "11900001111",
                "papel": "FISIOTERAPEUTA",
            },
        )
        assert resp.status_code == 400
        assert "CREFITO" in resp.json()["error"]


class TestConsultasApi:
    def test_fluxo_agendar_confirmar_concluir(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        resp = client.post(
            "/api/consultas",
            json={"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": "2030-03-10T09:00:00"},
            headers=auth_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        consulta = body["data"]
        assert consulta["status"] == "AGENDADA"
        assert consulta["paciente"]["nome"] == "Fernanda Luz"
        assert consulta["fisioterapeuta"]["usuario"]["nome"] == "Gustavo Pires"

        url = f"/api/consultas/{consulta['id']}"
        resp = client.put(url, json={"status": "CONFIRMADA"}, headers=auth_headers)
        assert resp.json()["data"]["status"] == "CONFIRMADA"

        resp = client.put(url, json={"data_hora": "2030-03-10T15:00:00"}, headers=auth_headers)
        assert resp.status_code == 400

        resp = client.patch(f"{url}/concluir", json={"relatorio": "Sessão ok", "evolucao": "Sem dor"}, headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "CONCLUIDA"

        resp = client.patch(f"{url}/cancelar", json={"motivo": "Engano"}, headers=auth_headers)
        assert resp.status_code == 400

    def test_conflito_retorna_409(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        payload = {"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": "2030-03-10T09:00:00"}
        assert client.post("/api/consultas", json=payload, headers=auth_headers).status_code == 201

        payload["data_hora"] = "2030-03-10T09:20:00"
        resp = client.post("/api/consultas", json=payload, headers=auth_headers)
        assert resp.status_code == 409
        assert resp.json()["success"] is False

    def test_inexistente_retorna_404(self, client, auth_headers):
        resp = client.get("/api/consultas/nao-existe", headers=auth_headers)
        assert resp.status_code == 404
        assert resp.json() == {"success": False, "error": "Consulta não encontrada"}

    def test_payload_invalido_retorna_400(self, client, auth_headers):
        resp = client.post("/api/consultas", json={"paciente_id": "x"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Dados inválidos"

    def test_listagem_paginada(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        for hora in ("08:00", "10:00", "12:00"):
            client.post(
                "/api/consultas",
                json={"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": f"2030-03-10T{hora}:00"},
                headers=auth_headers,
            )

        resp = client.get("/api/consultas", params={"page": 2, "limit": 2}, headers=auth_headers)
        body = resp.json()
        assert body["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
        assert [c["data_hora"] for c in body["data"]] == ["2030-03-10T12:00:00"]

    def test_exclui_retorna_204(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        resp = client.post(
            "/api/consultas",
            json={"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": "2030-03-10T09:00:00"},
            headers=auth_headers,
        )
        consulta_id = resp.json()["data"]["id"]

        assert client.delete(f"/api/consultas/{consulta_id}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/consultas/{consulta_id}", headers=auth_headers).status_code == 404


class TestDisponibilidadeEAgendaApi:
    def test_disponiveis(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        client.post(
            "/api/consultas",
            json={"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": "2030-03-10T09:00:00"},
            headers=auth_headers,
        )

        ocupado = client.get(
            "/api/fisioterapeutas/disponiveis", params={"data_hora": "2030-03-10T09:30:00"}, headers=auth_headers
        ).json()
        assert ocupado["total"] == 0

        livre = client.get(
            "/api/fisioterapeutas/disponiveis", params={"data_hora": "2030-03-10T11:00:00"}, headers=auth_headers
        ).json()
        assert [f["id"] for f in livre["data"]] == [fisio_id]
        assert livre["dataHora"] == "2030-03-10T11:00:00"

    def test_agenda_do_fisioterapeuta(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        client.post(
            "/api/consultas",
            json={"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": "2030-03-10T09:00:00"},
            headers=auth_headers,
        )

        resp = client.get(
            f"/api/consultas/agenda/fisioterapeuta/{fisio_id}",
            params={"data_inicio": "2030-03-10T00:00:00", "data_fim": "2030-03-10T23:59:59"},
            headers=auth_headers,
        )
        data = resp.json()["data"]
        assert data["total"] == 1
        assert data["periodo"]["inicio"] == "2030-03-10T00:00:00"

    def test_agenda_periodo_invertido(self, client, auth_headers, ids):
        paciente_id, _ = ids
        resp = client.get(
            f"/api/consultas/agenda/paciente/{paciente_id}",
            params={"data_inicio": "2030-03-11T00:00:00", "data_fim": "2030-03-10T00:00:00"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["consultas"] == []


class TestCadastrosApi:
    def test_paciente_cpf_duplicado(self, client, auth_headers, ids):
        resp = client.post(
            "/api/pacientes",
            json={"nome": "Outra Pessoa", "cpf": "55566677788", "telefone": "11955554444", "data_nascimento": "1990-01-01"},
            headers=auth_headers,
        )
        assert resp.status_code == 409

    def test_exclusao_de_fisioterapeuta_bloqueada(self, client, auth_headers, ids):
        paciente_id, fisio_id = ids
        client.post(
            "/api/consultas",
            json={"paciente_id": paciente_id, "fisioterapeuta_id": fisio_id, "data_hora": "2030-03-10T09:00:00"},
            headers=auth_headers,
        )

        resp = client.delete(f"/api/fisioterapeutas/{fisio_id}", headers=auth_headers)
        assert resp.status_code == 400

    def test_alterna_status_do_paciente(self, client, auth_headers, ids):
        paciente_id, _ = ids
        resp = client.patch(f"/api/pacientes/{paciente_id}/status", headers=auth_headers)
        assert resp.json()["data"]["ativo"] is False
        assert resp.json()["message"] == "Paciente desativado com sucesso"
