from __future__ import annotations

import threading

from conftest import em
from fisio_backend.consultas import cria_consulta, lista_consultas
from fisio_backend.errors import ConflictError


class TestAgendamentoConcorrente:
    def test_mesmo_horario_somente_um_vence(self, db, novo_paciente, fisioterapeuta):
        pacientes = [novo_paciente() for _ in range(6)]
        barreira = threading.Barrier(len(pacientes))
        resultados: list[str] = []
        lock = threading.Lock()

        def agenda(paciente_id: str) -> None:
            barreira.wait()
            try:
                cria_consulta(db, paciente_id, fisioterapeuta.id, em("10:00"))
                desfecho = "ok"
            except ConflictError:
                desfecho = "conflito"
            with lock:
                resultados.append(desfecho)

        threads = [threading.Thread(target=agenda, args=(p.id,)) for p in pacientes]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(resultados) == ["conflito"] * 5 + ["ok"]
        assert lista_consultas(db).total == 1
