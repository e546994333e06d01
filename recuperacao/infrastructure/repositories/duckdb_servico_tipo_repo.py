# recuperacao/infrastructure/repositories/duckdb_servico_tipo_repo.py
from __future__ import annotations

import duckdb

from recuperacao.domain.setor.entities import Servico


class DuckDBServicoTipoRepo:
    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def listar(self) -> list[Servico]:
        """Catalogo ordenado por nome, como modelos nao selecionados (quantidade 1)."""
        with self._conn.cursor() as cur:
            rows = cur.execute("SELECT id, name FROM service_types ORDER BY name").fetchall()
        return [self._hidratar(r) for r in rows]

    @staticmethod
    def _hidratar(row: tuple[object, ...]) -> Servico:
        return Servico(id=str(row[0]), nome=str(row[1] or ""), selecionado=False, quantidade=1)
