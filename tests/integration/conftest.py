# tests/integration/conftest.py
from __future__ import annotations

from collections.abc import Generator

import duckdb
import pytest
from fastapi.testclient import TestClient

from recuperacao.application.services.foto_service import FotoService
from recuperacao.application.services.retry import PoliticaRetry
from recuperacao.application.services.status_service import StatusService
from recuperacao.application.services.submissao_service import SubmissaoService
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.duckdb_connection import aplicar_schema
from recuperacao.infrastructure.repositories.duckdb_foto_repo import DuckDBFotoRepo
from recuperacao.infrastructure.repositories.duckdb_setor_repo import DuckDBSetorRepo

SERVICE_TYPES = [
    ("st-usinagem", "Usinagem"),
    ("st-solda", "Solda"),
    ("st-pintura", "Pintura"),
]


class UploaderFalso:
    """Upload em memoria: devolve uma URL deterministica por arquivo."""

    def __init__(self) -> None:
        self.enviados: list[tuple[str, str]] = []

    def upload(self, conteudo: bytes, nome_arquivo: str, pasta: str) -> str:
        self.enviados.append((pasta, nome_arquivo))
        return f"https://storage.test/{pasta}/{len(self.enviados)}_{nome_arquivo}"


@pytest.fixture
def test_db() -> Generator[duckdb.DuckDBPyConnection, None, None]:
    """DuckDB in-memory novo por teste, com schema e catalogo de servicos."""
    conn = duckdb.connect(":memory:")
    aplicar_schema(conn)
    conn.executemany("INSERT INTO service_types (id, name) VALUES (?, ?)", SERVICE_TYPES)
    yield conn
    conn.close()


@pytest.fixture
def usuario() -> Usuario:
    return Usuario(id="user-1", email="operador@example.com")


@pytest.fixture
def repo(test_db: duckdb.DuckDBPyConnection) -> DuckDBSetorRepo:
    return DuckDBSetorRepo(test_db)


@pytest.fixture
def uploader() -> UploaderFalso:
    return UploaderFalso()


@pytest.fixture
def submissao(
    test_db: duckdb.DuckDBPyConnection,
    repo: DuckDBSetorRepo,
    uploader: UploaderFalso,
) -> SubmissaoService:
    return SubmissaoService(
        setor_repo=repo,
        status_service=StatusService(repo),
        foto_service=FotoService(uploader),
        foto_repo=DuckDBFotoRepo(test_db),
        politica=PoliticaRetry(max_tentativas=3, atraso_base=0),
        dormir=lambda _s: None,
    )


@pytest.fixture
def client(
    test_db: duckdb.DuckDBPyConnection,
    uploader: UploaderFalso,
) -> Generator[TestClient, None, None]:
    """TestClient do FastAPI com DuckDB in-memory e upload falso injetados."""
    from recuperacao.infrastructure import duckdb_connection
    duckdb_connection.set_connection(test_db)

    from recuperacao.interfaces.api import dependencies
    dependencies.get_servico_tipo_service.cache_clear()

    from recuperacao.interfaces.api.main import app
    app.dependency_overrides[dependencies.get_uploader] = lambda: uploader
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
