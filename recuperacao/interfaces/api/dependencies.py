# recuperacao/interfaces/api/dependencies.py
from functools import lru_cache

from fastapi import Depends, Header

from recuperacao.application.services.foto_service import FotoService
from recuperacao.application.services.retry import PoliticaRetry
from recuperacao.application.services.servico_tipo_service import ServicoTipoService
from recuperacao.application.services.status_service import StatusService
from recuperacao.application.services.submissao_service import SubmissaoService
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.config import get_settings
from recuperacao.infrastructure.duckdb_connection import get_connection
from recuperacao.infrastructure.repositories.duckdb_foto_repo import DuckDBFotoRepo
from recuperacao.infrastructure.repositories.duckdb_servico_tipo_repo import DuckDBServicoTipoRepo
from recuperacao.infrastructure.repositories.duckdb_setor_repo import DuckDBSetorRepo
from recuperacao.infrastructure.storage_uploader import PhotoUploader, StorageUploader


def get_usuario(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Usuario | None:
    """Principal repassado pelo gateway de autenticacao. Ausente = nao autenticado."""
    if not x_user_id or not x_user_id.strip():
        return None
    return Usuario(id=x_user_id.strip(), email=x_user_email)


def get_setor_repo() -> DuckDBSetorRepo:
    return DuckDBSetorRepo(get_connection())


def get_status_service() -> StatusService:
    return StatusService(status_repo=DuckDBSetorRepo(get_connection()))


def get_uploader() -> PhotoUploader:
    return StorageUploader(get_settings())


def get_submissao_service(
    uploader: PhotoUploader = Depends(get_uploader),  # noqa: B008
) -> SubmissaoService:
    conn = get_connection()
    settings = get_settings()
    repo = DuckDBSetorRepo(conn)
    return SubmissaoService(
        setor_repo=repo,
        status_service=StatusService(status_repo=repo),
        foto_service=FotoService(uploader),
        foto_repo=DuckDBFotoRepo(conn),
        politica=PoliticaRetry(settings.submit_max_tentativas, settings.submit_atraso_base),
    )


@lru_cache(maxsize=1)
def get_servico_tipo_service() -> ServicoTipoService:
    """Instancia unica: o cache do catalogo vive nela."""
    return ServicoTipoService(
        repo=DuckDBServicoTipoRepo(get_connection()),
        ttl=get_settings().service_types_cache_ttl,
    )
