# recuperacao/infrastructure/storage_uploader.py
#
# Upload de fotos para um bucket de storage via HTTP.
#
# Design decisions:
#   - Object API in the Supabase storage shape:
#       POST {base}/storage/v1/object/{bucket}/{pasta}/{arquivo}
#     returns nothing useful; the stable public URL is derived from the path.
#   - Object names get a uuid prefix, so resubmitting the same file name never
#     overwrites a previous asset.
#   - Every transport error, timeout or non-2xx response becomes ErroUpload.
#     The submission aborts: a photo without a stored URL cannot be persisted.
from __future__ import annotations

import mimetypes
import uuid
from typing import Protocol

import httpx

from recuperacao.domain.setor.errors import ErroUpload
from recuperacao.infrastructure.config import Settings, get_settings
from recuperacao.infrastructure.log import log


class PhotoUploader(Protocol):
    def upload(self, conteudo: bytes, nome_arquivo: str, pasta: str) -> str: ...


class StorageUploader:
    def __init__(
        self,
        settings: Settings | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client or httpx.Client(timeout=self._settings.upload_timeout)

    def upload(self, conteudo: bytes, nome_arquivo: str, pasta: str) -> str:
        if not conteudo:
            raise ErroUpload(f"Arquivo vazio: {nome_arquivo}")

        caminho = f"{pasta.strip('/')}/{uuid.uuid4().hex}_{nome_arquivo}"
        base = self._settings.storage_url
        bucket = self._settings.storage_bucket
        content_type = mimetypes.guess_type(nome_arquivo)[0] or "application/octet-stream"
        headers = {"Content-Type": content_type, "x-upsert": "false"}
        if self._settings.storage_api_key:
            headers["Authorization"] = f"Bearer {self._settings.storage_api_key}"

        try:
            response = self._client.post(
                f"{base}/storage/v1/object/{bucket}/{caminho}",
                content=conteudo,
                headers=headers,
                timeout=self._settings.upload_timeout,
            )
            response.raise_for_status()
        except httpx.TimeoutException as err:
            log(f"Timeout no upload de {nome_arquivo}: {err}")
            raise ErroUpload(f"Tempo esgotado ao enviar {nome_arquivo}") from err
        except httpx.HTTPError as err:
            log(f"Erro no upload de {nome_arquivo}: {err}")
            raise ErroUpload(f"Erro ao enviar {nome_arquivo}") from err

        return f"{base}/storage/v1/object/public/{bucket}/{caminho}"
