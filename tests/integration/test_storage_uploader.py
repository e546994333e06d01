# tests/integration/test_storage_uploader.py
import httpx
import pytest

from recuperacao.domain.setor.errors import ErroUpload
from recuperacao.infrastructure.config import Settings
from recuperacao.infrastructure.storage_uploader import StorageUploader


def _settings(**kwargs: object) -> Settings:
    defaults: dict[str, object] = {
        "duckdb_path": ":memory:",
        "storage_url": "https://storage.test",
        "storage_bucket": "sector_photos",
        "storage_api_key": "chave-teste",
        "upload_timeout": 5.0,
        "submit_max_tentativas": 15,
        "submit_atraso_base": 0.5,
        "service_types_cache_ttl": 600.0,
        "debug": False,
    }
    defaults.update(kwargs)
    return Settings(**defaults)  # type: ignore[arg-type]


def _uploader(handler, **kwargs: object) -> StorageUploader:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return StorageUploader(_settings(**kwargs), client=client)


def test_upload_envia_para_o_bucket_e_devolve_url_publica():
    recebidos: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        recebidos.append(request)
        return httpx.Response(200, json={"Key": "ok"})

    url = _uploader(handler).upload(b"jpeg", "foto.jpg", "setores/T-100")

    assert len(recebidos) == 1
    request = recebidos[0]
    assert request.method == "POST"
    assert request.url.path.startswith("/storage/v1/object/sector_photos/setores/T-100/")
    assert request.url.path.endswith("_foto.jpg")
    assert request.headers["Authorization"] == "Bearer chave-teste"
    assert request.headers["Content-Type"] == "image/jpeg"
    assert request.content == b"jpeg"

    caminho = request.url.path.removeprefix("/storage/v1/object/sector_photos/")
    assert url == f"https://storage.test/storage/v1/object/public/sector_photos/{caminho}"


def test_nomes_iguais_nao_sobrescrevem():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200)

    uploader = _uploader(handler)
    assert uploader.upload(b"a", "foto.jpg", "p") != uploader.upload(b"b", "foto.jpg", "p")


def test_sem_chave_nao_envia_authorization():
    headers: list[httpx.Headers] = []

    def handler(request: httpx.Request) -> httpx.Response:
        headers.append(request.headers)
        return httpx.Response(200)

    _uploader(handler, storage_api_key="").upload(b"a", "foto.png", "p")
    assert "Authorization" not in headers[0]


def test_resposta_de_erro_vira_erro_de_upload():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "bucket not found"})

    with pytest.raises(ErroUpload, match="foto.jpg"):
        _uploader(handler).upload(b"jpeg", "foto.jpg", "p")


def test_timeout_vira_erro_de_upload():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("lento demais", request=request)

    with pytest.raises(ErroUpload, match="Tempo esgotado"):
        _uploader(handler).upload(b"jpeg", "foto.jpg", "p")


def test_arquivo_vazio_recusado():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("nao deveria enviar")

    with pytest.raises(ErroUpload):
        _uploader(handler).upload(b"", "foto.jpg", "p")
