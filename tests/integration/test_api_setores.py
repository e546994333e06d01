# tests/integration/test_api_setores.py
from fastapi.testclient import TestClient

AUTH = {"X-User-Id": "user-1", "X-User-Email": "operador@example.com"}


def _peritagem(**kwargs: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "kind": "entry",
        "tag_number": "T-100",
        "nota_entrada": "NF-1",
        "data_entrada": "2024-01-01",
        "tag_photo_url": "https://storage.test/T-100/tag.jpg",
        "servicos": [
            {
                "id": "st-solda",
                "nome": "Solda",
                "selecionado": True,
                "quantidade": 2,
                "fotos": [{"url": "https://storage.test/T-100/antes.jpg", "tipo": "before"}],
            }
        ],
    }
    payload.update(kwargs)
    return payload


def _criar(client: TestClient, **kwargs: object) -> str:
    response = client.post("/api/submissoes", json=_peritagem(**kwargs), headers=AUTH)
    assert response.status_code == 200, response.text
    return str(response.json()["setor_id"])


def test_submissao_cria_setor(client: TestClient) -> None:
    response = client.post("/api/submissoes", json=_peritagem(), headers=AUTH)
    assert response.status_code == 200
    data = response.json()
    assert data["sucesso"] is True
    assert data["erro"] is None
    assert data["setor"]["status"] == "emExecucao"
    assert data["setor"]["cycle_count"] == 1
    assert data["setor"]["ciclo"]["data_entrada"] == "2024-01-01"


def test_submissao_sem_usuario_retorna_401(client: TestClient) -> None:
    response = client.post("/api/submissoes", json=_peritagem())
    assert response.status_code == 401
    assert response.json()["erro"] == "Não autenticado. Faça login para continuar."


def test_submissao_invalida_retorna_422_com_mensagem(client: TestClient) -> None:
    response = client.post("/api/submissoes", json=_peritagem(nota_entrada=""), headers=AUTH)
    assert response.status_code == 422
    assert response.json()["erro"] == "Nota fiscal de entrada é obrigatória"


def test_kind_desconhecido_retorna_422(client: TestClient) -> None:
    response = client.post("/api/submissoes", json=_peritagem(kind="report"), headers=AUTH)
    assert response.status_code == 422


def test_listar_e_buscar_setor(client: TestClient) -> None:
    setor_id = _criar(client)

    lista = client.get("/api/setores").json()
    assert [s["id"] for s in lista] == [setor_id]

    response = client.get(f"/api/setores/{setor_id}")
    assert response.status_code == 200
    assert response.json()["tag_number"] == "T-100"


def test_setor_inexistente_retorna_404(client: TestClient) -> None:
    assert client.get("/api/setores/nao-existe").status_code == 404


def test_busca_por_tag_e_historico(client: TestClient) -> None:
    _criar(client)
    _criar(client, nota_entrada="NF-2")

    por_tag = client.get("/api/setores/tag/t-10").json()
    assert sorted(s["cycle_count"] for s in por_tag) == [1, 2]

    historico = client.get("/api/setores/tag/T-100/historico").json()
    assert [c["nota_entrada"] for c in historico] == ["NF-1", "NF-2"]


def test_fluxo_completo_ate_concluido(client: TestClient) -> None:
    setor_id = _criar(client)

    producao = client.post(f"/api/setores/{setor_id}/producao", headers=AUTH)
    assert producao.status_code == 200
    assert producao.json()["setor"]["status"] == "checagemFinalPendente"

    saida = {
        "kind": "exit",
        "nota_saida": "NF-S1",
        "servicos": [
            {
                "id": "st-solda",
                "selecionado": True,
                "concluido": True,
                "fotos": [{"url": "https://storage.test/T-100/depois.jpg", "tipo": "after"}],
            }
        ],
    }
    response = client.post(f"/api/setores/{setor_id}/submissoes", json=saida, headers=AUTH)
    assert response.status_code == 200, response.text
    setor = response.json()["setor"]
    assert setor["status"] == "concluido"
    assert setor["desfecho"] == "Recuperado"


def test_producao_sem_usuario_retorna_401(client: TestClient) -> None:
    setor_id = _criar(client)
    assert client.post(f"/api/setores/{setor_id}/producao").status_code == 401


def test_producao_fora_de_execucao_retorna_409(client: TestClient) -> None:
    setor_id = _criar(client)
    client.post(f"/api/setores/{setor_id}/producao", headers=AUTH)
    assert client.post(f"/api/setores/{setor_id}/producao", headers=AUTH).status_code == 409


def test_validacao_de_sucata_fora_de_sucata_pendente_retorna_409(client: TestClient) -> None:
    setor_id = _criar(client)
    response = client.post(
        f"/api/setores/{setor_id}/submissoes",
        json={"kind": "scrapValidate", "nota_retorno_sucata": "NF-R1"},
        headers=AUTH,
    )
    assert response.status_code == 409
    assert response.json()["sucesso"] is False


def test_sucata_na_entrada_com_upload(client: TestClient, uploader) -> None:
    payload = {
        "kind": "scrapIntake",
        "tag_number": "T-500",
        "nota_entrada": "NF-5",
        "observacoes_sucata": "Corpo trincado",
        "fotos_sucata": [{"conteudo": "anBlZw==", "tipo": "scrap", "nome_arquivo": "sucata.jpg"}],
    }
    response = client.post("/api/submissoes", json=payload, headers=AUTH)

    assert response.status_code == 200, response.text
    setor = response.json()["setor"]
    assert setor["status"] == "sucateadoPendente"
    assert len(setor["ciclo"]["fotos_sucata"]) == 1
    assert uploader.enviados == [("setores/T-500/sucata", "sucata.jpg")]


def test_remover_setor(client: TestClient) -> None:
    setor_id = _criar(client)
    assert client.delete(f"/api/setores/{setor_id}").status_code == 401
    assert client.delete(f"/api/setores/{setor_id}", headers=AUTH).status_code == 204
    assert client.get(f"/api/setores/{setor_id}").status_code == 404
    assert client.delete(f"/api/setores/{setor_id}", headers=AUTH).status_code == 404


def test_catalogo_de_servicos_ordenado(client: TestClient) -> None:
    response = client.get("/api/servicos")
    assert response.status_code == 200
    servicos = response.json()
    assert [s["nome"] for s in servicos] == ["Pintura", "Solda", "Usinagem"]
    assert all(s["selecionado"] is False and s["quantidade"] == 1 for s in servicos)


def test_catalogo_vazio_retorna_503(client: TestClient, test_db) -> None:
    test_db.execute("DELETE FROM service_types")
    assert client.get("/api/servicos").status_code == 503


def test_headers_seguranca_presentes(client: TestClient) -> None:
    response = client.get("/api/setores")
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"
