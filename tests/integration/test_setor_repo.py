# tests/integration/test_setor_repo.py
import json
from datetime import date, datetime, timedelta

import duckdb
import pytest

from recuperacao.domain.setor.dados import DadosSetor, ServicoEscrita
from recuperacao.domain.setor.entities import Foto
from recuperacao.domain.setor.enums import Desfecho, StatusSetor, TipoFoto
from recuperacao.domain.setor.errors import CicloNaoEncontrado, SetorNaoEncontrado, TransicaoInvalida
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.repositories.duckdb_setor_repo import DuckDBSetorRepo

TAG_URL = "https://storage.test/T-100/tag.jpg"


def _foto(url: str, tipo: TipoFoto = TipoFoto.BEFORE, servico_id: str | None = "st-solda") -> Foto:
    return Foto(id=url, url=url, tipo=tipo, servico_id=servico_id)


def _dados(**kwargs: object) -> DadosSetor:
    foto = _foto("https://storage.test/T-100/b1.jpg")
    defaults: dict[str, object] = {
        "status": StatusSetor.EM_EXECUCAO,
        "desfecho": Desfecho.EM_ANDAMENTO,
        "atualizado_em": datetime(2024, 1, 1, 8, 0),
        "cycle_count": 1,
        "tag_number": "T-100",
        "tag_photo_url": TAG_URL,
        "nota_entrada": "NF-1",
        "data_entrada": date(2024, 1, 1),
        "servicos": (ServicoEscrita(id="st-solda", selecionado=True, quantidade=2, fotos=(foto,)),),
        "fotos_antes": (foto,),
    }
    defaults.update(kwargs)
    return DadosSetor(**defaults)  # type: ignore[arg-type]


def _edicao(**kwargs: object) -> DadosSetor:
    defaults: dict[str, object] = {
        "status": StatusSetor.EM_EXECUCAO,
        "desfecho": Desfecho.EM_ANDAMENTO,
        "atualizado_em": datetime(2024, 1, 2, 8, 0),
    }
    defaults.update(kwargs)
    return DadosSetor(**defaults)  # type: ignore[arg-type]


def _contar(conn: duckdb.DuckDBPyConnection, sql: str, params: list[object] | None = None) -> int:
    row = conn.execute(sql, params or []).fetchone()
    return int(row[0]) if row else 0


# ---------- adicionar ----------


def test_adicionar_cria_setor_com_um_ciclo(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    resultado = repo.adicionar(_dados(), usuario)
    setor = resultado.valor

    assert resultado.limpo
    assert setor.status == StatusSetor.EM_EXECUCAO
    assert setor.cycle_count == 1
    assert setor.tag_photo_url == TAG_URL
    assert setor.ciclo is not None
    assert setor.ciclo.nota_entrada == "NF-1"
    assert _contar(test_db, "SELECT count(*) FROM cycles WHERE sector_id = ?", [setor.id]) == 1


def test_adicionar_grava_servicos_nas_duas_tabelas(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    setor = repo.adicionar(_dados(), usuario).valor

    solda = next(s for s in setor.servicos if s.id == "st-solda")
    assert solda.selecionado and solda.quantidade == 2
    assert [f.url for f in solda.fotos] == ["https://storage.test/T-100/b1.jpg"]
    assert len(setor.servicos) == 3
    assert _contar(test_db, "SELECT count(*) FROM sector_services WHERE sector_id = ?", [setor.id]) == 1


def test_fotos_levam_metadata(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    setor = repo.adicionar(_dados(), usuario).valor
    rows = test_db.execute("SELECT type, metadata FROM photos ORDER BY type").fetchall()

    assert [r[0] for r in rows] == ["before", "tag"]
    metadata = json.loads(rows[0][1])
    assert metadata == {
        "sector_id": setor.id,
        "service_id": "st-solda",
        "stage": "peritagem",
        "type": "before",
    }


def test_inserir_devolve_so_o_id(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    resultado = repo.inserir(_dados(), usuario)

    assert isinstance(resultado.valor, str)
    assert resultado.limpo
    assert _contar(test_db, "SELECT count(*) FROM cycles WHERE sector_id = ?", [resultado.valor]) == 1


def test_adicionar_exige_tag_e_nota(repo: DuckDBSetorRepo, usuario: Usuario):
    with pytest.raises(ValueError):
        repo.adicionar(_dados(nota_entrada=None), usuario)


def test_colisao_de_cycle_count_levanta_constraint(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    repo.adicionar(_dados(), usuario)
    with pytest.raises(duckdb.ConstraintException):
        repo.adicionar(_dados(), usuario)
    assert _contar(test_db, "SELECT count(*) FROM sectors") == 1


class _CicloQuebrado(DuckDBSetorRepo):
    def _inserir_ciclo(self, *args: object, **kwargs: object) -> None:
        raise duckdb.IOException("disco cheio")


def test_falha_no_ciclo_remove_o_setor(test_db, usuario: Usuario):
    with pytest.raises(duckdb.IOException):
        _CicloQuebrado(test_db).adicionar(_dados(), usuario)
    assert _contar(test_db, "SELECT count(*) FROM sectors") == 0


# ---------- leitura ----------


def test_buscar_por_id_inexistente(repo: DuckDBSetorRepo):
    assert repo.buscar_por_id("nao-existe") is None


def _setor_sem_ciclo(conn: duckdb.DuckDBPyConnection, setor_id: str, tag: str, status: str) -> None:
    conn.execute(
        """INSERT INTO sectors (id, tag_number, cycle_count, current_status)
           VALUES (?, ?, 1, ?)""",
        [setor_id, tag, status],
    )


def test_listar_sintetiza_setor_sem_ciclo_em_andamento(repo: DuckDBSetorRepo, test_db):
    _setor_sem_ciclo(test_db, "s-parcial", "T-200", "peritagemPendente")
    _setor_sem_ciclo(test_db, "s-perdido", "T-300", "concluido")

    setores = repo.listar_todos()

    assert [s.id for s in setores] == ["s-parcial"]
    assert setores[0].parcial
    assert repo.buscar_por_id("s-parcial") is not None
    assert repo.buscar_por_id("s-perdido") is None


def test_buscar_por_tag_parcial_sem_maiusculas(repo: DuckDBSetorRepo, usuario: Usuario):
    repo.adicionar(_dados(), usuario)
    repo.adicionar(_dados(tag_number="X-9"), usuario)
    assert [s.tag_number for s in repo.buscar_por_tag("t-1")] == ["T-100"]


def test_historico_e_ciclos_anteriores(repo: DuckDBSetorRepo, usuario: Usuario):
    primeiro = repo.adicionar(_dados(), usuario).valor
    segundo = repo.adicionar(
        _dados(cycle_count=2, nota_entrada="NF-2", atualizado_em=datetime(2024, 3, 1, 8, 0)),
        usuario,
    ).valor

    assert repo.maior_cycle_count("t-100") == 2
    assert [c.nota_entrada for c in segundo.ciclos_anteriores] == ["NF-1"]
    assert segundo.ciclos_anteriores[0].setor_id == primeiro.id
    assert [c.nota_entrada for c in repo.historico_por_tag("t-100")] == ["NF-1", "NF-2"]
    assert primeiro.ciclos_anteriores == ()


def test_maior_cycle_count_sem_historico(repo: DuckDBSetorRepo):
    assert repo.maior_cycle_count("T-NOVA") == 0


# ---------- atualizar ----------


def test_atualizar_preserva_campos_nao_informados(repo: DuckDBSetorRepo, usuario: Usuario):
    setor = repo.adicionar(_dados(), usuario).valor
    atualizado = repo.atualizar(setor.id, _edicao(observacoes_entrada="Eixo empenado"), usuario).valor

    assert atualizado.ciclo is not None
    assert atualizado.ciclo.observacoes_entrada == "Eixo empenado"
    assert atualizado.ciclo.nota_entrada == "NF-1"
    assert atualizado.cycle_count == 1


def test_atualizar_duas_vezes_nao_duplica_fotos(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    setor = repo.adicionar(_dados(), usuario).valor
    novas = (_foto("https://storage.test/T-100/b1.jpg"), _foto("https://storage.test/T-100/b2.jpg"))

    repo.atualizar(setor.id, _edicao(fotos_antes=novas), usuario)
    repo.atualizar(setor.id, _edicao(fotos_antes=novas), usuario)

    assert _contar(test_db, "SELECT count(*) FROM photos WHERE type = 'before'") == 2
    assert _contar(test_db, "SELECT count(*) FROM photos WHERE type = 'tag'") == 1


def test_selecao_de_servicos_por_diferenca(repo: DuckDBSetorRepo, usuario: Usuario):
    setor = repo.adicionar(_dados(), usuario).valor

    # checagem marca a solda como concluida
    repo.atualizar(
        setor.id,
        _edicao(servicos=(ServicoEscrita(id="st-solda", selecionado=True, concluido=True),)),
        usuario,
    )
    # edicao posterior inclui pintura e nao reenvia o concluido da solda
    atualizado = repo.atualizar(
        setor.id,
        _edicao(
            servicos=(
                ServicoEscrita(id="st-solda", selecionado=True, quantidade=3),
                ServicoEscrita(id="st-pintura", selecionado=True, quantidade=1),
            )
        ),
        usuario,
    ).valor

    por_id = {s.id: s for s in atualizado.servicos}
    assert por_id["st-solda"].concluido
    assert por_id["st-solda"].quantidade == 3
    assert por_id["st-pintura"].selecionado

    removido = repo.atualizar(
        setor.id,
        _edicao(servicos=(ServicoEscrita(id="st-pintura", selecionado=False),)),
        usuario,
    ).valor
    por_id = {s.id: s for s in removido.servicos}
    assert not por_id["st-pintura"].selecionado
    assert por_id["st-solda"].selecionado


def test_atualizar_troca_tag(repo: DuckDBSetorRepo, usuario: Usuario):
    setor = repo.adicionar(_dados(), usuario).valor
    atualizado = repo.atualizar(setor.id, _edicao(tag_number="T-101"), usuario).valor
    assert atualizado.tag_number == "T-101"


def test_atualizar_setor_terminal_recusado(repo: DuckDBSetorRepo, usuario: Usuario):
    setor = repo.adicionar(_dados(status=StatusSetor.CHECAGEM_FINAL_PENDENTE), usuario).valor
    repo.atualizar(setor.id, _edicao(status=StatusSetor.CONCLUIDO, desfecho=Desfecho.RECUPERADO), usuario)

    with pytest.raises(TransicaoInvalida):
        repo.atualizar(setor.id, _edicao(status=StatusSetor.CONCLUIDO), usuario)


def test_atualizar_setor_inexistente(repo: DuckDBSetorRepo, usuario: Usuario):
    with pytest.raises(SetorNaoEncontrado):
        repo.atualizar("nao-existe", _edicao(), usuario)


def test_atualizar_setor_sem_ciclo(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    _setor_sem_ciclo(test_db, "s-parcial", "T-200", "emExecucao")
    with pytest.raises(CicloNaoEncontrado, match="Ciclo não encontrado"):
        repo.atualizar("s-parcial", _edicao(), usuario)


# ---------- remover ----------


def test_remover_apaga_dependentes(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    setor = repo.adicionar(_dados(), usuario).valor
    repo.remover(setor.id)

    for tabela in ("sectors", "cycles", "cycle_services", "sector_services", "photos"):
        assert _contar(test_db, f"SELECT count(*) FROM {tabela}") == 0
    assert _contar(test_db, "SELECT count(*) FROM service_types") == 3


def test_remover_inexistente(repo: DuckDBSetorRepo):
    with pytest.raises(SetorNaoEncontrado):
        repo.remover("nao-existe")


# ---------- primitivas de status ----------


def test_gravar_status_escreve_setor_e_ciclo(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    setor = repo.adicionar(_dados(), usuario).valor
    ciclo_id = repo.ciclo_ativo_id(setor.id)
    assert ciclo_id == setor.ciclo.id  # type: ignore[union-attr]

    repo.gravar_status(setor.id, ciclo_id, StatusSetor.SUCATEADO_PENDENTE, Desfecho.EM_ANDAMENTO, usuario)

    assert repo.ler_status(setor.id) == StatusSetor.SUCATEADO_PENDENTE
    row = test_db.execute("SELECT status FROM cycles WHERE id = ?", [ciclo_id]).fetchone()
    assert row == ("sucateadoPendente",)


def test_ciclo_ativo_e_o_mais_recente(repo: DuckDBSetorRepo, usuario: Usuario, test_db):
    setor = repo.adicionar(_dados(), usuario).valor
    test_db.execute(
        """INSERT INTO cycles (id, sector_id, tag_number, entry_invoice, status, created_at)
           VALUES ('c-novo', ?, 'T-100', 'NF-9', 'emExecucao', ?)""",
        [setor.id, datetime(2024, 1, 1, 8, 0) + timedelta(days=1)],
    )
    assert repo.ciclo_ativo_id(setor.id) == "c-novo"
    recarregado = repo.buscar_por_id(setor.id)
    assert recarregado is not None
    assert recarregado.ciclo is not None and recarregado.ciclo.nota_entrada == "NF-9"
    assert [c.nota_entrada for c in recarregado.ciclos_anteriores] == ["NF-1"]


def test_marcar_producao_concluida(repo: DuckDBSetorRepo, usuario: Usuario):
    setor = repo.adicionar(_dados(), usuario).valor
    repo.marcar_producao_concluida(setor.ciclo.id, usuario)  # type: ignore[union-attr]
    recarregado = repo.buscar_por_id(setor.id)
    assert recarregado is not None and recarregado.ciclo is not None
    assert recarregado.ciclo.producao_concluida


def test_ler_status_setor_inexistente(repo: DuckDBSetorRepo):
    assert repo.ler_status("nao-existe") is None

