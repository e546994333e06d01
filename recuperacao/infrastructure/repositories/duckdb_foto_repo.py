# recuperacao/infrastructure/repositories/duckdb_foto_repo.py
#
# Linhas da tabela photos.
#
# Design decisions:
#   - Every photo row carries sector_id / service_id / stage / type inside the
#     metadata JSON, not only through cycle_id. The blob survives a later
#     restructuring of the relational schema.
#   - Appends are de-duplicated by URL: the same asset is resubmitted on every
#     partial save of a form, so "already stored" is the normal case.
#   - Photo rows are non-critical: a failed insert is logged and returned as a
#     warning, never raised. A later edit re-submits the same URLs and fills
#     the gap.
from __future__ import annotations

import json
import uuid
from collections.abc import Iterable
from datetime import datetime

import duckdb

from recuperacao.domain.setor.dados import ServicoEscrita
from recuperacao.domain.setor.entities import Foto
from recuperacao.domain.setor.enums import Etapa, TipoFoto
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.log import log

_ETAPA_POR_TIPO: dict[TipoFoto, Etapa] = {
    TipoFoto.TAG: Etapa.PERITAGEM,
    TipoFoto.BEFORE: Etapa.PERITAGEM,
    TipoFoto.AFTER: Etapa.CHECAGEM,
    TipoFoto.SCRAP: Etapa.SUCATEAMENTO,
}


def etapa_da_foto(tipo: TipoFoto) -> Etapa:
    return _ETAPA_POR_TIPO[tipo]


def urls_existentes(
    cur: duckdb.DuckDBPyConnection,
    ciclo_id: str,
    tipo: TipoFoto,
) -> set[str]:
    rows = cur.execute(
        "SELECT url FROM photos WHERE cycle_id = ? AND type = ?",
        [ciclo_id, tipo.value],
    ).fetchall()
    return {str(r[0]) for r in rows}


def inserir_foto(
    cur: duckdb.DuckDBPyConnection,
    ciclo_id: str,
    setor_id: str,
    foto: Foto,
    tipo: TipoFoto,
    etapa: Etapa,
    usuario: Usuario,
) -> None:
    metadata = {
        "sector_id": setor_id,
        "service_id": foto.servico_id,
        "stage": etapa.value,
        "type": tipo.value,
    }
    cur.execute(
        """INSERT INTO photos (id, cycle_id, service_id, url, type, created_by, metadata, created_at)
           VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
        [
            str(uuid.uuid4()),
            ciclo_id,
            foto.servico_id,
            foto.url,
            tipo.value,
            usuario.id,
            json.dumps(metadata),
            datetime.now(),
        ],
    )


def inserir_fotos_novas(
    cur: duckdb.DuckDBPyConnection,
    ciclo_id: str,
    setor_id: str,
    fotos: Iterable[Foto],
    tipo: TipoFoto,
    etapa: Etapa,
    usuario: Usuario,
) -> list[str]:
    """Acrescenta apenas URLs ausentes para o par ciclo+tipo. Retorna avisos."""
    avisos: list[str] = []
    try:
        vistas = urls_existentes(cur, ciclo_id, tipo)
    except duckdb.Error as err:
        aviso = f"Erro ao consultar fotos '{tipo}' do ciclo {ciclo_id}: {err}"
        log(aviso)
        return [aviso]

    for foto in fotos:
        if not foto.url or foto.url in vistas:
            continue
        try:
            inserir_foto(cur, ciclo_id, setor_id, foto, tipo, etapa, usuario)
        except duckdb.Error as err:
            aviso = f"Erro ao inserir foto '{tipo}' ({foto.url}): {err}"
            log(aviso)
            avisos.append(aviso)
            continue
        vistas.add(foto.url)
    return avisos


class DuckDBFotoRepo:
    """Gravacao dos metadados de fotos apos a submissao.

    Roda em paralelo com a transicao de status (tabelas disjuntas), por isso
    cada chamada abre seu proprio cursor.
    """

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def registrar_fotos_servicos(
        self,
        setor_id: str,
        servicos: Iterable[ServicoEscrita],
        tag_photo_url: str | None,
        usuario: Usuario,
    ) -> list[str]:
        """Fotos dos servicos selecionados + foto da TAG. Nunca levanta excecao."""
        avisos: list[str] = []
        try:
            with self._conn.cursor() as cur:
                row = cur.execute(
                    """SELECT id FROM cycles WHERE sector_id = ?
                       ORDER BY created_at DESC LIMIT 1""",
                    [setor_id],
                ).fetchone()
                if row is None:
                    aviso = f"Ciclo nao encontrado para salvar fotos do setor {setor_id}"
                    log(aviso)
                    return [aviso]
                ciclo_id = str(row[0])

                for servico in servicos:
                    if not servico.selecionado:
                        continue
                    por_tipo: dict[TipoFoto, list[Foto]] = {}
                    for foto in servico.fotos:
                        por_tipo.setdefault(foto.tipo, []).append(
                            Foto(id=foto.id, url=foto.url, tipo=foto.tipo, servico_id=servico.id)
                        )
                    for tipo, fotos in por_tipo.items():
                        avisos.extend(
                            inserir_fotos_novas(
                                cur, ciclo_id, setor_id, fotos, tipo, etapa_da_foto(tipo), usuario
                            )
                        )

                if tag_photo_url:
                    tag = Foto(id="", url=tag_photo_url, tipo=TipoFoto.TAG)
                    avisos.extend(
                        inserir_fotos_novas(
                            cur, ciclo_id, setor_id, [tag], TipoFoto.TAG, Etapa.PERITAGEM, usuario
                        )
                    )
        except duckdb.Error as err:
            aviso = f"Erro ao fazer upload de fotos com metadados do setor {setor_id}: {err}"
            log(aviso)
            avisos.append(aviso)
        return avisos

