# recuperacao/infrastructure/repositories/mappers.py
#
# Linhas normalizadas (sectors, cycles, cycle_services, photos, service_types)
# -> entidades aninhadas do dominio.
#
# Design decisions:
#   - Pure and total: no IO, never raises. Missing optional columns become
#     None / False / "" / (). Unknown enum values fall back to safe defaults
#     so a single bad row never hides a whole list view.
#   - Rows are plain dicts keyed by column name, as produced by the DuckDB
#     repositories (cursor.description). Tests build them by hand.
#   - Photo type: metadata.type wins over the raw `type` column. Photos can be
#     reclassified after upload by rewriting only the metadata blob.
#   - Service photos are joined by service_id; sector-level photos have none.
from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

from recuperacao.domain.setor.entities import Ciclo, Foto, Servico, Setor
from recuperacao.domain.setor.enums import Desfecho, StatusSetor, TipoFoto

Row = Mapping[str, Any]


def ler_metadata(raw: object) -> dict[str, Any]:
    """metadata pode vir como dict ou como texto JSON. Qualquer outra coisa vira {}."""
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            parsed = json.loads(raw)
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
    return {}


def tipo_efetivo(row: Row) -> TipoFoto | None:
    meta_tipo = ler_metadata(row.get("metadata")).get("type")
    for candidato in (meta_tipo, row.get("type")):
        try:
            return TipoFoto(str(candidato))
        except ValueError:
            # "servico" / "geral" no metadata nao sao tipos de foto
            continue
    return None


def mapear_foto(row: Row) -> Foto:
    tipo = tipo_efetivo(row) or TipoFoto.BEFORE
    servico_id = row.get("service_id")
    return Foto(
        id=str(row.get("id") or ""),
        url=str(row.get("url") or ""),
        tipo=tipo,
        servico_id=str(servico_id) if servico_id else None,
    )


def agrupar_fotos(rows: Iterable[Row]) -> dict[TipoFoto, list[Foto]]:
    """Particiona as fotos de um ciclo pelo tipo efetivo."""
    grupos: dict[TipoFoto, list[Foto]] = {t: [] for t in TipoFoto}
    for row in rows:
        foto = mapear_foto(row)
        grupos[foto.tipo].append(foto)
    return grupos


def mapear_servico(
    servico_tipo: Row,
    ciclo_servico: Row | None = None,
    fotos: Iterable[Row] = (),
) -> Servico:
    cs = ciclo_servico or {}
    return Servico(
        id=str(servico_tipo.get("id") or ""),
        nome=str(servico_tipo.get("name") or ""),
        selecionado=bool(cs.get("selected") or False),
        quantidade=_quantidade(cs.get("quantity")),
        observacoes=cs.get("observations") or None,
        fotos=tuple(mapear_foto(f) for f in fotos),
        concluido=bool(cs.get("completed") or False),
    )


def mapear_servicos(
    servicos_tipo: Iterable[Row],
    ciclo_servicos: Iterable[Row],
    fotos: Iterable[Row],
) -> tuple[Servico, ...]:
    """Um Servico por tipo do catalogo, com a selecao do ciclo e suas fotos."""
    por_servico: dict[str, Row] = {str(cs.get("service_id")): cs for cs in ciclo_servicos}
    fotos_por_servico: dict[str, list[Row]] = {}
    for f in fotos:
        sid = f.get("service_id")
        if sid:
            fotos_por_servico.setdefault(str(sid), []).append(f)
    return tuple(
        mapear_servico(st, por_servico.get(str(st.get("id"))), fotos_por_servico.get(str(st.get("id")), []))
        for st in servicos_tipo
    )


def mapear_ciclo(
    ciclo: Row,
    servicos: Iterable[Servico] = (),
    fotos_antes: Iterable[Foto] = (),
    fotos_depois: Iterable[Foto] = (),
    fotos_sucata: Iterable[Foto] = (),
) -> Ciclo:
    return Ciclo(
        id=str(ciclo.get("id") or ""),
        setor_id=str(ciclo.get("sector_id") or ""),
        tag_number=str(ciclo.get("tag_number") or ""),
        nota_entrada=str(ciclo.get("entry_invoice") or ""),
        status=_status(ciclo.get("status")),
        desfecho=_desfecho(ciclo.get("outcome")),
        data_entrada=_data(ciclo.get("entry_date")),
        data_peritagem=_data(ciclo.get("peritagem_date")),
        observacoes_entrada=ciclo.get("entry_observations") or None,
        producao_concluida=bool(ciclo.get("production_completed") or False),
        servicos=tuple(servicos),
        fotos_antes=tuple(fotos_antes),
        fotos_depois=tuple(fotos_depois),
        nota_saida=ciclo.get("exit_invoice") or None,
        data_saida=_data(ciclo.get("exit_date")),
        observacoes_saida=ciclo.get("exit_observations") or None,
        data_checagem=_data(ciclo.get("checagem_date")),
        observacoes_sucata=ciclo.get("scrap_observations") or None,
        fotos_sucata=tuple(fotos_sucata),
        nota_retorno_sucata=ciclo.get("scrap_return_invoice") or None,
        data_retorno_sucata=_data(ciclo.get("scrap_return_date")),
        sucata_validada=bool(ciclo.get("scrap_validated") or False),
        criado_em=_timestamp(ciclo.get("created_at")),
        atualizado_em=_timestamp(ciclo.get("updated_at")),
    )


def mapear_setor(
    setor: Row,
    ciclo: Row,
    servicos: Iterable[Servico],
    fotos_antes: Iterable[Foto],
    fotos_depois: Iterable[Foto],
    fotos_sucata: Iterable[Foto],
    ciclos_anteriores: Iterable[Ciclo] = (),
    tag_photo_url: str | None = None,
) -> Setor:
    """Setor + ciclo ativo. Status e desfecho vem do ciclo, que e a fonte de verdade
    do estagio; a linha do setor guarda apenas a copia desnormalizada."""
    ciclo_mapeado = mapear_ciclo(ciclo, servicos, fotos_antes, fotos_depois, fotos_sucata)
    return Setor(
        id=str(setor.get("id") or ""),
        tag_number=str(setor.get("tag_number") or ""),
        status=ciclo_mapeado.status,
        desfecho=ciclo_mapeado.desfecho,
        cycle_count=_cycle_count(setor.get("cycle_count")),
        tag_photo_url=tag_photo_url or setor.get("tag_photo_url") or None,
        ciclo=ciclo_mapeado,
        ciclos_anteriores=tuple(ciclos_anteriores),
        atualizado_em=_timestamp(setor.get("updated_at")),
    )


def setor_minimo(setor: Row) -> Setor:
    """Setor sem linha de ciclo (queda entre os dois inserts da criacao)."""
    return Setor(
        id=str(setor.get("id") or ""),
        tag_number=str(setor.get("tag_number") or ""),
        status=_status(setor.get("current_status")),
        desfecho=_desfecho(setor.get("current_outcome")),
        cycle_count=_cycle_count(setor.get("cycle_count")),
        tag_photo_url=setor.get("tag_photo_url") or None,
        ciclo=None,
        atualizado_em=_timestamp(setor.get("updated_at")),
    )


def _status(raw: object) -> StatusSetor:
    try:
        return StatusSetor(str(raw))
    except ValueError:
        return StatusSetor.PERITAGEM_PENDENTE


def _desfecho(raw: object) -> Desfecho:
    try:
        return Desfecho(str(raw))
    except ValueError:
        return Desfecho.EM_ANDAMENTO


def _cycle_count(raw: object) -> int:
    try:
        return max(1, int(raw))  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return 1


def _quantidade(raw: object) -> int | None:
    try:
        valor = int(raw)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return None
    return valor if valor > 0 else None


def _data(raw: object) -> date | None:
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str) and raw:
        try:
            return date.fromisoformat(raw[:10])
        except ValueError:
            return None
    return None


def _timestamp(raw: object) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            return None
    return None
