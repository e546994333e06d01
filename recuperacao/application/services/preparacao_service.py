# recuperacao/application/services/preparacao_service.py
"""Montagem do DadosSetor gravavel a partir dos dados ja processados. Sem IO."""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from typing import Any

from recuperacao.domain.setor.dados import DadosSetor, ServicoEscrita
from recuperacao.domain.setor.entities import Foto
from recuperacao.domain.setor.enums import Desfecho, StatusSetor, TipoFoto
from recuperacao.domain.setor.status import desfecho_para


def _sem_repetir_url(fotos: Iterable[Foto]) -> tuple[Foto, ...]:
    vistas: set[str] = set()
    unicas: list[Foto] = []
    for foto in fotos:
        if foto.url in vistas:
            continue
        vistas.add(foto.url)
        unicas.append(foto)
    return tuple(unicas)


def fotos_dos_servicos(servicos: Iterable[ServicoEscrita]) -> list[Foto]:
    return [f for s in servicos if s.selecionado for f in s.fotos]


def preparar_dados_setor(
    status: StatusSetor,
    *,
    servicos: Iterable[ServicoEscrita] | None = None,
    fotos_processadas: Iterable[Foto] = (),
    fotos_sucata_existentes: Iterable[Foto] = (),
    desfecho: Desfecho | None = None,
    cycle_count_existente: int | None = None,
    candidato_cycle_count: int | None = None,
    agora: datetime | None = None,
    **campos: Any,
) -> DadosSetor:
    """Particiona as fotos por tipo e resolve cycle_count.

    Edicao (cycle_count_existente informado) mantem o valor gravado; setor
    novo usa o candidato da tentativa corrente. Fotos de sucata ja anexadas
    nunca sao descartadas. `campos` sao os demais atributos de DadosSetor.
    """
    processadas = list(fotos_processadas)
    por_tipo: dict[TipoFoto, list[Foto]] = {t: [] for t in TipoFoto}
    for foto in processadas:
        por_tipo[foto.tipo].append(foto)

    servicos_prontos = (
        None
        if servicos is None
        else tuple(replace(s, fotos=tuple(s.fotos or ())) for s in servicos)
    )

    return DadosSetor(
        status=status,
        desfecho=desfecho or desfecho_para(status),
        atualizado_em=agora or datetime.now(),
        cycle_count=cycle_count_existente if cycle_count_existente is not None else candidato_cycle_count,
        servicos=servicos_prontos,
        fotos_antes=_sem_repetir_url(por_tipo[TipoFoto.BEFORE]),
        fotos_depois=_sem_repetir_url(por_tipo[TipoFoto.AFTER]),
        fotos_sucata=_sem_repetir_url([*fotos_sucata_existentes, *por_tipo[TipoFoto.SCRAP]]),
        **campos,
    )
