# recuperacao/domain/setor/dados.py
"""Modelo de escrita: setor parcial pronto para persistencia.

Convencao: None = campo nao informado. Na criacao vira o default da coluna;
na atualizacao o valor gravado e preservado.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from .entities import Foto
from .enums import Desfecho, StatusSetor


@dataclass(frozen=True)
class ServicoEscrita:
    """Selecao de um servico. selecionado=False remove a selecao gravada.

    concluido=None preserva a marcacao feita na checagem.
    """

    id: str
    selecionado: bool
    quantidade: int | None = None
    observacoes: str | None = None
    concluido: bool | None = None
    fotos: tuple[Foto, ...] = ()
    nome: str = ""


@dataclass(frozen=True)
class DadosSetor:
    status: StatusSetor
    desfecho: Desfecho
    atualizado_em: datetime
    cycle_count: int | None = None
    tag_number: str | None = None
    tag_photo_url: str | None = None
    nota_entrada: str | None = None
    data_entrada: date | None = None
    data_peritagem: date | None = None
    observacoes_entrada: str | None = None
    producao_concluida: bool | None = None
    nota_saida: str | None = None
    data_saida: date | None = None
    observacoes_saida: str | None = None
    data_checagem: date | None = None
    observacoes_sucata: str | None = None
    nota_retorno_sucata: str | None = None
    data_retorno_sucata: date | None = None
    sucata_validada: bool | None = None
    servicos: tuple[ServicoEscrita, ...] | None = None
    fotos_antes: tuple[Foto, ...] = field(default=())
    fotos_depois: tuple[Foto, ...] = field(default=())
    fotos_sucata: tuple[Foto, ...] = field(default=())

    @property
    def servicos_selecionados(self) -> tuple[ServicoEscrita, ...]:
        return tuple(s for s in self.servicos or () if s.selecionado)
