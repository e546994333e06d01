# recuperacao/domain/setor/entities.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from .enums import Desfecho, StatusSetor, TipoFoto
from .status import eh_terminal


@dataclass(frozen=True)
class Foto:
    """URL opaca produzida pelo colaborador de upload. Sem servico_id = foto do setor."""

    id: str
    url: str
    tipo: TipoFoto
    servico_id: str | None = None


@dataclass(frozen=True)
class Servico:
    """Tipo de servico de reparo e sua selecao no ciclo."""

    id: str
    nome: str
    selecionado: bool = False
    quantidade: int | None = None
    observacoes: str | None = None
    fotos: tuple[Foto, ...] = ()
    concluido: bool = False

    def fotos_do_tipo(self, tipo: TipoFoto) -> tuple[Foto, ...]:
        return tuple(f for f in self.fotos if f.tipo == tipo)


@dataclass(frozen=True)
class Ciclo:
    """Uma passagem do setor pelo fluxo de recuperacao.

    Campos de saida so tem significado depois que o status deixou emExecucao.
    Campos de sucata so tem significado no ramo de sucateamento.
    """

    id: str
    setor_id: str
    tag_number: str
    nota_entrada: str
    status: StatusSetor
    desfecho: Desfecho = Desfecho.EM_ANDAMENTO
    data_entrada: date | None = None
    data_peritagem: date | None = None
    observacoes_entrada: str | None = None
    producao_concluida: bool = False
    servicos: tuple[Servico, ...] = ()
    fotos_antes: tuple[Foto, ...] = ()
    fotos_depois: tuple[Foto, ...] = ()
    nota_saida: str | None = None
    data_saida: date | None = None
    observacoes_saida: str | None = None
    data_checagem: date | None = None
    observacoes_sucata: str | None = None
    fotos_sucata: tuple[Foto, ...] = ()
    nota_retorno_sucata: str | None = None
    data_retorno_sucata: date | None = None
    sucata_validada: bool = False
    criado_em: datetime | None = None
    atualizado_em: datetime | None = None

    @property
    def servicos_selecionados(self) -> tuple[Servico, ...]:
        return tuple(s for s in self.servicos if s.selecionado)


@dataclass(frozen=True)
class Setor:
    """Aggregate Root. Unidade fisica em recuperacao.

    `ciclo` e o ciclo ativo (mais recente por criacao). So e None para um
    registro parcial sintetizado a partir da linha do setor. Ciclos
    anteriores servem apenas para auditoria e relatorios.
    """

    id: str
    tag_number: str
    status: StatusSetor
    desfecho: Desfecho = Desfecho.EM_ANDAMENTO
    cycle_count: int = 1
    tag_photo_url: str | None = None
    ciclo: Ciclo | None = None
    ciclos_anteriores: tuple[Ciclo, ...] = ()
    atualizado_em: datetime | None = None

    def __post_init__(self) -> None:
        if self.cycle_count < 1:
            raise ValueError("cycle_count deve ser >= 1")

    @property
    def terminal(self) -> bool:
        return eh_terminal(self.status)

    @property
    def parcial(self) -> bool:
        return self.ciclo is None

    @property
    def servicos(self) -> tuple[Servico, ...]:
        return self.ciclo.servicos if self.ciclo else ()
