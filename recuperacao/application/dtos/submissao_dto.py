# recuperacao/application/dtos/submissao_dto.py
#
# Payloads de submissao, um por etapa, discriminados pelo campo `kind`.
#
# Design decisions:
#   - Fields that only make sense for a stage exist only on that stage's
#     payload, so an exit submission can never carry an entry invoice.
#   - Photos arrive either as an already stored URL or as base64 content
#     still to be uploaded. Entries with neither are dropped by photo
#     processing, not rejected here: required-photo rules live in validation.
from __future__ import annotations

from datetime import date
from typing import Annotated, Literal

from pydantic import Base64Bytes, BaseModel, Field

from recuperacao.domain.setor.enums import TipoFoto


class FotoEntrada(BaseModel):
    id: str | None = None
    url: str | None = None
    tipo: TipoFoto = TipoFoto.BEFORE
    conteudo: Base64Bytes | None = None
    nome_arquivo: str | None = None

    @property
    def presente(self) -> bool:
        return bool(self.url or self.conteudo)


class ServicoEntrada(BaseModel):
    id: str
    nome: str = ""
    selecionado: bool = False
    quantidade: int | None = None
    observacoes: str | None = None
    concluido: bool | None = None
    fotos: list[FotoEntrada] = Field(default_factory=list)

    @property
    def rotulo(self) -> str:
        return self.nome or self.id

    def fotos_presentes(self, tipo: TipoFoto) -> list[FotoEntrada]:
        return [f for f in self.fotos if f.tipo == tipo and f.presente]


class _EntradaBase(BaseModel):
    tag_number: str = ""
    nota_entrada: str = ""
    data_entrada: date | None = None
    tag_photo_url: str | None = None
    foto_tag: FotoEntrada | None = None
    observacoes_entrada: str | None = None
    observacoes_sucata: str | None = None
    fotos_sucata: list[FotoEntrada] = Field(default_factory=list)
    servicos: list[ServicoEntrada] = Field(default_factory=list)

    @property
    def tem_foto_tag(self) -> bool:
        return bool(self.tag_photo_url) or (self.foto_tag is not None and self.foto_tag.presente)

    @property
    def servicos_selecionados(self) -> list[ServicoEntrada]:
        return [s for s in self.servicos if s.selecionado]

    @property
    def fotos_sucata_presentes(self) -> list[FotoEntrada]:
        return [f for f in self.fotos_sucata if f.presente]


class EntradaPayload(_EntradaBase):
    """Peritagem. sucatear=True desvia para o ramo de sucateamento na entrada."""

    kind: Literal["entry"] = "entry"
    data_peritagem: date | None = None
    sucatear: bool = False


class SucataEntradaPayload(_EntradaBase):
    kind: Literal["scrapIntake"] = "scrapIntake"


class SaidaPayload(BaseModel):
    """Checagem final: servicos com a marcacao de concluido e fotos `after`."""

    kind: Literal["exit"] = "exit"
    nota_saida: str = ""
    data_saida: date | None = None
    data_checagem: date | None = None
    observacoes_saida: str | None = None
    servicos: list[ServicoEntrada] = Field(default_factory=list)

    @property
    def servicos_concluidos(self) -> list[ServicoEntrada]:
        return [s for s in self.servicos if s.concluido]

    @property
    def servicos_da_checagem(self) -> list[ServicoEntrada]:
        """Selecionados ou concluidos. Marcar concluido na checagem seleciona o servico."""
        return [
            s if s.selecionado else s.model_copy(update={"selecionado": True})
            for s in self.servicos
            if s.selecionado or s.concluido
        ]


class ValidacaoSucataPayload(BaseModel):
    kind: Literal["scrapValidate"] = "scrapValidate"
    nota_retorno_sucata: str = ""
    data_retorno_sucata: date | None = None
    fotos_sucata: list[FotoEntrada] = Field(default_factory=list)


PayloadUnion = EntradaPayload | SucataEntradaPayload | SaidaPayload | ValidacaoSucataPayload

Payload = Annotated[PayloadUnion, Field(discriminator="kind")]
