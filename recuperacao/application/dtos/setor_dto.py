# recuperacao/application/dtos/setor_dto.py
from __future__ import annotations

from pydantic import BaseModel

from recuperacao.domain.setor.entities import Ciclo, Foto, Servico, Setor


class FotoDTO(BaseModel):
    id: str
    url: str
    tipo: str
    servico_id: str | None

    @classmethod
    def from_domain(cls, foto: Foto) -> FotoDTO:
        return cls(id=foto.id, url=foto.url, tipo=foto.tipo.value, servico_id=foto.servico_id)


class ServicoDTO(BaseModel):
    id: str
    nome: str
    selecionado: bool
    quantidade: int | None
    observacoes: str | None
    concluido: bool
    fotos: list[FotoDTO]

    @classmethod
    def from_domain(cls, servico: Servico) -> ServicoDTO:
        return cls(
            id=servico.id,
            nome=servico.nome,
            selecionado=servico.selecionado,
            quantidade=servico.quantidade,
            observacoes=servico.observacoes,
            concluido=servico.concluido,
            fotos=[FotoDTO.from_domain(f) for f in servico.fotos],
        )


class CicloDTO(BaseModel):
    id: str
    tag_number: str
    status: str
    desfecho: str
    nota_entrada: str
    data_entrada: str | None
    data_peritagem: str | None
    observacoes_entrada: str | None
    producao_concluida: bool
    nota_saida: str | None
    data_saida: str | None
    observacoes_saida: str | None
    data_checagem: str | None
    observacoes_sucata: str | None
    nota_retorno_sucata: str | None
    data_retorno_sucata: str | None
    sucata_validada: bool
    servicos: list[ServicoDTO]
    fotos_antes: list[FotoDTO]
    fotos_depois: list[FotoDTO]
    fotos_sucata: list[FotoDTO]
    criado_em: str | None

    @classmethod
    def from_domain(cls, ciclo: Ciclo) -> CicloDTO:
        return cls(
            id=ciclo.id,
            tag_number=ciclo.tag_number,
            status=ciclo.status.value,
            desfecho=ciclo.desfecho.value,
            nota_entrada=ciclo.nota_entrada,
            data_entrada=ciclo.data_entrada.isoformat() if ciclo.data_entrada else None,
            data_peritagem=ciclo.data_peritagem.isoformat() if ciclo.data_peritagem else None,
            observacoes_entrada=ciclo.observacoes_entrada,
            producao_concluida=ciclo.producao_concluida,
            nota_saida=ciclo.nota_saida,
            data_saida=ciclo.data_saida.isoformat() if ciclo.data_saida else None,
            observacoes_saida=ciclo.observacoes_saida,
            data_checagem=ciclo.data_checagem.isoformat() if ciclo.data_checagem else None,
            observacoes_sucata=ciclo.observacoes_sucata,
            nota_retorno_sucata=ciclo.nota_retorno_sucata,
            data_retorno_sucata=(
                ciclo.data_retorno_sucata.isoformat() if ciclo.data_retorno_sucata else None
            ),
            sucata_validada=ciclo.sucata_validada,
            servicos=[ServicoDTO.from_domain(s) for s in ciclo.servicos],
            fotos_antes=[FotoDTO.from_domain(f) for f in ciclo.fotos_antes],
            fotos_depois=[FotoDTO.from_domain(f) for f in ciclo.fotos_depois],
            fotos_sucata=[FotoDTO.from_domain(f) for f in ciclo.fotos_sucata],
            criado_em=ciclo.criado_em.isoformat() if ciclo.criado_em else None,
        )


class SetorDTO(BaseModel):
    id: str
    tag_number: str
    tag_photo_url: str | None
    status: str
    desfecho: str
    cycle_count: int
    ciclo: CicloDTO | None
    ciclos_anteriores: list[CicloDTO]

    @classmethod
    def from_domain(cls, setor: Setor) -> SetorDTO:
        return cls(
            id=setor.id,
            tag_number=setor.tag_number,
            tag_photo_url=setor.tag_photo_url,
            status=setor.status.value,
            desfecho=setor.desfecho.value,
            cycle_count=setor.cycle_count,
            ciclo=CicloDTO.from_domain(setor.ciclo) if setor.ciclo else None,
            ciclos_anteriores=[CicloDTO.from_domain(c) for c in setor.ciclos_anteriores],
        )


class ResultadoSubmissaoDTO(BaseModel):
    sucesso: bool
    setor_id: str | None
    setor: SetorDTO | None
    erro: str | None
    avisos: list[str]
