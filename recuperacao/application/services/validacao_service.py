# recuperacao/application/services/validacao_service.py
#
# Regras de cada etapa. Funcoes puras: payload -> mensagem ou None.
#
# Design decisions:
#   - One message per call, the first rule that fails. The message is shown
#     to the operator verbatim, so it names the offending services.
#   - Validation runs before any upload or write; a rejected payload leaves
#     the store untouched.
from __future__ import annotations

from recuperacao.application.dtos.submissao_dto import (
    EntradaPayload,
    Payload,
    SaidaPayload,
    ServicoEntrada,
    SucataEntradaPayload,
    ValidacaoSucataPayload,
)
from recuperacao.domain.setor.enums import TipoFoto
from recuperacao.domain.setor.errors import ErroValidacao


def _nomes(servicos: list[ServicoEntrada]) -> str:
    return ", ".join(s.rotulo for s in servicos)


def validar_sucata_entrada(payload: EntradaPayload | SucataEntradaPayload) -> str | None:
    """Checagem minima do ramo de sucateamento na entrada."""
    if not payload.tag_number.strip():
        return "Número do TAG é obrigatório"
    if not payload.nota_entrada.strip():
        return "Nota fiscal de entrada é obrigatória"
    if not (payload.observacoes_sucata or "").strip():
        return "O motivo do sucateamento é obrigatório"
    if not payload.fotos_sucata_presentes:
        return "Adicione pelo menos uma foto do setor sucateado"
    return None


def validar_entrada(payload: EntradaPayload | SucataEntradaPayload) -> str | None:
    if not payload.tag_number.strip():
        return "Número do TAG é obrigatório"
    if not payload.nota_entrada.strip():
        return "Nota fiscal de entrada é obrigatória"
    if payload.data_entrada is None:
        return "Data de entrada é obrigatória"
    if not payload.tem_foto_tag:
        return "Foto do TAG é obrigatória"

    if isinstance(payload, SucataEntradaPayload) or payload.sucatear:
        return validar_sucata_entrada(payload)

    selecionados = payload.servicos_selecionados
    if not selecionados:
        return "Selecione pelo menos um serviço"

    sem_quantidade = [s for s in selecionados if s.quantidade is None or s.quantidade <= 0]
    if sem_quantidade:
        return f"Informe uma quantidade maior que zero para: {_nomes(sem_quantidade)}"

    sem_fotos = [s for s in selecionados if not s.fotos_presentes(TipoFoto.BEFORE)]
    if sem_fotos:
        return f"Os seguintes serviços estão sem fotos: {_nomes(sem_fotos)}"
    return None


def validar_saida(payload: SaidaPayload) -> str | None:
    if not payload.nota_saida.strip():
        return "Nota fiscal de saída é obrigatória"
    sem_fotos = [s for s in payload.servicos_concluidos if not s.fotos_presentes(TipoFoto.AFTER)]
    if sem_fotos:
        return f"Os seguintes serviços concluídos estão sem fotos de saída: {_nomes(sem_fotos)}"
    return None


def validar_sucata(payload: ValidacaoSucataPayload) -> str | None:
    if not payload.nota_retorno_sucata.strip():
        return "Nota fiscal de retorno da sucata é obrigatória"
    return None


def validar(payload: Payload) -> str | None:
    if isinstance(payload, (EntradaPayload, SucataEntradaPayload)):
        return validar_entrada(payload)
    if isinstance(payload, SaidaPayload):
        return validar_saida(payload)
    if isinstance(payload, ValidacaoSucataPayload):
        return validar_sucata(payload)
    raise TypeError(f"Payload desconhecido: {type(payload).__name__}")


def exigir_valido(payload: Payload) -> None:
    mensagem = validar(payload)
    if mensagem is not None:
        raise ErroValidacao(mensagem)
