# recuperacao/application/services/submissao_service.py
#
# Orquestra uma submissao de formulario, de ponta a ponta.
#
#   auth -> validacao -> upload de fotos -> preparacao -> repositorio (retry)
#        -> transicao de status || metadados de fotos
#
# Design decisions:
#   - Each stage has its own payload type; the dispatch is on the payload
#     class, never on loose flags.
#   - The store write (sector + cycle) is retried with exponential backoff.
#     For a new sector each attempt draws a fresh cycle_count candidate, so a
#     concurrent intake of the same TAG that won the UNIQUE slot is not
#     replayed.
#   - The retried attempt only writes and returns the sector id. Re-reading the
#     saved sector happens after it, so a failed read never inserts a second
#     sector for the same TAG.
#   - The data write keeps the current status for exit and scrap validation;
#     the move into the terminal status is done afterwards by StatusService.
#   - Status transition and photo-metadata rows touch disjoint tables and run
#     on two worker threads.
#   - Every failure becomes ResultadoSubmissao(sucesso=False). Domain errors
#     keep their message; store errors collapse into one generic message.
from __future__ import annotations

import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date

import duckdb

from recuperacao.application.dtos.submissao_dto import (
    EntradaPayload,
    Payload,
    SaidaPayload,
    SucataEntradaPayload,
    ValidacaoSucataPayload,
)
from recuperacao.application.services.foto_service import FotoService
from recuperacao.application.services.preparacao_service import (
    fotos_dos_servicos,
    preparar_dados_setor,
)
from recuperacao.application.services.retry import PoliticaRetry
from recuperacao.application.services.status_service import StatusService
from recuperacao.application.services.validacao_service import (
    exigir_valido,
    validar_sucata_entrada,
)
from recuperacao.domain.setor.ciclos import proximo_cycle_count
from recuperacao.domain.setor.dados import DadosSetor, ServicoEscrita
from recuperacao.domain.setor.entities import Setor
from recuperacao.domain.setor.enums import Desfecho, StatusSetor
from recuperacao.domain.setor.errors import (
    ErroAutenticacao,
    ErroRecuperacao,
    ErroValidacao,
    SetorNaoEncontrado,
    TransicaoInvalida,
)
from recuperacao.domain.setor.repository import SetorRepository
from recuperacao.domain.setor.resultado import Resultado
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.log import log
from recuperacao.infrastructure.repositories.duckdb_foto_repo import DuckDBFotoRepo

MENSAGEM_ERRO_GRAVACAO = "Erro ao salvar setor. Tente novamente."


@dataclass(frozen=True)
class ResultadoSubmissao:
    sucesso: bool
    setor_id: str | None = None
    setor: Setor | None = None
    erro: str | None = None
    avisos: tuple[str, ...] = ()
    excecao: Exception | None = field(default=None, repr=False, compare=False)


class SubmissaoService:
    def __init__(
        self,
        setor_repo: SetorRepository,
        status_service: StatusService,
        foto_service: FotoService,
        foto_repo: DuckDBFotoRepo,
        politica: PoliticaRetry | None = None,
        dormir: Callable[[float], None] = time.sleep,
    ) -> None:
        self._repo = setor_repo
        self._status = status_service
        self._fotos = foto_service
        self._foto_repo = foto_repo
        self._politica = politica or PoliticaRetry()
        self._dormir = dormir

    def submeter(
        self,
        payload: Payload,
        usuario: Usuario | None,
        setor_id: str | None = None,
    ) -> ResultadoSubmissao:
        """Executa a submissao. setor_id=None cria um setor novo (so para entradas)."""
        try:
            if usuario is None:
                raise ErroAutenticacao()

            if isinstance(payload, SucataEntradaPayload) or (
                isinstance(payload, EntradaPayload) and payload.sucatear
            ):
                setor, avisos = self._sucata_entrada(payload, usuario, setor_id)
            elif isinstance(payload, EntradaPayload):
                setor, avisos = self._entrada(payload, usuario, setor_id)
            elif isinstance(payload, SaidaPayload):
                setor, avisos = self._saida(payload, usuario, self._exigir_id(setor_id))
            elif isinstance(payload, ValidacaoSucataPayload):
                setor, avisos = self._validacao_sucata(payload, usuario, self._exigir_id(setor_id))
            else:
                raise ErroValidacao(f"Tipo de submissao desconhecido: {type(payload).__name__}")
        except ErroRecuperacao as err:
            log(f"Erro ao salvar setor: {err}")
            return ResultadoSubmissao(sucesso=False, setor_id=setor_id, erro=str(err), excecao=err)
        except duckdb.Error as err:
            log(f"Erro ao salvar setor: {err}")
            return ResultadoSubmissao(
                sucesso=False, setor_id=setor_id, erro=MENSAGEM_ERRO_GRAVACAO, excecao=err
            )

        return ResultadoSubmissao(sucesso=True, setor_id=setor.id, setor=setor, avisos=tuple(avisos))

    # ------------------------------------------------------------------
    # Ramos
    # ------------------------------------------------------------------

    def _entrada(
        self,
        payload: EntradaPayload,
        usuario: Usuario,
        setor_id: str | None,
    ) -> tuple[Setor, list[str]]:
        existente = self._carregar(setor_id) if setor_id else None
        exigir_valido(payload)

        pasta = f"setores/{payload.tag_number}"
        servicos = self._fotos.processar_servicos(payload.servicos, pasta)
        tag_url = self._fotos.processar_tag(payload.tag_photo_url, payload.foto_tag, pasta)
        status = existente.status if existente else StatusSetor.EM_EXECUCAO
        campos = {
            "tag_number": payload.tag_number,
            "tag_photo_url": tag_url,
            "nota_entrada": payload.nota_entrada,
            "data_entrada": payload.data_entrada,
            "data_peritagem": payload.data_peritagem or date.today(),
            "observacoes_entrada": payload.observacoes_entrada,
        }

        resultado = self._gravar(
            existente,
            payload.tag_number,
            lambda candidato: preparar_dados_setor(
                status,
                servicos=servicos,
                fotos_processadas=fotos_dos_servicos(servicos),
                desfecho=existente.desfecho if existente else None,
                cycle_count_existente=existente.cycle_count if existente else None,
                candidato_cycle_count=candidato,
                **campos,
            ),
            usuario,
        )
        avisos = list(resultado.avisos)
        avisos.extend(self._finalizar(resultado.valor, status, servicos, tag_url, usuario))
        return self._recarregar(resultado.valor), avisos

    def _sucata_entrada(
        self,
        payload: EntradaPayload | SucataEntradaPayload,
        usuario: Usuario,
        setor_id: str | None,
    ) -> tuple[Setor, list[str]]:
        existente = self._carregar(setor_id) if setor_id else None
        if isinstance(payload, EntradaPayload):
            exigir_valido(payload)
        else:
            mensagem = validar_sucata_entrada(payload)
            if mensagem is not None:
                raise ErroValidacao(mensagem)

        pasta = f"setores/{payload.tag_number}"
        fotos_sucata = self._fotos.processar(payload.fotos_sucata, f"{pasta}/sucata")
        servicos = self._fotos.processar_servicos(payload.servicos, pasta)
        tag_url = self._fotos.processar_tag(payload.tag_photo_url, payload.foto_tag, pasta)
        status = StatusSetor.SUCATEADO_PENDENTE
        campos = {
            "tag_number": payload.tag_number,
            "tag_photo_url": tag_url,
            "nota_entrada": payload.nota_entrada,
            "data_entrada": payload.data_entrada or date.today(),
            "observacoes_entrada": payload.observacoes_entrada,
            "observacoes_sucata": payload.observacoes_sucata,
        }

        resultado = self._gravar(
            existente,
            payload.tag_number,
            lambda candidato: preparar_dados_setor(
                status,
                servicos=servicos,
                fotos_processadas=[*fotos_dos_servicos(servicos), *fotos_sucata],
                fotos_sucata_existentes=existente.ciclo.fotos_sucata if existente and existente.ciclo else (),
                desfecho=Desfecho.EM_ANDAMENTO,
                cycle_count_existente=existente.cycle_count if existente else None,
                candidato_cycle_count=candidato,
                **campos,
            ),
            usuario,
        )
        avisos = list(resultado.avisos)
        avisos.extend(self._status.definir_status(resultado.valor, status, usuario))
        return self._recarregar(resultado.valor), avisos

    def _saida(
        self,
        payload: SaidaPayload,
        usuario: Usuario,
        setor_id: str,
    ) -> tuple[Setor, list[str]]:
        existente = self._carregar(setor_id)
        if existente.status != StatusSetor.CHECAGEM_FINAL_PENDENTE:
            raise TransicaoInvalida(existente.status.value, StatusSetor.CONCLUIDO.value)
        exigir_valido(payload)

        servicos = self._fotos.processar_servicos(
            payload.servicos_da_checagem, f"setores/{existente.tag_number}"
        )
        hoje = date.today()
        campos = {
            "nota_saida": payload.nota_saida,
            "data_saida": payload.data_saida or hoje,
            "data_checagem": payload.data_checagem or hoje,
            "observacoes_saida": payload.observacoes_saida,
        }

        resultado = self._gravar(
            existente,
            existente.tag_number,
            lambda _candidato: preparar_dados_setor(
                existente.status,
                servicos=servicos,
                fotos_processadas=fotos_dos_servicos(servicos),
                cycle_count_existente=existente.cycle_count,
                **campos,
            ),
            usuario,
        )
        avisos = list(resultado.avisos)
        avisos.extend(self._finalizar(setor_id, StatusSetor.CONCLUIDO, servicos, None, usuario))
        return self._recarregar(setor_id), avisos

    def _validacao_sucata(
        self,
        payload: ValidacaoSucataPayload,
        usuario: Usuario,
        setor_id: str,
    ) -> tuple[Setor, list[str]]:
        existente = self._carregar(setor_id)
        if existente.status != StatusSetor.SUCATEADO_PENDENTE:
            raise TransicaoInvalida(existente.status.value, StatusSetor.SUCATEADO.value)
        exigir_valido(payload)

        fotos = self._fotos.processar(payload.fotos_sucata, f"setores/{existente.tag_number}/sucata")
        campos = {
            "nota_retorno_sucata": payload.nota_retorno_sucata,
            "data_retorno_sucata": payload.data_retorno_sucata or date.today(),
            "sucata_validada": True,
        }

        resultado = self._gravar(
            existente,
            existente.tag_number,
            lambda _candidato: preparar_dados_setor(
                existente.status,
                fotos_processadas=fotos,
                fotos_sucata_existentes=existente.ciclo.fotos_sucata if existente.ciclo else (),
                cycle_count_existente=existente.cycle_count,
                **campos,
            ),
            usuario,
        )
        avisos = list(resultado.avisos)
        avisos.extend(self._status.definir_status(setor_id, StatusSetor.SUCATEADO, usuario))
        return self._recarregar(setor_id), avisos

    # ------------------------------------------------------------------
    # Passos comuns
    # ------------------------------------------------------------------

    def _gravar(
        self,
        existente: Setor | None,
        tag_number: str,
        montar: Callable[[int | None], DadosSetor],
        usuario: Usuario,
    ) -> Resultado[str]:
        """Grava com retry e devolve o id. Setor novo: cada tentativa usa um candidato
        de cycle_count novo. A releitura fica fora do retry."""
        anterior: list[int | None] = [None]

        def tentativa(n: int) -> Resultado[str]:
            if existente is not None:
                return self._repo.editar(existente.id, montar(None), usuario)
            candidato = proximo_cycle_count(self._repo.maior_cycle_count(tag_number), anterior[0])
            anterior[0] = candidato
            if n > 0:
                log(f"Nova tentativa {n + 1} para TAG {tag_number} com cycle_count {candidato}")
            return self._repo.inserir(montar(candidato), usuario)

        return self._politica.executar(tentativa, self._dormir)

    def _finalizar(
        self,
        setor_id: str,
        status: StatusSetor,
        servicos: tuple[ServicoEscrita, ...],
        tag_url: str | None,
        usuario: Usuario,
    ) -> list[str]:
        with ThreadPoolExecutor(max_workers=2) as pool:
            futuro_status = pool.submit(self._status.definir_status, setor_id, status, usuario)
            futuro_fotos = pool.submit(
                self._foto_repo.registrar_fotos_servicos, setor_id, servicos, tag_url, usuario
            )
            avisos_fotos = futuro_fotos.result()
            avisos_status = futuro_status.result()
        return [*avisos_status, *avisos_fotos]

    def _carregar(self, setor_id: str | None) -> Setor:
        setor = self._repo.buscar_por_id(self._exigir_id(setor_id))
        if setor is None:
            raise SetorNaoEncontrado(str(setor_id))
        return setor

    def _recarregar(self, setor_id: str) -> Setor:
        """Leitura depois das escritas: repetir e seguro, regravar nao."""
        return self._politica.executar(lambda _n: self._carregar(setor_id), self._dormir)

    @staticmethod
    def _exigir_id(setor_id: str | None) -> str:
        if not setor_id:
            raise ErroValidacao("Setor não informado")
        return setor_id
