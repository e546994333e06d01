# recuperacao/application/services/status_service.py
#
# Transicao de status do setor e do ciclo ativo.
#
# Design decisions:
#   - The sector row keeps a denormalized copy of the cycle status for list
#     queries. Both rows are written by the same call.
#   - sucateadoPendente is re-read after the write and force-rewritten once
#     on mismatch. Any failure there is a warning: the cycle row already
#     holds the right status and the list view is repaired by the next edit.
from __future__ import annotations

import duckdb

from recuperacao.domain.setor.enums import Desfecho, StatusSetor
from recuperacao.domain.setor.errors import CicloNaoEncontrado, SetorNaoEncontrado, TransicaoInvalida
from recuperacao.domain.setor.repository import StatusRepository
from recuperacao.domain.setor.status import desfecho_para, exigir_transicao
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.log import log


class StatusService:
    def __init__(self, status_repo: StatusRepository) -> None:
        self._repo = status_repo

    def definir_status(
        self,
        setor_id: str,
        status: StatusSetor,
        usuario: Usuario,
        desfecho: Desfecho | None = None,
    ) -> list[str]:
        """Grava status + desfecho no setor e no ciclo ativo. Retorna avisos."""
        ciclo_id = self._repo.ciclo_ativo_id(setor_id)
        if ciclo_id is None:
            raise CicloNaoEncontrado(setor_id)
        atual = self._repo.ler_status(setor_id)
        if atual is not None:
            exigir_transicao(atual, status)

        desfecho = desfecho or desfecho_para(status)
        self._repo.gravar_status(setor_id, ciclo_id, status, desfecho, usuario)
        log(f"Setor {setor_id}: status {atual} -> {status} ({desfecho})")

        if status == StatusSetor.SUCATEADO_PENDENTE:
            return self._verificar_sucata(setor_id, desfecho)
        return []

    def concluir_producao(self, setor_id: str, usuario: Usuario) -> list[str]:
        """emExecucao -> checagemFinalPendente, marcando a producao como concluida."""
        ciclo_id = self._repo.ciclo_ativo_id(setor_id)
        if ciclo_id is None:
            raise CicloNaoEncontrado(setor_id)
        atual = self._repo.ler_status(setor_id)
        if atual is None:
            raise SetorNaoEncontrado(setor_id)
        # so a partir de emExecucao: regravar checagemFinalPendente nao conclui de novo
        if atual != StatusSetor.EM_EXECUCAO:
            raise TransicaoInvalida(atual.value, StatusSetor.CHECAGEM_FINAL_PENDENTE.value)
        self._repo.marcar_producao_concluida(ciclo_id, usuario)
        return self.definir_status(setor_id, StatusSetor.CHECAGEM_FINAL_PENDENTE, usuario)

    def _verificar_sucata(self, setor_id: str, desfecho: Desfecho) -> list[str]:
        esperado = StatusSetor.SUCATEADO_PENDENTE
        try:
            lido = self._repo.ler_status(setor_id)
            if lido == esperado:
                return []
            log(f"Setor {setor_id}: status lido {lido}, esperado {esperado}; regravando")
            self._repo.forcar_status(setor_id, esperado, desfecho)
            lido = self._repo.ler_status(setor_id)
        except duckdb.Error as err:
            aviso = f"Erro ao verificar status de sucata do setor {setor_id}: {err}"
            log(aviso)
            return [aviso]
        if lido != esperado:
            aviso = f"Status de sucata do setor {setor_id} nao confirmado (lido: {lido})"
            log(aviso)
            return [aviso]
        return []
