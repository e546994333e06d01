# recuperacao/domain/setor/status.py
"""Maquina de estados do setor. Estagios e transicoes sao fixos.

Fluxo normal:  peritagemPendente -> emExecucao -> checagemFinalPendente -> concluido
Sucateamento:  peritagemPendente | emExecucao -> sucateadoPendente -> sucateado

Nenhuma transicao volta para peritagemPendente. concluido e sucateado sao terminais.
"""
from __future__ import annotations

from .enums import Desfecho, StatusSetor
from .errors import TransicaoInvalida

TERMINAIS: frozenset[StatusSetor] = frozenset({StatusSetor.CONCLUIDO, StatusSetor.SUCATEADO})

TRANSITORIOS: frozenset[StatusSetor] = frozenset(StatusSetor) - TERMINAIS

TRANSICOES: dict[StatusSetor, frozenset[StatusSetor]] = {
    StatusSetor.PERITAGEM_PENDENTE: frozenset(
        {StatusSetor.EM_EXECUCAO, StatusSetor.SUCATEADO_PENDENTE}
    ),
    StatusSetor.EM_EXECUCAO: frozenset(
        {StatusSetor.CHECAGEM_FINAL_PENDENTE, StatusSetor.SUCATEADO_PENDENTE}
    ),
    StatusSetor.CHECAGEM_FINAL_PENDENTE: frozenset({StatusSetor.CONCLUIDO}),
    StatusSetor.SUCATEADO_PENDENTE: frozenset({StatusSetor.SUCATEADO}),
    StatusSetor.CONCLUIDO: frozenset(),
    StatusSetor.SUCATEADO: frozenset(),
}

_DESFECHO_PADRAO: dict[StatusSetor, Desfecho] = {
    StatusSetor.CONCLUIDO: Desfecho.RECUPERADO,
    StatusSetor.SUCATEADO: Desfecho.SUCATEADO,
}


def eh_terminal(status: StatusSetor) -> bool:
    return status in TERMINAIS


def pode_transicionar(atual: StatusSetor, novo: StatusSetor) -> bool:
    """Regravar o mesmo status transitorio e permitido (edicao de um ciclo aberto)."""
    if eh_terminal(atual):
        return False
    if atual == novo:
        return True
    return novo in TRANSICOES[atual]


def exigir_transicao(atual: StatusSetor, novo: StatusSetor) -> None:
    if not pode_transicionar(atual, novo):
        raise TransicaoInvalida(atual.value, novo.value)


def desfecho_para(status: StatusSetor) -> Desfecho:
    return _DESFECHO_PADRAO.get(status, Desfecho.EM_ANDAMENTO)
