# recuperacao/application/services/servico_tipo_service.py
#
# Catalogo de tipos de servico com cache em memoria.
#
# Design decisions:
#   - The catalogue changes rarely; it is cached for a TTL (default 10 min).
#   - A store error with an expired cache serves the stale copy. Without any
#     cache the error propagates.
#   - An empty catalogue is a configuration error, never an empty form.
from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Protocol

import duckdb

from recuperacao.domain.setor.entities import Servico
from recuperacao.domain.setor.errors import CatalogoVazio
from recuperacao.infrastructure.log import log


class ServicoTipoRepository(Protocol):
    def listar(self) -> list[Servico]: ...


class ServicoTipoService:
    def __init__(
        self,
        repo: ServicoTipoRepository,
        ttl: float = 600.0,
        relogio: Callable[[], float] = time.monotonic,
    ) -> None:
        self._repo = repo
        self._ttl = ttl
        self._relogio = relogio
        self._lock = threading.Lock()
        self._cache: list[Servico] | None = None
        self._carregado_em = 0.0

    def listar(self) -> list[Servico]:
        with self._lock:
            agora = self._relogio()
            if self._cache is not None and agora - self._carregado_em < self._ttl:
                return list(self._cache)

            try:
                servicos = self._repo.listar()
            except duckdb.Error as err:
                if self._cache is not None:
                    log(f"Erro ao buscar tipos de servico; usando cache expirado: {err}")
                    return list(self._cache)
                raise

            if not servicos:
                raise CatalogoVazio()

            log(f"{len(servicos)} tipos de servico carregados")
            self._cache = servicos
            self._carregado_em = agora
            return list(servicos)

    def limpar_cache(self) -> None:
        with self._lock:
            self._cache = None
            self._carregado_em = 0.0
