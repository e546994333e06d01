# recuperacao/application/services/retry.py
#
# Politica de nova tentativa para escritas do caminho principal.
#
# Design decisions:
#   - Pure parameters + an injected sleep: the attempt function receives its
#     attempt number and is free to derive a fresh input from it (e.g. a new
#     cycle_count candidate), so a collision is not replayed verbatim.
#   - Only store errors (duckdb.Error) are retried. Validation, auth and
#     not-found errors surface on the first attempt.
from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

import duckdb

from recuperacao.infrastructure.log import log

T = TypeVar("T")


@dataclass(frozen=True)
class PoliticaRetry:
    max_tentativas: int = 15
    atraso_base: float = 0.5
    retentaveis: tuple[type[BaseException], ...] = (duckdb.Error,)

    def __post_init__(self) -> None:
        if self.max_tentativas < 1:
            raise ValueError("max_tentativas deve ser >= 1")
        if self.atraso_base < 0:
            raise ValueError("atraso_base deve ser >= 0")

    def atraso(self, tentativa: int) -> float:
        """Espera antes da tentativa n (n >= 1): base, 2x base, 4x base..."""
        return self.atraso_base * 2 ** (tentativa - 1)

    def executar(
        self,
        tentativa: Callable[[int], T],
        dormir: Callable[[float], None] = time.sleep,
    ) -> T:
        ultima = self.max_tentativas - 1
        for n in range(ultima):
            if n > 0:
                dormir(self.atraso(n))
            try:
                return tentativa(n)
            except self.retentaveis as err:
                log(f"Tentativa {n + 1}/{self.max_tentativas} falhou: {err}")
        if ultima > 0:
            dormir(self.atraso(ultima))
        # ultima tentativa fora do try: o erro dela propaga
        return tentativa(ultima)
