# recuperacao/domain/setor/resultado.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Resultado(Generic[T]):
    """Valor de sucesso + avisos nao-fatais acumulados no caminho.

    Avisos vem de escritas reparaveis por uma edicao posterior (tabelas de
    juncao, linhas de foto). Nunca contem erros do caminho principal: esses
    sao levantados como excecao.
    """

    valor: T
    avisos: tuple[str, ...] = field(default=())

    @property
    def limpo(self) -> bool:
        return not self.avisos
