# recuperacao/interfaces/api/erros.py
from __future__ import annotations

from recuperacao.domain.setor.errors import (
    CatalogoVazio,
    CicloNaoEncontrado,
    ErroAutenticacao,
    ErroValidacao,
    SetorNaoEncontrado,
    TransicaoInvalida,
)

_STATUS_POR_ERRO: tuple[tuple[type[Exception], int], ...] = (
    (ErroValidacao, 422),
    (ErroAutenticacao, 401),
    (SetorNaoEncontrado, 404),
    (CicloNaoEncontrado, 404),
    (TransicaoInvalida, 409),
    (CatalogoVazio, 503),
)


def status_http(erro: Exception | None) -> int:
    """Falhas de gravacao, upload e qualquer outra coisa viram 500."""
    for tipo, status in _STATUS_POR_ERRO:
        if isinstance(erro, tipo):
            return status
    return 500
