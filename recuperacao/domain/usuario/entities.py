# recuperacao/domain/usuario/entities.py
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Usuario:
    """Principal autenticado. Passado explicitamente para servicos e repositorios."""

    id: str
    email: str | None = None

    def __post_init__(self) -> None:
        if not self.id.strip():
            raise ValueError("Usuario exige id nao-vazio")
