# recuperacao/domain/setor/ciclos.py
"""Candidatos de cycle_count. Funcao pura, sem IO.

O cycle_count e derivado do maior valor ja gravado para a TAG. Duas entradas
simultaneas da mesma TAG leem o mesmo maximo e colidem na constraint
UNIQUE (tag_number, cycle_count); a colisao e esperada e a nova tentativa
precisa sortear um candidato diferente do anterior.
"""
from __future__ import annotations


def proximo_cycle_count(maior_existente: int, anterior: int | None = None) -> int:
    """Nunca repete o candidato anterior, mesmo que a releitura do maximo esteja atrasada."""
    base = max(maior_existente, anterior or 0, 0)
    return base + 1
