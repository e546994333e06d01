# recuperacao/domain/setor/repository.py
from __future__ import annotations

from typing import Protocol

from recuperacao.domain.usuario.entities import Usuario

from .dados import DadosSetor
from .entities import Ciclo, Setor
from .enums import Desfecho, StatusSetor
from .resultado import Resultado


class SetorRepository(Protocol):
    def listar_todos(self) -> list[Setor]: ...
    def buscar_por_id(self, setor_id: str) -> Setor | None: ...
    def buscar_por_tag(self, tag_number: str) -> list[Setor]: ...
    def historico_por_tag(self, tag_number: str) -> list[Ciclo]: ...
    def maior_cycle_count(self, tag_number: str) -> int: ...
    def adicionar(self, dados: DadosSetor, usuario: Usuario) -> Resultado[Setor]: ...
    def atualizar(self, setor_id: str, dados: DadosSetor, usuario: Usuario) -> Resultado[Setor]: ...
    def inserir(self, dados: DadosSetor, usuario: Usuario) -> Resultado[str]: ...
    def editar(self, setor_id: str, dados: DadosSetor, usuario: Usuario) -> Resultado[str]: ...
    def remover(self, setor_id: str) -> None: ...


class StatusRepository(Protocol):
    """Primitivas usadas pela transicao de status."""

    def ciclo_ativo_id(self, setor_id: str) -> str | None: ...
    def ler_status(self, setor_id: str) -> StatusSetor | None: ...
    def gravar_status(
        self,
        setor_id: str,
        ciclo_id: str,
        status: StatusSetor,
        desfecho: Desfecho,
        usuario: Usuario,
    ) -> None: ...
    def forcar_status(self, setor_id: str, status: StatusSetor, desfecho: Desfecho) -> None: ...
    def marcar_producao_concluida(self, ciclo_id: str, usuario: Usuario) -> None: ...
