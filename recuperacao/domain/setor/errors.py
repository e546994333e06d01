# recuperacao/domain/setor/errors.py
from __future__ import annotations


class ErroRecuperacao(Exception):
    """Base de todos os erros do ciclo de recuperacao."""


class ErroValidacao(ErroRecuperacao):
    """Dados de formulario incompletos. Mensagem exibida ao usuario sem alteracao."""


class ErroAutenticacao(ErroRecuperacao):
    def __init__(self, mensagem: str = "Não autenticado. Faça login para continuar.") -> None:
        super().__init__(mensagem)


class SetorNaoEncontrado(ErroRecuperacao):
    def __init__(self, setor_id: str) -> None:
        super().__init__(f"Setor não encontrado: {setor_id}")
        self.setor_id = setor_id


class CicloNaoEncontrado(ErroRecuperacao):
    def __init__(self, setor_id: str) -> None:
        super().__init__("Ciclo não encontrado")
        self.setor_id = setor_id


class TransicaoInvalida(ErroRecuperacao):
    def __init__(self, atual: str, novo: str) -> None:
        super().__init__(f"Transicao de status invalida: {atual} -> {novo}")
        self.atual = atual
        self.novo = novo


class ErroUpload(ErroRecuperacao):
    """Falha do colaborador de upload de fotos."""


class CatalogoVazio(ErroRecuperacao):
    def __init__(self) -> None:
        super().__init__(
            "Não foram encontrados serviços disponíveis. "
            "Verifique se a tabela 'service_types' está corretamente configurada."
        )
