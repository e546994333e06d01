# recuperacao/domain/setor/enums.py
from enum import StrEnum


class StatusSetor(StrEnum):
    PERITAGEM_PENDENTE = "peritagemPendente"
    EM_EXECUCAO = "emExecucao"
    CHECAGEM_FINAL_PENDENTE = "checagemFinalPendente"
    CONCLUIDO = "concluido"
    SUCATEADO_PENDENTE = "sucateadoPendente"
    SUCATEADO = "sucateado"


class Desfecho(StrEnum):
    EM_ANDAMENTO = "EmAndamento"
    RECUPERADO = "Recuperado"
    SUCATEADO = "Sucateado"


class TipoFoto(StrEnum):
    TAG = "tag"
    BEFORE = "before"  # peritagem
    AFTER = "after"    # checagem
    SCRAP = "scrap"


class Etapa(StrEnum):
    """Etapa gravada no metadata das fotos."""

    PERITAGEM = "peritagem"
    CHECAGEM = "checagem"
    SUCATEAMENTO = "sucateamento"
