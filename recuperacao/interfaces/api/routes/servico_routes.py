# recuperacao/interfaces/api/routes/servico_routes.py
from fastapi import APIRouter, Depends

from recuperacao.application.dtos.setor_dto import ServicoDTO
from recuperacao.application.services.servico_tipo_service import ServicoTipoService
from recuperacao.interfaces.api.dependencies import get_servico_tipo_service

router = APIRouter()


@router.get("/servicos", response_model=list[ServicoDTO])
def listar_servicos(
    service: ServicoTipoService = Depends(get_servico_tipo_service),  # noqa: B008
) -> list[ServicoDTO]:
    return [ServicoDTO.from_domain(s) for s in service.listar()]
