# recuperacao/interfaces/api/routes/submissao_routes.py
from typing import Annotated

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from recuperacao.application.dtos.setor_dto import ResultadoSubmissaoDTO, SetorDTO
from recuperacao.application.dtos.submissao_dto import PayloadUnion
from recuperacao.application.services.submissao_service import ResultadoSubmissao, SubmissaoService
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.interfaces.api.dependencies import get_submissao_service, get_usuario
from recuperacao.interfaces.api.erros import status_http

router = APIRouter()


def _responder(resultado: ResultadoSubmissao) -> JSONResponse:
    dto = ResultadoSubmissaoDTO(
        sucesso=resultado.sucesso,
        setor_id=resultado.setor_id,
        setor=SetorDTO.from_domain(resultado.setor) if resultado.setor else None,
        erro=resultado.erro,
        avisos=list(resultado.avisos),
    )
    status_code = 200 if resultado.sucesso else status_http(resultado.excecao)
    return JSONResponse(status_code=status_code, content=dto.model_dump(mode="json"))


@router.post("/submissoes", response_model=ResultadoSubmissaoDTO)
def submeter_novo(
    payload: Annotated[PayloadUnion, Body(discriminator="kind")],
    usuario: Usuario | None = Depends(get_usuario),  # noqa: B008
    service: SubmissaoService = Depends(get_submissao_service),  # noqa: B008
) -> JSONResponse:
    return _responder(service.submeter(payload, usuario))


@router.post("/setores/{setor_id}/submissoes", response_model=ResultadoSubmissaoDTO)
def submeter_edicao(
    setor_id: str,
    payload: Annotated[PayloadUnion, Body(discriminator="kind")],
    usuario: Usuario | None = Depends(get_usuario),  # noqa: B008
    service: SubmissaoService = Depends(get_submissao_service),  # noqa: B008
) -> JSONResponse:
    return _responder(service.submeter(payload, usuario, setor_id))
