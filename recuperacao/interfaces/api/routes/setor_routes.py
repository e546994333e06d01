# recuperacao/interfaces/api/routes/setor_routes.py
from fastapi import APIRouter, Depends, HTTPException, Response

from recuperacao.application.dtos.setor_dto import CicloDTO, ResultadoSubmissaoDTO, SetorDTO
from recuperacao.application.services.status_service import StatusService
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.repositories.duckdb_setor_repo import DuckDBSetorRepo
from recuperacao.interfaces.api.dependencies import get_setor_repo, get_status_service, get_usuario

router = APIRouter()


def _exigir_usuario(usuario: Usuario | None) -> Usuario:
    if usuario is None:
        raise HTTPException(status_code=401, detail="Não autenticado. Faça login para continuar.")
    return usuario


@router.get("/setores", response_model=list[SetorDTO])
def listar_setores(
    repo: DuckDBSetorRepo = Depends(get_setor_repo),  # noqa: B008
) -> list[SetorDTO]:
    return [SetorDTO.from_domain(s) for s in repo.listar_todos()]


@router.get("/setores/tag/{tag_number}", response_model=list[SetorDTO])
def buscar_por_tag(
    tag_number: str,
    repo: DuckDBSetorRepo = Depends(get_setor_repo),  # noqa: B008
) -> list[SetorDTO]:
    return [SetorDTO.from_domain(s) for s in repo.buscar_por_tag(tag_number)]


@router.get("/setores/tag/{tag_number}/historico", response_model=list[CicloDTO])
def historico_por_tag(
    tag_number: str,
    repo: DuckDBSetorRepo = Depends(get_setor_repo),  # noqa: B008
) -> list[CicloDTO]:
    return [CicloDTO.from_domain(c) for c in repo.historico_por_tag(tag_number)]


@router.get("/setores/{setor_id}", response_model=SetorDTO)
def get_setor(
    setor_id: str,
    repo: DuckDBSetorRepo = Depends(get_setor_repo),  # noqa: B008
) -> SetorDTO:
    setor = repo.buscar_por_id(setor_id)
    if setor is None:
        raise HTTPException(status_code=404, detail=f"Setor não encontrado: {setor_id}")
    return SetorDTO.from_domain(setor)


@router.post("/setores/{setor_id}/producao", response_model=ResultadoSubmissaoDTO)
def concluir_producao(
    setor_id: str,
    usuario: Usuario | None = Depends(get_usuario),  # noqa: B008
    service: StatusService = Depends(get_status_service),  # noqa: B008
    repo: DuckDBSetorRepo = Depends(get_setor_repo),  # noqa: B008
) -> ResultadoSubmissaoDTO:
    avisos = service.concluir_producao(setor_id, _exigir_usuario(usuario))
    setor = repo.buscar_por_id(setor_id)
    return ResultadoSubmissaoDTO(
        sucesso=True,
        setor_id=setor_id,
        setor=SetorDTO.from_domain(setor) if setor else None,
        erro=None,
        avisos=avisos,
    )


@router.delete("/setores/{setor_id}", status_code=204)
def remover_setor(
    setor_id: str,
    usuario: Usuario | None = Depends(get_usuario),  # noqa: B008
    repo: DuckDBSetorRepo = Depends(get_setor_repo),  # noqa: B008
) -> Response:
    _exigir_usuario(usuario)
    repo.remover(setor_id)
    return Response(status_code=204)
