# recuperacao/interfaces/api/main.py
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recuperacao.domain.setor.errors import ErroRecuperacao
from recuperacao.infrastructure.config import get_settings
from recuperacao.interfaces.api.erros import status_http


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    from recuperacao.infrastructure.duckdb_connection import get_connection
    get_connection()  # valida conexao e schema no startup
    yield


app = FastAPI(
    title="Recuperacao de Setores API",
    debug=get_settings().debug,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url=None,
)


@app.middleware("http")
async def add_security_headers(request: Request, call_next: object) -> Response:
    response = await call_next(request)  # type: ignore[misc]
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response  # type: ignore[return-value]


@app.exception_handler(ErroRecuperacao)
async def erro_recuperacao_handler(request: Request, exc: ErroRecuperacao) -> JSONResponse:
    return JSONResponse(status_code=status_http(exc), content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173"],
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
)

from recuperacao.interfaces.api.routes.servico_routes import router as servico_router  # noqa: E402
from recuperacao.interfaces.api.routes.setor_routes import router as setor_router  # noqa: E402
from recuperacao.interfaces.api.routes.submissao_routes import router as submissao_router  # noqa: E402

app.include_router(setor_router, prefix="/api")
app.include_router(submissao_router, prefix="/api")
app.include_router(servico_router, prefix="/api")
