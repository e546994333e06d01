# recuperacao/infrastructure/repositories/duckdb_setor_repo.py
#
# CRUD de setores, ciclos, selecao de servicos e fotos.
#
# Design decisions:
#   - Active cycle = most recent cycle by created_at (LIMIT 1). The same
#     query shape is used everywhere a sector's cycle must be located.
#   - Creation is sequenced: sector row, then cycle row. A failed cycle insert
#     deletes the sector row before re-raising, so no orphan sector survives.
#   - Sector/cycle writes are the primary path: failures propagate and the
#     caller decides retry/abort. Join-table and photo rows are non-critical:
#     failures are logged and accumulated in Resultado.avisos.
#   - Service selection is reconciled by diff (upsert selected, delete
#     explicitly unselected, leave absent services alone). A `completed` flag
#     set during checagem is never lost by a later edit that omits it.
#   - inserir/editar only write and return the sector id. Retried callers use
#     them so a failed re-read is never mistaken for a failed write;
#     adicionar/atualizar add the re-read for direct callers.
#   - Every public method opens its own cursor so the status transition and
#     the photo metadata write can run on separate threads.
from __future__ import annotations

import uuid
from collections.abc import Iterable
from datetime import datetime
from typing import Any

import duckdb

from recuperacao.domain.setor.dados import DadosSetor, ServicoEscrita
from recuperacao.domain.setor.entities import Ciclo, Foto, Servico, Setor
from recuperacao.domain.setor.enums import Desfecho, Etapa, StatusSetor, TipoFoto
from recuperacao.domain.setor.errors import CicloNaoEncontrado, SetorNaoEncontrado
from recuperacao.domain.setor.resultado import Resultado
from recuperacao.domain.setor.status import exigir_transicao
from recuperacao.domain.usuario.entities import Usuario
from recuperacao.infrastructure.log import log

from .duckdb_foto_repo import inserir_fotos_novas
from .mappers import agrupar_fotos, mapear_ciclo, mapear_servicos, mapear_setor, setor_minimo

# Status em que um setor sem ciclo ainda e exibido (queda entre os dois inserts).
_STATUS_PARCIAL_VISIVEL = {StatusSetor.PERITAGEM_PENDENTE.value, StatusSetor.EM_EXECUCAO.value}

# Campo de DadosSetor -> coluna de cycles.
_COLUNAS_CICLO: dict[str, str] = {
    "tag_number": "tag_number",
    "nota_entrada": "entry_invoice",
    "data_entrada": "entry_date",
    "data_peritagem": "peritagem_date",
    "observacoes_entrada": "entry_observations",
    "producao_concluida": "production_completed",
    "nota_saida": "exit_invoice",
    "data_saida": "exit_date",
    "observacoes_saida": "exit_observations",
    "data_checagem": "checagem_date",
    "observacoes_sucata": "scrap_observations",
    "nota_retorno_sucata": "scrap_return_invoice",
    "data_retorno_sucata": "scrap_return_date",
    "sucata_validada": "scrap_validated",
}

_SQL_CICLO_ATIVO = "SELECT * FROM cycles WHERE sector_id = ? ORDER BY created_at DESC LIMIT 1"


def _linhas(cur: duckdb.DuckDBPyConnection) -> list[dict[str, Any]]:
    colunas = [d[0] for d in cur.description or []]
    return [dict(zip(colunas, r)) for r in cur.fetchall()]


def _primeira(cur: duckdb.DuckDBPyConnection) -> dict[str, Any] | None:
    linhas = _linhas(cur)
    return linhas[0] if linhas else None


class DuckDBSetorRepo:
    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    # ------------------------------------------------------------------
    # Leitura
    # ------------------------------------------------------------------

    def listar_todos(self) -> list[Setor]:
        with self._conn.cursor() as cur:
            setores = _linhas(cur.execute("SELECT * FROM sectors ORDER BY tag_number, cycle_count"))
            servicos_tipo = self._servicos_tipo(cur)
            resultado: list[Setor] = []
            for setor in setores:
                try:
                    expandido = self._expandir(cur, setor, servicos_tipo)
                except duckdb.Error as err:
                    log(f"Erro ao processar o setor {setor['id']}: {err}")
                    continue
                if expandido is not None:
                    resultado.append(expandido)
        log(f"{len(resultado)} de {len(setores)} setores carregados")
        return resultado

    def buscar_por_id(self, setor_id: str) -> Setor | None:
        try:
            with self._conn.cursor() as cur:
                setor = _primeira(cur.execute("SELECT * FROM sectors WHERE id = ?", [setor_id]))
                if setor is None:
                    return None
                return self._expandir(cur, setor, self._servicos_tipo(cur))
        except duckdb.PermissionException as err:
            log(f"Acesso negado ao setor {setor_id}: {err}")
            return None

    def buscar_por_tag(self, tag_number: str) -> list[Setor]:
        """Busca parcial, sem diferenciar maiusculas. Expande cada setor encontrado."""
        with self._conn.cursor() as cur:
            setores = _linhas(
                cur.execute(
                    "SELECT * FROM sectors WHERE tag_number ILIKE ? ORDER BY tag_number, cycle_count",
                    [f"%{tag_number}%"],
                )
            )
            servicos_tipo = self._servicos_tipo(cur)
            expandidos = (self._expandir(cur, s, servicos_tipo) for s in setores)
            return [s for s in expandidos if s is not None]

    def historico_por_tag(self, tag_number: str) -> list[Ciclo]:
        """Todos os ciclos da unidade fisica, do mais antigo ao mais recente."""
        with self._conn.cursor() as cur:
            ciclos = _linhas(
                cur.execute(
                    """SELECT c.* FROM cycles c
                       JOIN sectors s ON s.id = c.sector_id
                       WHERE lower(s.tag_number) = lower(?)
                       ORDER BY s.cycle_count, c.created_at""",
                    [tag_number],
                )
            )
            servicos_tipo = self._servicos_tipo(cur)
            return [self._montar_ciclo(cur, c, servicos_tipo) for c in ciclos]

    def maior_cycle_count(self, tag_number: str) -> int:
        with self._conn.cursor() as cur:
            row = cur.execute(
                "SELECT coalesce(max(cycle_count), 0) FROM sectors WHERE lower(tag_number) = lower(?)",
                [tag_number],
            ).fetchone()
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # Escrita
    # ------------------------------------------------------------------

    def adicionar(self, dados: DadosSetor, usuario: Usuario) -> Resultado[Setor]:
        gravado = self.inserir(dados, usuario)
        return Resultado(self._recarregar(gravado.valor), gravado.avisos)

    def atualizar(self, setor_id: str, dados: DadosSetor, usuario: Usuario) -> Resultado[Setor]:
        gravado = self.editar(setor_id, dados, usuario)
        return Resultado(self._recarregar(gravado.valor), gravado.avisos)

    def inserir(self, dados: DadosSetor, usuario: Usuario) -> Resultado[str]:
        """So as escritas da criacao, sem releitura. Devolve o id do setor novo."""
        if not dados.tag_number or not dados.nota_entrada:
            raise ValueError("Setor novo exige tag_number e nota_entrada")

        setor_id = str(uuid.uuid4())
        ciclo_id = str(uuid.uuid4())
        agora = dados.atualizado_em
        avisos: list[str] = []

        with self._conn.cursor() as cur:
            # 1. setor
            cur.execute(
                """INSERT INTO sectors (id, tag_number, tag_photo_url, cycle_count,
                       current_status, current_outcome, created_by, updated_by,
                       created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                [
                    setor_id,
                    dados.tag_number,
                    dados.tag_photo_url,
                    dados.cycle_count or 1,
                    dados.status.value,
                    dados.desfecho.value,
                    usuario.id,
                    usuario.id,
                    agora,
                    agora,
                ],
            )

            # 2. ciclo, com compensacao do setor
            try:
                self._inserir_ciclo(cur, ciclo_id, setor_id, dados, usuario)
            except duckdb.Error as err:
                log(f"Erro ao inserir ciclo do setor {setor_id}: {err}")
                try:
                    cur.execute("DELETE FROM sectors WHERE id = ?", [setor_id])
                except duckdb.Error as del_err:
                    log(f"Erro ao remover setor orfao {setor_id}: {del_err}")
                raise

            # 3. servicos selecionados
            for servico in dados.servicos_selecionados:
                avisos.extend(self._inserir_servico(cur, ciclo_id, setor_id, servico))

            # 4. fotos (before, sucata na entrada) e 5. foto da TAG
            avisos.extend(
                inserir_fotos_novas(
                    cur, ciclo_id, setor_id, dados.fotos_antes, TipoFoto.BEFORE, Etapa.PERITAGEM, usuario
                )
            )
            avisos.extend(
                inserir_fotos_novas(
                    cur, ciclo_id, setor_id, dados.fotos_sucata, TipoFoto.SCRAP, Etapa.SUCATEAMENTO, usuario
                )
            )
            if dados.tag_photo_url:
                avisos.extend(self._inserir_tag(cur, ciclo_id, setor_id, dados.tag_photo_url, usuario))

        log(f"Setor {setor_id} criado (TAG {dados.tag_number}, ciclo {dados.cycle_count or 1})")
        return Resultado(setor_id, tuple(avisos))

    def editar(self, setor_id: str, dados: DadosSetor, usuario: Usuario) -> Resultado[str]:
        avisos: list[str] = []
        with self._conn.cursor() as cur:
            setor = _primeira(
                cur.execute("SELECT tag_number, current_status FROM sectors WHERE id = ?", [setor_id])
            )
            if setor is None:
                raise SetorNaoEncontrado(setor_id)
            ciclo = _primeira(cur.execute(_SQL_CICLO_ATIVO, [setor_id]))
            if ciclo is None:
                raise CicloNaoEncontrado(setor_id)
            ciclo_id = str(ciclo["id"])
            exigir_transicao(StatusSetor(str(ciclo["status"])), dados.status)

            # setor
            campos_setor: dict[str, object] = {
                "current_status": dados.status.value,
                "current_outcome": dados.desfecho.value,
                "updated_by": usuario.id,
                "updated_at": dados.atualizado_em,
            }
            if dados.tag_photo_url is not None:
                campos_setor["tag_photo_url"] = dados.tag_photo_url
            # tag_number integra a UNIQUE: so reescrever quando muda de fato
            if dados.tag_number is not None and dados.tag_number != setor["tag_number"]:
                campos_setor["tag_number"] = dados.tag_number
            self._atualizar_linha(cur, "sectors", setor_id, campos_setor)

            # ciclo
            campos_ciclo: dict[str, object] = {
                "status": dados.status.value,
                "outcome": dados.desfecho.value,
                "updated_by": usuario.id,
                "updated_at": dados.atualizado_em,
            }
            for campo, coluna in _COLUNAS_CICLO.items():
                valor = getattr(dados, campo)
                if valor is not None:
                    campos_ciclo[coluna] = valor
            self._atualizar_linha(cur, "cycles", ciclo_id, campos_ciclo)

            # servicos
            if dados.servicos is not None:
                avisos.extend(self._reconciliar_servicos(cur, ciclo_id, setor_id, dados.servicos))

            # fotos novas por par ciclo+tipo
            for fotos, tipo, etapa in (
                (dados.fotos_antes, TipoFoto.BEFORE, Etapa.PERITAGEM),
                (dados.fotos_depois, TipoFoto.AFTER, Etapa.CHECAGEM),
                (dados.fotos_sucata, TipoFoto.SCRAP, Etapa.SUCATEAMENTO),
            ):
                avisos.extend(inserir_fotos_novas(cur, ciclo_id, setor_id, fotos, tipo, etapa, usuario))
            if dados.tag_photo_url:
                avisos.extend(self._inserir_tag(cur, ciclo_id, setor_id, dados.tag_photo_url, usuario))

        return Resultado(setor_id, tuple(avisos))

    def remover(self, setor_id: str) -> None:
        """Remove o setor e seus dependentes, filhos primeiro, numa transacao."""
        with self._conn.cursor() as cur:
            if cur.execute("SELECT 1 FROM sectors WHERE id = ?", [setor_id]).fetchone() is None:
                raise SetorNaoEncontrado(setor_id)
            cur.begin()
            try:
                ciclos = "SELECT id FROM cycles WHERE sector_id = ?"
                cur.execute(f"DELETE FROM photos WHERE cycle_id IN ({ciclos})", [setor_id])
                cur.execute(f"DELETE FROM cycle_services WHERE cycle_id IN ({ciclos})", [setor_id])
                cur.execute("DELETE FROM sector_services WHERE sector_id = ?", [setor_id])
                cur.execute("DELETE FROM cycles WHERE sector_id = ?", [setor_id])
                cur.execute("DELETE FROM sectors WHERE id = ?", [setor_id])
                cur.commit()
            except duckdb.Error:
                cur.rollback()
                raise
        log(f"Setor {setor_id} removido")

    # ------------------------------------------------------------------
    # Primitivas de status
    # ------------------------------------------------------------------

    def ciclo_ativo_id(self, setor_id: str) -> str | None:
        with self._conn.cursor() as cur:
            row = cur.execute(
                "SELECT id FROM cycles WHERE sector_id = ? ORDER BY created_at DESC LIMIT 1",
                [setor_id],
            ).fetchone()
        return str(row[0]) if row else None

    def ler_status(self, setor_id: str) -> StatusSetor | None:
        with self._conn.cursor() as cur:
            row = cur.execute("SELECT current_status FROM sectors WHERE id = ?", [setor_id]).fetchone()
        if row is None:
            return None
        try:
            return StatusSetor(str(row[0]))
        except ValueError:
            return None

    def gravar_status(
        self,
        setor_id: str,
        ciclo_id: str,
        status: StatusSetor,
        desfecho: Desfecho,
        usuario: Usuario,
    ) -> None:
        agora = datetime.now()
        with self._conn.cursor() as cur:
            self._atualizar_linha(
                cur,
                "sectors",
                setor_id,
                {
                    "current_status": status.value,
                    "current_outcome": desfecho.value,
                    "updated_by": usuario.id,
                    "updated_at": agora,
                },
            )
            self._atualizar_linha(
                cur,
                "cycles",
                ciclo_id,
                {
                    "status": status.value,
                    "outcome": desfecho.value,
                    "updated_by": usuario.id,
                    "updated_at": agora,
                },
            )

    def forcar_status(self, setor_id: str, status: StatusSetor, desfecho: Desfecho) -> None:
        with self._conn.cursor() as cur:
            self._atualizar_linha(
                cur,
                "sectors",
                setor_id,
                {
                    "current_status": status.value,
                    "current_outcome": desfecho.value,
                    "updated_at": datetime.now(),
                },
            )

    def marcar_producao_concluida(self, ciclo_id: str, usuario: Usuario) -> None:
        with self._conn.cursor() as cur:
            cur.execute(
                "UPDATE cycles SET production_completed = TRUE, updated_by = ? WHERE id = ?",
                [usuario.id, ciclo_id],
            )

    # ------------------------------------------------------------------
    # Internos
    # ------------------------------------------------------------------

    def _recarregar(self, setor_id: str) -> Setor:
        setor = self.buscar_por_id(setor_id)
        if setor is None:
            raise SetorNaoEncontrado(setor_id)
        return setor

    def _servicos_tipo(self, cur: duckdb.DuckDBPyConnection) -> list[dict[str, Any]]:
        return _linhas(cur.execute("SELECT * FROM service_types ORDER BY name"))

    def _expandir(
        self,
        cur: duckdb.DuckDBPyConnection,
        setor: dict[str, Any],
        servicos_tipo: list[dict[str, Any]],
    ) -> Setor | None:
        """Setor + ciclo ativo + historico. Sem ciclo: setor minimo ou None."""
        ciclo = _primeira(cur.execute(_SQL_CICLO_ATIVO, [setor["id"]]))
        if ciclo is None:
            status = str(setor.get("current_status"))
            if status in _STATUS_PARCIAL_VISIVEL:
                log(f"Setor {setor['tag_number']} sem ciclo; exibindo registro minimo ({status})")
                return setor_minimo(setor)
            log(f"Setor {setor['id']} sem ciclo com status {status}; ignorado")
            return None

        servicos, fotos_rows = self._servicos_e_fotos(cur, ciclo, servicos_tipo)
        grupos = agrupar_fotos(fotos_rows)
        tag_fotos = grupos[TipoFoto.TAG]
        return mapear_setor(
            setor,
            ciclo,
            servicos,
            grupos[TipoFoto.BEFORE],
            grupos[TipoFoto.AFTER],
            grupos[TipoFoto.SCRAP],
            ciclos_anteriores=self._ciclos_anteriores(cur, setor, str(ciclo["id"]), servicos_tipo),
            tag_photo_url=tag_fotos[-1].url if tag_fotos else None,
        )

    def _ciclos_anteriores(
        self,
        cur: duckdb.DuckDBPyConnection,
        setor: dict[str, Any],
        ciclo_ativo_id: str,
        servicos_tipo: list[dict[str, Any]],
    ) -> list[Ciclo]:
        """Ciclos antigos do proprio setor + ciclos de passagens anteriores da mesma TAG."""
        linhas = _linhas(
            cur.execute(
                """SELECT c.* FROM cycles c
                   JOIN sectors s ON s.id = c.sector_id
                   WHERE (c.sector_id = ? AND c.id <> ?)
                      OR (lower(s.tag_number) = lower(?) AND s.cycle_count < ?)
                   ORDER BY s.cycle_count, c.created_at""",
                [setor["id"], ciclo_ativo_id, setor["tag_number"], setor["cycle_count"]],
            )
        )
        return [self._montar_ciclo(cur, c, servicos_tipo) for c in linhas]

    def _montar_ciclo(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo: dict[str, Any],
        servicos_tipo: list[dict[str, Any]],
    ) -> Ciclo:
        servicos, fotos_rows = self._servicos_e_fotos(cur, ciclo, servicos_tipo)
        grupos = agrupar_fotos(fotos_rows)
        return mapear_ciclo(
            ciclo, servicos, grupos[TipoFoto.BEFORE], grupos[TipoFoto.AFTER], grupos[TipoFoto.SCRAP]
        )

    def _servicos_e_fotos(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo: dict[str, Any],
        servicos_tipo: list[dict[str, Any]],
    ) -> tuple[tuple[Servico, ...], list[dict[str, Any]]]:
        ciclo_servicos = _linhas(
            cur.execute("SELECT * FROM cycle_services WHERE cycle_id = ?", [ciclo["id"]])
        )
        fotos = _linhas(
            cur.execute("SELECT * FROM photos WHERE cycle_id = ? ORDER BY created_at", [ciclo["id"]])
        )
        return mapear_servicos(servicos_tipo, ciclo_servicos, fotos), fotos

    def _inserir_ciclo(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo_id: str,
        setor_id: str,
        dados: DadosSetor,
        usuario: Usuario,
    ) -> None:
        valores: dict[str, object] = {
            "id": ciclo_id,
            "sector_id": setor_id,
            "status": dados.status.value,
            "outcome": dados.desfecho.value,
            "production_completed": False,
            "scrap_validated": False,
            "created_by": usuario.id,
            "updated_by": usuario.id,
            "created_at": dados.atualizado_em,
            "updated_at": dados.atualizado_em,
        }
        for campo, coluna in _COLUNAS_CICLO.items():
            valor = getattr(dados, campo)
            if valor is not None:
                valores[coluna] = valor
        colunas = ", ".join(valores)
        marcadores = ", ".join("?" for _ in valores)
        cur.execute(f"INSERT INTO cycles ({colunas}) VALUES ({marcadores})", list(valores.values()))

    def _inserir_servico(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo_id: str,
        setor_id: str,
        servico: ServicoEscrita,
    ) -> list[str]:
        """Duas tabelas de juncao gravadas de forma independente. Falha vira aviso."""
        avisos: list[str] = []
        try:
            cur.execute(
                """INSERT INTO cycle_services (id, cycle_id, service_id, selected, quantity,
                       observations, completed)
                   VALUES (?, ?, ?, TRUE, ?, ?, ?)""",
                [
                    str(uuid.uuid4()),
                    ciclo_id,
                    servico.id,
                    servico.quantidade or 1,
                    servico.observacoes,
                    bool(servico.concluido),
                ],
            )
        except duckdb.Error as err:
            avisos.append(self._aviso(f"Erro ao inserir servico {servico.id} em cycle_services: {err}"))
        try:
            cur.execute(
                """INSERT INTO sector_services (id, sector_id, service_id, quantity, stage, selected)
                   VALUES (?, ?, ?, ?, ?, TRUE)""",
                [str(uuid.uuid4()), setor_id, servico.id, servico.quantidade or 1, Etapa.PERITAGEM.value],
            )
        except duckdb.Error as err:
            avisos.append(self._aviso(f"Erro ao inserir servico {servico.id} em sector_services: {err}"))
        return avisos

    def _reconciliar_servicos(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo_id: str,
        setor_id: str,
        servicos: Iterable[ServicoEscrita],
    ) -> list[str]:
        avisos: list[str] = []
        for servico in servicos:
            if not servico.selecionado:
                try:
                    cur.execute(
                        "DELETE FROM cycle_services WHERE cycle_id = ? AND service_id = ?",
                        [ciclo_id, servico.id],
                    )
                    cur.execute(
                        "DELETE FROM sector_services WHERE sector_id = ? AND service_id = ?",
                        [setor_id, servico.id],
                    )
                except duckdb.Error as err:
                    avisos.append(self._aviso(f"Erro ao remover servico {servico.id}: {err}"))
                continue

            existente = cur.execute(
                "SELECT id FROM cycle_services WHERE cycle_id = ? AND service_id = ?",
                [ciclo_id, servico.id],
            ).fetchone()
            if existente is None:
                avisos.extend(self._inserir_servico_ausente(cur, ciclo_id, setor_id, servico))
                continue
            try:
                cur.execute(
                    """UPDATE cycle_services
                       SET selected = TRUE,
                           quantity = coalesce(?, quantity),
                           observations = coalesce(?, observations),
                           completed = coalesce(?, completed)
                       WHERE id = ?""",
                    [servico.quantidade, servico.observacoes, servico.concluido, existente[0]],
                )
                cur.execute(
                    """UPDATE sector_services SET quantity = coalesce(?, quantity)
                       WHERE sector_id = ? AND service_id = ?""",
                    [servico.quantidade, setor_id, servico.id],
                )
            except duckdb.Error as err:
                avisos.append(self._aviso(f"Erro ao atualizar servico {servico.id}: {err}"))
        return avisos

    def _inserir_servico_ausente(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo_id: str,
        setor_id: str,
        servico: ServicoEscrita,
    ) -> list[str]:
        # sector_services pode ter sobrado de uma falha parcial anterior
        try:
            cur.execute(
                "DELETE FROM sector_services WHERE sector_id = ? AND service_id = ?",
                [setor_id, servico.id],
            )
        except duckdb.Error as err:
            return [self._aviso(f"Erro ao limpar servico {servico.id} em sector_services: {err}")]
        return self._inserir_servico(cur, ciclo_id, setor_id, servico)

    def _inserir_tag(
        self,
        cur: duckdb.DuckDBPyConnection,
        ciclo_id: str,
        setor_id: str,
        url: str,
        usuario: Usuario,
    ) -> list[str]:
        tag = Foto(id="", url=url, tipo=TipoFoto.TAG)
        return inserir_fotos_novas(cur, ciclo_id, setor_id, [tag], TipoFoto.TAG, Etapa.PERITAGEM, usuario)

    @staticmethod
    def _atualizar_linha(
        cur: duckdb.DuckDBPyConnection,
        tabela: str,
        linha_id: str,
        campos: dict[str, object],
    ) -> None:
        """Tabela e colunas vem de constantes deste modulo, nunca de entrada externa."""
        atribuicoes = ", ".join(f"{coluna} = ?" for coluna in campos)
        cur.execute(
            f"UPDATE {tabela} SET {atribuicoes} WHERE id = ?",
            [*campos.values(), linha_id],
        )

    @staticmethod
    def _aviso(mensagem: str) -> str:
        log(mensagem)
        return mensagem
