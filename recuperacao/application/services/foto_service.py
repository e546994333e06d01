# recuperacao/application/services/foto_service.py
from __future__ import annotations

import uuid
from collections.abc import Iterable

from recuperacao.application.dtos.submissao_dto import FotoEntrada, ServicoEntrada
from recuperacao.domain.setor.dados import ServicoEscrita
from recuperacao.domain.setor.entities import Foto
from recuperacao.infrastructure.storage_uploader import PhotoUploader


class FotoService:
    """Transforma fotos do formulario em Fotos com URL estavel.

    Fotos com URL sao mantidas, fotos com conteudo sao enviadas ao storage,
    entradas vazias sao descartadas. Falha de upload propaga (ErroUpload).
    """

    def __init__(self, uploader: PhotoUploader) -> None:
        self._uploader = uploader

    def processar(
        self,
        fotos: Iterable[FotoEntrada],
        pasta: str,
        servico_id: str | None = None,
    ) -> list[Foto]:
        processadas: list[Foto] = []
        for foto in fotos:
            url = foto.url
            if not url and foto.conteudo:
                nome = foto.nome_arquivo or f"{foto.tipo}.jpg"
                url = self._uploader.upload(foto.conteudo, nome, pasta)
            if not url:
                continue
            processadas.append(
                Foto(id=foto.id or str(uuid.uuid4()), url=url, tipo=foto.tipo, servico_id=servico_id)
            )
        return processadas

    def processar_servicos(
        self,
        servicos: Iterable[ServicoEntrada],
        pasta: str,
    ) -> tuple[ServicoEscrita, ...]:
        """Servicos selecionados levam suas fotos processadas; os demais, nenhuma."""
        return tuple(
            ServicoEscrita(
                id=s.id,
                nome=s.nome,
                selecionado=s.selecionado,
                quantidade=s.quantidade,
                observacoes=s.observacoes,
                concluido=s.concluido,
                fotos=tuple(self.processar(s.fotos, f"{pasta}/{s.id}", s.id)) if s.selecionado else (),
            )
            for s in servicos
        )

    def processar_tag(
        self,
        tag_photo_url: str | None,
        foto_tag: FotoEntrada | None,
        pasta: str,
    ) -> str | None:
        if tag_photo_url:
            return tag_photo_url
        if foto_tag is None:
            return None
        fotos = self.processar([foto_tag], pasta)
        return fotos[0].url if fotos else None
