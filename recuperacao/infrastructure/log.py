# recuperacao/infrastructure/log.py
#
# Logger do servico de recuperacao.
#
# Design decisions:
#   - One log() for repositories and services: every non-fatal write error and
#     operational trace goes through it. The same errors are also returned to
#     callers as warnings (Resultado.avisos); this sink is for diagnosis only.
#   - Lines written from the submission worker threads carry the thread name,
#     so the status step and the photo-metadata step can be told apart.
#   - Plain stdout, one write per line, flushed.
from __future__ import annotations

import sys
import threading
import time

_start = time.monotonic()


def log(message: str) -> None:
    """Linha com tempo decorrido (e thread, fora da principal) no stdout."""
    minutos, segundos = divmod(int(time.monotonic() - _start), 60)
    thread = threading.current_thread()
    origem = "" if thread is threading.main_thread() else f" {thread.name}"
    sys.stdout.write(f"[recuperacao {minutos:02d}:{segundos:02d}{origem}] {message}\n")
    sys.stdout.flush()
