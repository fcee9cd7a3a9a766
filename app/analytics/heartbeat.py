# app/analytics/heartbeat.py
"""
Contrato del lado cliente para el heartbeat de tiempo visto.

Cada ~15s el reproductor compara la posición actual con la última
reportada. Un salto mayor que JUMP_CEILING_SECONDS es un seek, no tiempo
visto real, y NO se manda como watchSeconds.
"""
from __future__ import annotations

import math

HEARTBEAT_SECONDS = 15
JUMP_CEILING_SECONDS = 40
MAX_DELTA_SECONDS = 30


class WatchHeartbeat:
    def __init__(self, position: float = 0.0):
        self.last_position = float(position)

    def reset(self, position: float = 0.0) -> None:
        self.last_position = float(position)

    def advance(self, position: float) -> int | None:
        """
        Devuelve los segundos a reportar (1..30) o None si no hay nada
        que mandar (pausa, retroceso, salto, o posición inválida).
        """
        # el reproductor puede dar NaN / inf antes de tener metadata
        if not math.isfinite(position) or position <= 0:
            return None
        delta = math.floor(position - self.last_position)
        if delta <= 0:
            return None
        self.last_position = float(position)
        if delta > JUMP_CEILING_SECONDS:
            return None
        return min(MAX_DELTA_SECONDS, max(1, delta))
