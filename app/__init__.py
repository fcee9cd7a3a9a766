# app/__init__.py
"""
Inicialización del paquete `app`.

En Windows forzamos el Proactor event loop: con el selector por defecto,
los streams largos (proxy de video, SSE) terminan con

    Fatal write error on socket transport

cuando el cliente corta la conexión. Se aplica al importar `app`
(uvicorn, alembic, tests).
"""

import sys
import asyncio

if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())
