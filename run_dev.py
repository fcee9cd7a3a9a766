# run_dev.py
import os
import sys
import asyncio
import socket


# 1) Forzar Proactor también aquí (por si corres este script directo)
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsProactorEventLoopPolicy())


# 2) Carga .env si existe (antes de importar la app: settings lo lee al importar)
if os.path.exists(".env"):
    from dotenv import load_dotenv
    load_dotenv(".env")


APP_MODULE = os.getenv("APP_MODULE", "app.main:app")


def _lan_ip() -> str:
    """Obtiene IP LAN real sin depender de hostname/DNS."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "127.0.0.1"


def main():
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    # 👇 reload desde env; por defecto ON
    # ojo: con reload, cada cambio corta los streams y canales live abiertos
    reload_flag = os.getenv("RELOAD", "1").strip().lower() in ("1", "true", "yes", "on")

    print(f"🔗 API local: http://127.0.0.1:{port}")
    print(f"📱 API LAN:   http://{_lan_ip()}:{port}")
    print(f"📈 live:      http://127.0.0.1:{port}/api/admin/live?token=<admin>")
    print(f"🌀 reload={'ON' if reload_flag else 'OFF'}")

    uvicorn.run(
        APP_MODULE,
        host=host,
        port=port,
        loop="asyncio",
        http="h11",
        reload=reload_flag,
        reload_dirs=["app"],
        reload_excludes=[".venv", ".git", "__pycache__", "tests"],
        timeout_keep_alive=30,
        # los SSE no terminan solos: no esperar por ellos al apagar
        timeout_graceful_shutdown=5,
        log_level=os.getenv("LOG_LEVEL", "info"),
        lifespan="on",
    )


if __name__ == "__main__":
    main()
