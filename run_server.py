from __future__ import annotations

import argparse
import logging
import socket

from master_lookup.errors import StoreOpenError
from master_lookup.services import MasterService
from master_lookup.settings import Settings
from master_lookup.web_server import create_app

logger = logging.getLogger(__name__)


def _get_lan_ip() -> str:
    # Infers the primary LAN IP by "connecting" a UDP socket; nothing is sent.
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            s.connect(("8.8.8.8", 80))
            ip = s.getsockname()[0]
            if ip:
                return ip
        finally:
            s.close()
    except OSError:
        pass
    return "127.0.0.1"


def _ensure_port_free(host: str, port: int) -> bool:
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((host, port))
            return True
        finally:
            s.close()
    except OSError:
        return False


def main() -> int:
    p = argparse.ArgumentParser(description="Master Lookup - JSON API server")
    p.add_argument("--host", default="0.0.0.0", help="Bind host (use 0.0.0.0 for LAN)")
    p.add_argument("--port", type=int, default=8080, help="Port")
    p.add_argument("--debug", action="store_true", help="Flask debug mode")
    p.add_argument("--skip-import", action="store_true", help="Serve the local database without importing")
    args = p.parse_args()

    if not _ensure_port_free(args.host, args.port):
        print(f"The server is already running (or the port is taken): {args.host}:{args.port}")
        return 2

    settings = Settings()
    settings.ensure_instance()
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    service = MasterService.from_settings(settings)
    try:
        if args.skip_import:
            service.store.open()
        else:
            res = service.startup(on_progress=logger.info)
            if res.error:
                logger.warning("%s; serving local data", res.error)
    except StoreOpenError as e:
        print(f"Could not open the database: {e}")
        return 1

    app = create_app(service, settings)

    lan_ip = _get_lan_ip() if args.host in ("0.0.0.0", "::") else args.host
    print(f"Lookup server started: http://{lan_ip}:{args.port}/  (health: http://{lan_ip}:{args.port}/health)")

    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
