"""Import master.csv into the local database.

Uses the cached copy when there is one; otherwise downloads it.

Usage:
  python scripts/import_master_to_db.py
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from master_lookup.services import MasterService
from master_lookup.settings import Settings


def main() -> int:
    settings = Settings()
    settings.ensure_instance()
    logging.basicConfig(level=settings.LOG_LEVEL.upper())

    svc = MasterService.from_settings(settings)
    res = svc.startup(on_progress=print)

    if not res.ok:
        print("ERROR:", res.error or "Unknown failure")
        return 1

    if res.empty:
        print(res.message)
        return 0

    print(f"OK: imported {res.count} from {res.source}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
