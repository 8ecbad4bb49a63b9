from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from master_lookup.errors import StoreWriteError
from master_lookup.services import MasterService
from master_lookup.settings import Settings


def main() -> int:
    settings = Settings()
    settings.ensure_instance()
    svc = MasterService.from_settings(settings)
    try:
        res = svc.reset()
    except StoreWriteError as e:
        print("ERROR:", e)
        return 1

    print("OK: database dropped, cache", "removed" if res["cache_removed"] else "already empty")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
