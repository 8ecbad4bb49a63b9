from __future__ import annotations

import argparse
import logging
import sys

from master_lookup.errors import EmptyQueryError, LookupBusyError, StoreOpenError
from master_lookup.lookup import LookupResult
from master_lookup.services import MasterService
from master_lookup.settings import Settings


def _print_result(result: LookupResult) -> None:
    if not result.found:
        print(f"No data found for {result.query!r}.")
        return
    r = result.record
    print(f"Found ({result.matched_by}):")
    print(f"  Code:        {r.code}")
    print(f"  Article:     {r.article}")
    print(f"  Description: {r.description}")
    print(f"  Price:       {r.price}")
    print(f"  Department:  {r.department}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(add_help=True, description="Look up master.csv items by code or article")
    parser.add_argument("--query", "-q", help="Answer a single query and exit")
    parser.add_argument("--skip-import", action="store_true", help="Use the local database as-is")
    args = parser.parse_args(argv)

    settings = Settings()
    settings.ensure_instance()
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    service = MasterService.from_settings(settings)

    try:
        if args.skip_import:
            service.store.open()
        else:
            res = service.startup(on_progress=print)
            if res.error:
                print(res.error)
                print("Using local data...")
            elif res.message:
                print(res.message)
    except StoreOpenError as e:
        print(f"Could not open the database: {e}")
        return 1

    if args.query is not None:
        try:
            result = service.lookup(args.query)
        except EmptyQueryError as e:
            print(e)
            return 2
        _print_result(result)
        return 0 if result.found else 1

    print(f"{service.record_count()} items available. Enter a code or article (empty line to quit).")
    for line in sys.stdin:
        q = line.strip()
        if not q:
            break
        try:
            _print_result(service.lookup(q))
        except LookupBusyError as e:
            print(e)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
