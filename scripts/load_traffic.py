"""
Load recorded traffic captures (one JSON object per line) into the
configured traffic store.

Usage:
    OHM_STORE_BACKEND=sqlite python scripts/load_traffic.py captures.jsonl
"""
import argparse
import logging
import os
import sys

# Ensure project root in path
sys.path.append(os.getcwd())

from ohm.storage import StoreBackendError, TrafficStoreConfig, TrafficStoreEngine


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("files", nargs="+", help="JSONL capture files")
    parser.add_argument(
        "--database",
        help="SQLite database path (defaults to OHM_DATABASE_PATH)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("OHM_LOG_LEVEL", "INFO").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    config = TrafficStoreConfig.from_env()
    if args.database:
        config.backend_type = "sqlite"
        config.database_path = args.database
    if config.backend_type != "sqlite":
        logging.error("Loading into the in-memory store would be lost on exit; use sqlite")
        return 2

    store = TrafficStoreEngine(config)
    total = 0
    for path in args.files:
        try:
            total += store.load_jsonl(path)
        except (OSError, StoreBackendError) as e:
            logging.error("Failed to load %s: %s", path, e)
            return 1

    print(f"[+] Loaded {total} captures into {config.database_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
