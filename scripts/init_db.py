#!/usr/bin/env python3
"""Initialize the local database and optionally seed reference data from YAML."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import yaml

from fieldops.config import get_local_store_config
from fieldops.db.database import Database
from fieldops.db.kv_repo import KeyValueRepository
from fieldops.models.partner import Partner
from fieldops.models.reference import SOP, Contact
from fieldops.stores.local import LocalCollection, storage_key

SEED_SECTIONS: dict[str, type] = {
    "partners": Partner,
    "sops": SOP,
    "contacts": Contact,
}


def main():
    parser = argparse.ArgumentParser(description="Initialize the local database")
    parser.add_argument("--seed", type=str, help="YAML file with partners/sops/contacts")
    parser.add_argument("--db-path", type=str, help="Override database path")
    parser.add_argument("--show", action="store_true", help="Print record counts per key")
    args = parser.parse_args()

    db = Database(path=Path(args.db_path) if args.db_path else None)
    db.init()
    print(f"Database initialized at: {db.path}")

    repo = KeyValueRepository(db)
    if args.seed:
        seed(repo, Path(args.seed))

    if args.show:
        for key in repo.keys():
            print(f"  {key}: {len(repo.read_list(key))} records")

    db.close()
    print("Done.")


def seed(repo: KeyValueRepository, path: Path, prefix: str | None = None) -> dict[str, int]:
    """Upsert every entry of each known section; returns the count per section."""
    with open(path, "r", encoding="utf-8") as f:
        data: dict[str, Any] = yaml.safe_load(f) or {}

    prefix = prefix or get_local_store_config().key_prefix
    counts: dict[str, int] = {}
    for section, model in SEED_SECTIONS.items():
        store = LocalCollection(repo, storage_key(section, prefix), model)
        counts[section] = 0
        for entry in data.get(section, []) or []:
            if "id" not in entry:
                print(f"  Skipping {section} entry without id: {entry.get('name') or entry.get('title')}")
                continue
            record = model.from_dict(entry)
            if store.upsert(record):
                counts[section] += 1
        print(f"  Seeded {counts[section]} {section}")
    return counts


if __name__ == "__main__":
    main()
