#!/usr/bin/env python3
"""Load NFT templates (the weighted reward catalog) from a JSON file.

    python scripts/seed_templates.py templates.json

The file holds a list of objects with name, jsonUri (or metadataUri),
imageUri and weight. Templates whose name already exists are skipped.
"""

import json
import sys

from app import create_app
import ledger


def load_templates(path: str) -> list[dict]:
    with open(path, "r", encoding="utf-8") as fh:
        rows = json.load(fh)
    if not isinstance(rows, list):
        raise ValueError("Template file must contain a JSON list")
    return rows


def seed(rows: list[dict]) -> dict:
    existing = {t.name for t in ledger.list_templates()}
    added = skipped = 0
    for row in rows:
        name = (row.get("name") or "").strip()
        if not name or name in existing:
            skipped += 1
            continue
        ledger.add_template(
            name=name,
            metadata_uri=row.get("jsonUri") or row.get("metadataUri") or "",
            image_uri=row.get("imageUri") or "",
            weight=float(row.get("weight") or 0),
        )
        existing.add(name)
        added += 1
    return {"ok": True, "added": added, "skipped": skipped}


def main():
    if len(sys.argv) != 2:
        print("usage: seed_templates.py FILE.json")
        return 2
    rows = load_templates(sys.argv[1])
    app = create_app()
    with app.app_context():
        print(seed(rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
