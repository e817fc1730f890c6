"""
Question Loader Script - imports a JSON question bank file via the API.

The file holds either a list of questions or {"questions": [...], "subject":
..., "section": ..., "difficulty": ...}. Questions are posted in batches
to the import endpoint, which de-duplicates by content hash.

Usage:
    python load_data.py questions.json                         # Uses default URL
    python load_data.py questions.json http://localhost:8000   # Custom API URL
"""

import json
import os
import sys

import httpx

BATCH_SIZE = 200


def build_batches(document, batch_size: int = BATCH_SIZE) -> list:
    """Split a question bank document into import request payloads."""
    if isinstance(document, list):
        questions, defaults = document, {}
    elif isinstance(document, dict):
        questions = document.get("questions") or []
        defaults = {k: document[k] for k in ("subject", "topic", "section", "difficulty")
                    if document.get(k)}
    else:
        raise ValueError("Question file must hold a list or an object with 'questions'")

    return [
        {"questions": questions[i:i + batch_size], **defaults}
        for i in range(0, len(questions), batch_size)
    ]


def post_batches(client: httpx.Client, import_url: str, batches: list) -> dict:
    totals = {"inserted": 0, "skipped": 0, "errors": 0}
    for number, payload in enumerate(batches, 1):
        resp = client.post(import_url, json=payload)
        if resp.status_code == 400:
            totals["errors"] += 1
            print(f"  ❌ batch {number}: {resp.json().get('detail')}")
            continue
        resp.raise_for_status()
        result = resp.json()
        totals["inserted"] += result.get("inserted", 0)
        totals["skipped"] += result.get("skipped", 0)
        print(f"  ✅ batch {number}: {result.get('inserted', 0)} inserted, "
              f"{result.get('skipped', 0)} duplicates")
    return totals


def main():
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    data_file = sys.argv[1]
    api_url = sys.argv[2] if len(sys.argv) > 2 else os.getenv("API_URL", "http://localhost:8000")
    import_url = f"{api_url}/api/questions/import"

    if not os.path.exists(data_file):
        print(f"Error: Could not find {data_file}")
        sys.exit(1)

    print(f"Loading questions from: {data_file}")
    with open(data_file, "r", encoding="utf-8") as f:
        document = json.load(f)

    batches = build_batches(document)
    print(f"Sending {len(batches)} batches to: {import_url}")
    print()

    with httpx.Client(timeout=30.0) as client:
        totals = post_batches(client, import_url, batches)

    print()
    print("=" * 60)
    print("IMPORT SUMMARY")
    print("=" * 60)
    print(f"  Inserted:            {totals['inserted']}")
    print(f"  Duplicates Skipped:  {totals['skipped']}")
    print(f"  Rejected Batches:    {totals['errors']}")
    print("=" * 60)


if __name__ == "__main__":
    main()
