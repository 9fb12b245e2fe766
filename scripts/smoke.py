# scripts/smoke.py
"""
Smoke Test Script for the contextmeta store.

Usage
-----
1. Run against a throwaway directory:
    $ uv run python scripts/smoke.py

2. Run against an existing context directory (writes to it!):
    $ uv run python scripts/smoke.py --home ~/.config/opencode --updates 60
"""

import argparse
import json
import logging
import sys
import tempfile
from dataclasses import asdict
from pathlib import Path

from contextmeta.core.metadata.service import MetadataService

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)


def run(home: Path, updates: int) -> None:
    """Append ``updates`` deltas, then load, compact and reload."""
    service = MetadataService(home)
    compactions = 0
    for i in range(updates):
        if service.update("essential.projects", f"smoke-{i}", op="add"):
            compactions += 1
    service.record_session("smoke", "scripts/smoke.py run")

    before = service.load_metadata()
    service.compact_now()
    after = service.load_metadata()

    print(f"✅ {updates} updates, {compactions} threshold compactions")
    print(f"   projects before/after compaction: {len(before['essential']['projects'])}"
          f" / {len(after['essential']['projects'])}")
    print(json.dumps(asdict(service.status()), default=str, indent=2))


def main() -> None:
    """Execute the smoke test workflow."""
    parser = argparse.ArgumentParser(description="Run contextmeta smoke test")
    parser.add_argument("--home", type=Path, help="Context directory (default: temp dir)")
    parser.add_argument("--updates", type=int, default=55, help="Number of deltas to append")
    args = parser.parse_args()

    if args.home is not None:
        run(args.home, args.updates)
        return
    with tempfile.TemporaryDirectory() as tmp:
        run(Path(tmp), args.updates)


if __name__ == "__main__":
    main()
