from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

from ddb_stream_indexer.app import configure_logging, run


def main(argv: list[str] | None = None) -> int:
    """Replay a saved DynamoDB stream event file through the indexer."""
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 1:
        print("usage: python -m ddb_stream_indexer <stream-event.json>", file=sys.stderr)
        return 2

    configure_logging()
    event = json.loads(Path(args[0]).read_text(encoding="utf-8"))
    summary = asyncio.run(run(event))
    print(summary.model_dump_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
