#!/usr/bin/env python3
"""SolrKeeper CLI — back up a Solr core from a source checkout.

Usage:
    python scripts/run_backup.py local --format json
    python scripts/run_backup.py prod --format csv --query "type:book" --batch 500
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure project root is on sys.path for consistent import resolution
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from solrkeeper.cli import main  # noqa: E402

if __name__ == "__main__":
    sys.exit(main())
