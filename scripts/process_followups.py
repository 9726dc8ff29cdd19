#!/usr/bin/env python3
"""
Send all due WhatsApp follow-up jobs once, then exit.

Meant to be run by cron (every minute) when the HTTP trigger is not used:
    python -m scripts.process_followups
"""

import logging
import sys
from pathlib import Path

# Add the app to the path
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.services.followups import process_due_jobs


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    result = process_due_jobs()
    print(f"Processed {result.processed} follow-up jobs: {result.sent} sent, {result.failed} failed")
    return 0


if __name__ == "__main__":
    sys.exit(main())
