#!/usr/bin/env python3
""" Run the scheduled jobs once: escalation reconcile, expiry sweep, then today's prompt. For cron. """
import logging
import sys
from pathlib import Path

# Add the parent directory to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from app.db.base import init_db  # noqa: E402
from app.services.scheduler import (  # noqa: E402
    cleanup_expired_content,
    generate_daily_prompt,
    reconcile_escalations,
)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    init_db()
    reconciled = reconcile_escalations()
    removed = cleanup_expired_content()
    prompt_id = generate_daily_prompt()
    print(f"Recorded {reconciled} missed escalations; removed {removed} expired prompts; current prompt: {prompt_id or 'unavailable'}")
    sys.exit(0 if prompt_id else 1)
