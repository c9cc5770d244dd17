"""Create or upgrade the runclub schema and seed default config.

Idempotent, so containers can run it on every start. Against PostgreSQL the
connection is retried for about a minute while the database comes up.
"""

import os
import time

from runclub.core import RunClub
from runclub.db import backend_name

_MAX_ATTEMPTS = 12
_RETRY_DELAY = 5  # seconds


def run() -> int:
    print(f"🗄️  Running database migrations ({backend_name()})...")
    retry = bool(os.environ.get("DATABASE_URL"))

    for attempt in range(1, _MAX_ATTEMPTS + 1):
        try:
            with RunClub() as club:
                print(f"✓ Schema ready for {club.config.get('club_name')}")
                return 0
        except Exception as e:
            if not retry or attempt == _MAX_ATTEMPTS:
                print(f"❌ Migration failed: {e}")
                return 1
            print(f"⏳ Database not ready (attempt {attempt}/{_MAX_ATTEMPTS}): {e}")
            time.sleep(_RETRY_DELAY)
    return 1
