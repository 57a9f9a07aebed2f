import json
import os
import sys
import tempfile
import time

from fastapi.testclient import TestClient

from rate_relay.core.config import Settings
from rate_relay.db.dal import RateStore
from rate_relay.main import create_app

"""Smoke test against the live upstream.

Issues a few GET /cotacao calls through a temp-DB app and reports status,
latency, and how many rows survived the persistence deadline.
"""


def run(calls: int = 5):
    with tempfile.TemporaryDirectory() as d:
        settings = Settings(data_dir=d, db_path=os.path.join(d, "rates.db"))
        settings.init_post_load()
        app = create_app(settings_override=settings)
        results = []
        with TestClient(app) as client:
            for _ in range(calls):
                started = time.monotonic()
                r = client.get("/cotacao")
                results.append(
                    {
                        "status": r.status_code,
                        "body": r.json() if r.status_code == 200 else r.text,
                        "ms": round((time.monotonic() - started) * 1000, 1),
                    }
                )
        persisted = len(RateStore(settings.db_path).list_rates())
        print(json.dumps({"calls": results, "persisted": persisted}, indent=2))


if __name__ == "__main__":
    sys.path.append(os.getcwd())
    run()
