"""Run an RQ worker for the event queue inside the Flask app context.

Usage:
  source .venv/bin/activate
  python scripts/run_rq_worker.py

Jobs use `current_app` and the Flask-SQLAlchemy session, so the app and its
extensions have to be initialized in the worker process.
"""

import sys
import os

# Ensure project root is on sys.path when running from scripts/ or other cwd
ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ats import create_app
import redis
from rq import Worker, Queue


def main():
    app = create_app()
    redis_url = app.config.get("REDIS_URL") or os.environ.get("REDIS_URL", "redis://localhost:6379/0")
    conn = redis.from_url(redis_url)
    with app.app_context():
        q = Queue(app.config.get("RQ_QUEUE", "events"), connection=conn)
        worker = Worker([q], connection=conn)
        app.logger.info("RQ worker starting (pid %s) on queue %s", os.getpid(), q.name)
        try:
            worker.work(burst=False, with_scheduler=True)
        finally:
            app.logger.info("RQ worker exiting (pid %s)", os.getpid())


if __name__ == "__main__":
    main()
