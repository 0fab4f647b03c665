"""Re-publish domain events that a sink has not consumed yet.

Usage:
  python scripts/relay_outbox.py            # one pass
  python scripts/relay_outbox.py --loop 30  # every 30 seconds
"""

import argparse
import os
import sys
import time

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ats import create_app
from ats.events import relay_pending_events
from ats.extensions import db


def main():
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--limit", type=int, default=100)
    parser.add_argument("--loop", type=int, metavar="SECONDS", help="keep relaying at this interval")
    args = parser.parse_args()

    app = create_app()
    with app.app_context():
        while True:
            relay_pending_events(limit=args.limit)
            db.session.remove()
            if not args.loop:
                break
            time.sleep(args.loop)


if __name__ == "__main__":
    main()
