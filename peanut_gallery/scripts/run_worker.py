"""Consume population requests from the queue: python -m peanut_gallery.scripts.run_worker --workers 4"""

import argparse
import threading

from peanut_gallery.app import build_services
from peanut_gallery.log import setup_logging


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run population workers against the request queue.")
    parser.add_argument("--workers", type=int, default=1, help="Worker threads sharing this process")
    parser.add_argument("--max-messages", type=int, default=1, help="Messages per receive")
    parser.add_argument("--once", action="store_true", help="Receive a single batch per worker and exit")
    args = parser.parse_args(argv)

    setup_logging()
    worker = build_services().worker
    stop_after = 1 if args.once else None

    # Workers keep no per-message state on the instance, so threads can share it
    threads = [
        threading.Thread(
            target=worker.run,
            kwargs={"max_messages": args.max_messages, "stop_after": stop_after},
            name=f"population-worker-{i}",
        )
        for i in range(args.workers)
    ]
    print(f"Starting {len(threads)} population worker(s)...")
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    print("Workers stopped.")


if __name__ == "__main__":
    main()
