"""Daily pipeline: request population of the trailing window (yesterday through today)."""

from peanut_gallery.app import build_services
from peanut_gallery.config import BACKEND
from peanut_gallery.log import setup_logging


def main():
    setup_logging()
    services = build_services()

    print("Requesting population of the trailing window...")
    result = services.scheduler.run_once()
    print(f"Enqueued {len(result.initiated_ids)} population requests")

    # Nothing else can see an in-memory queue, so drain it here
    if BACKEND == "memory":
        print("\nProcessing requests in-process (memory backend)...")
        while services.worker.poll_once(max_messages=10):
            pass
        print(f"Catalog now holds {len(services.store)} movies")

    print("\nUpdate complete!")


if __name__ == "__main__":
    main()
