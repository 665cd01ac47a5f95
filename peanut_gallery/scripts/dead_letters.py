"""List population requests that exhausted their redeliveries."""

from peanut_gallery.app import build_services
from peanut_gallery.log import setup_logging


def main():
    setup_logging()
    poisoned = build_services().bus.dead_letters()
    if not poisoned:
        print("Dead-letter queue is empty.")
        return

    print(f"{len(poisoned)} dead-lettered request(s):")
    for poison in poisoned:
        print(f"  {poison}")


if __name__ == "__main__":
    main()
