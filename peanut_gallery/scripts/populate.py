"""Request population of a date range: python -m peanut_gallery.scripts.populate 2024-01-01 2024-01-07"""

import argparse
import sys

from peanut_gallery.app import build_services
from peanut_gallery.errors import ValidationError
from peanut_gallery.log import setup_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Publish population requests for a date range.")
    parser.add_argument("start_date", help="First release date to fetch (YYYY-MM-DD)")
    parser.add_argument("end_date", help="Last release date to fetch, inclusive (YYYY-MM-DD)")
    args = parser.parse_args(argv)

    setup_logging()
    gateway = build_services().gateway
    try:
        result = gateway.populate_movies(args.start_date, args.end_date)
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Enqueued {len(result.initiated_ids)} population requests")
    for request_id in result.initiated_ids:
        print(f"  {request_id}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
