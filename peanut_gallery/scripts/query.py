"""Print one ranked page: python -m peanut_gallery.scripts.query 2024-W01 score"""

import argparse
import sys

from peanut_gallery.app import build_services
from peanut_gallery.config import DEFAULT_PAGE_SIZE
from peanut_gallery.data.movie import DIMENSIONS
from peanut_gallery.errors import PersistenceError, ValidationError
from peanut_gallery.log import setup_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Read movies for a week, best first.")
    parser.add_argument("week_bucket", help="ISO week, e.g. 2024-W01")
    parser.add_argument("dimension", choices=DIMENSIONS)
    parser.add_argument("--page-size", type=int, default=DEFAULT_PAGE_SIZE)
    parser.add_argument("--cursor", default=None, help="nextCursor from a previous page")
    args = parser.parse_args(argv)

    setup_logging()
    gateway = build_services().gateway
    try:
        page = gateway.query_movies(args.week_bucket, args.dimension, args.page_size, args.cursor)
    except (ValidationError, PersistenceError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for rank, movie in enumerate(page.movies, start=1):
        print(f"{rank:>3}. {movie.title} ({movie.release_date}) "
              f"score={movie.score:.1f} popularity={movie.popularity:.1f} id={movie.id}")
    if not page.movies:
        print(f"No movies in {args.week_bucket}")
    if page.next_cursor:
        print(f"\nNext page: --cursor {page.next_cursor}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
