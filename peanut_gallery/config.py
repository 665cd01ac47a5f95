"""Constants and environment settings for the peanut gallery pipeline."""

import os

from dotenv import load_dotenv

load_dotenv()

# ── Runtime ──────────────────────────────────────────────────────────────────
BACKEND = os.getenv("PEANUT_GALLERY_BACKEND", "aws")  # "aws" or "memory"
LOG_LEVEL = os.getenv("PEANUT_GALLERY_LOG_LEVEL", "INFO")

# ── TMDB ─────────────────────────────────────────────────────────────────────
TMDB_API_KEY = os.getenv("TMDB_API_KEY", "")
TMDB_BASE_URL = "https://api.themoviedb.org/3"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/w500"
TMDB_REQUEST_TIMEOUT_SECONDS = 10
TMDB_MAX_PAGES = int(os.getenv("TMDB_MAX_PAGES", "20"))  # 20 results per page

# ── AWS / DynamoDB ───────────────────────────────────────────────────────────
AWS_REGION = os.getenv("AWS_DEFAULT_REGION", "us-east-2")
MOVIE_TABLE = os.getenv("MOVIE_TABLE_NAME", "PeanutGalleryMovies")
SCORE_INDEX = "moviesByScore"
POPULARITY_INDEX = "moviesByPopularity"

# ── AWS / SNS + SQS ──────────────────────────────────────────────────────────
MOVIE_POPULATION_REQUEST_TOPIC_NAME = "PopulateMovieRequestTopic"
MOVIE_POPULATION_REQUEST_QUEUE_NAME = "PopulateMovieRequestQueue"
MOVIE_POPULATION_DEAD_LETTER_QUEUE_NAME = "PopulateMovieRequestDeadLetterQueue"
MOVIE_POPULATION_REQUEST_TOPIC_ARN = os.getenv("MOVIE_POPULATION_REQUEST_TOPIC_ARN", "")
MOVIE_POPULATION_REQUEST_QUEUE_URL = os.getenv("MOVIE_POPULATION_REQUEST_QUEUE_URL", "")
MOVIE_POPULATION_DEAD_LETTER_QUEUE_URL = os.getenv("MOVIE_POPULATION_DEAD_LETTER_QUEUE_URL", "")
PUBLISH_TIMEOUT_SECONDS = 5
RECEIVE_WAIT_SECONDS = 20  # SQS long polling max

# ── Bus policy ───────────────────────────────────────────────────────────────
VISIBILITY_TIMEOUT_SECONDS = int(os.getenv("VISIBILITY_TIMEOUT_SECONDS", "30"))
MAX_REDELIVERIES = 3  # a message is delivered at most MAX_REDELIVERIES + 1 times

# ── Gateway ──────────────────────────────────────────────────────────────────
MAX_POPULATION_SPAN_DAYS = int(os.getenv("MAX_POPULATION_SPAN_DAYS", "92"))
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# ── Scheduler ────────────────────────────────────────────────────────────────
SCHEDULE_INTERVAL_SECONDS = 24 * 60 * 60
TRAILING_WINDOW_DAYS = 1  # yesterday through today
