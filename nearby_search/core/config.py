import os
from dotenv import load_dotenv

load_dotenv()


class Settings:
    # Logging
    LOG_DIR = os.getenv("LOG_DIR", "logs")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    APP_LOG_FILENAME = os.getenv("APP_LOG_FILENAME", "search_app.log")
    APP_LOG_PATH = os.path.join(LOG_DIR, APP_LOG_FILENAME)

    # Elasticsearch
    ES_HOST = os.getenv("ES_HOST", "http://localhost:9200")
    ES_VENUE_INDEX = os.getenv("ES_VENUE_INDEX", "venues_v1")
    ES_LISTING_INDEX = os.getenv("ES_LISTING_INDEX", "listings_v1")

    # Store backend: "elasticsearch" or "memory"
    STORE_BACKEND = os.getenv("STORE_BACKEND", "elasticsearch")
    SEED_DATA_PATH = os.getenv("SEED_DATA_PATH", "data/seed.jsonl")

    # Store query capability
    STORE_MAX_RANGE_CLAUSES = int(os.getenv("STORE_MAX_RANGE_CLAUSES", "1"))
    STORE_MAX_IN_CLAUSES = int(os.getenv("STORE_MAX_IN_CLAUSES", "1"))
    STORE_MAX_IN_VALUES = int(os.getenv("STORE_MAX_IN_VALUES", "10"))
    COARSE_SCAN_PAGE_SIZE = int(os.getenv("COARSE_SCAN_PAGE_SIZE", "1000"))

    # Search Application
    SERVICE_HOST = os.getenv("SERVICE_HOST", "127.0.0.1")
    APP_PORT = int(os.getenv("APP_PORT", "8000"))
    DEFAULT_RADIUS_KM = float(os.getenv("DEFAULT_RADIUS_KM", "5.0"))
    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))

    # Geo
    REGION_MATCH_MAX_KM = float(os.getenv("REGION_MATCH_MAX_KM", "5.0"))
    GEOHASH_PRECISION = int(os.getenv("GEOHASH_PRECISION", "8"))
    GAZETTEER_PATH = os.getenv("GAZETTEER_PATH", "")

    # Ingestion
    INGEST_BATCH_SIZE = int(os.getenv("INGEST_BATCH_SIZE", "500"))
    VENUE_DATA_PATH = os.getenv("VENUE_DATA_PATH", "data/venues.jsonl")
    LISTING_DATA_PATH = os.getenv("LISTING_DATA_PATH", "data/listings.jsonl")


settings = Settings()
