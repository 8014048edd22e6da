import json
import logging
import os
import sys

from elasticsearch import Elasticsearch, helpers

# Add the project root directory to the python path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from nearby_search.core.config import settings
from nearby_search.core.logging import setup_logging
from nearby_search.indexing import INDEX_MAPPINGS, prepare_entity, to_index_action

setup_logging()
logger = logging.getLogger(__name__)

SOURCES = [
    ("venue", settings.VENUE_DATA_PATH, settings.ES_VENUE_INDEX),
    ("listing", settings.LISTING_DATA_PATH, settings.ES_LISTING_INDEX),
]


class DocumentIngester:
    def __init__(self, es: Elasticsearch):
        self.es = es
        self.buffer = []
        self.count = 0
        self.skipped = 0

    def create_index(self, index: str):
        if not self.es.indices.exists(index=index):
            self.es.indices.create(index=index, mappings=INDEX_MAPPINGS)
            logger.info(f"Created index {index}")

    def ingest_file(self, kind: str, path: str, index: str):
        self.create_index(index)
        with open(path, encoding="utf-8") as f:
            for line_no, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entity = prepare_entity(kind, json.loads(line))
                except ValueError as e:
                    # pydantic.ValidationError and json.JSONDecodeError are ValueErrors
                    self.skipped += 1
                    logger.warning(f"{path}:{line_no} skipped: {e}")
                    continue

                self.buffer.append(to_index_action(entity, index))
                self.count += 1
                if len(self.buffer) >= settings.INGEST_BATCH_SIZE:
                    self.flush()
        self.flush()

    def flush(self):
        if self.buffer:
            success, _ = helpers.bulk(self.es, self.buffer)
            logger.info(f"Indexed {success} documents")
            self.buffer = []


def main():
    ingester = DocumentIngester(Elasticsearch(settings.ES_HOST))
    for kind, path, index in SOURCES:
        if not os.path.exists(path):
            logger.warning(f"No {kind} data at {path}, skipping")
            continue
        logger.info(f"Ingesting {kind} documents from {path} into {index}...")
        ingester.ingest_file(kind, path, index)

    logger.info(
        f"Ingestion complete: {ingester.count} indexed, {ingester.skipped} skipped."
    )


if __name__ == "__main__":
    main()
