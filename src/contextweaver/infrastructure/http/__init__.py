"""HTTP service adapters."""

from contextweaver.infrastructure.http.classification_client import HttpTopicClassifier
from contextweaver.infrastructure.http.retrieval_client import HttpMemoryRetriever

__all__ = ["HttpMemoryRetriever", "HttpTopicClassifier"]
