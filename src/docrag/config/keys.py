"""Persisted configuration keys."""

CHUNK_SIZE = "ragChunkSize"
CHUNK_OVERLAP = "ragChunkOverlap"
RESULT_COUNT = "ragResultCount"
SIMILARITY_THRESHOLD = "ragSimilarityThreshold"
VECTOR_DB_ENABLED = "isVectorDbEnabled"
RAG_ENABLED = "isRagEnabled"
LAST_PROCESS_TIME = "lastVectorProcessTime"
