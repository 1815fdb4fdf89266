"""ChromaDB Vector Store for Roadmap Embeddings

This module stores one embedding per generated roadmap and searches for
similar roadmaps. The client switches between a local PersistentClient and
a CloudClient based on environment configuration.

Configuration:
- CHROMA_USE_CLOUD: Set to 'true' to use cloud, 'false' or unset to use local
- CHROMA_API_KEY: API key for Chroma Cloud
- CHROMA_API_TENANT: Tenant ID for Chroma Cloud
- CHROMA_API_DATABASE: Database name for Chroma Cloud
- CHROMA_LOCAL_PATH: Local directory (defaults to <project>/data/chromadb)

Collection:
- Name 'roadmap_embeddings', cosine distance, 1536-dimension vectors
  (text-embedding-ada-002)
- Payload per roadmap: roadmapId, title, description, createdAt

All public operations log errors and return an empty result (False, [] or
None) instead of raising.
"""

import math
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Union
import chromadb
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

try:
    BASE_DIR = Path(__file__).resolve().parents[1]
except NameError:
    BASE_DIR = Path(os.getcwd())

if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from api.utils.debug import print__chromadb_debug

COLLECTION_NAME = "roadmap_embeddings"
COLLECTION_METADATA = {"hnsw:space": "cosine"}
CHROMA_LOCAL_PATH = os.getenv("CHROMA_LOCAL_PATH", str(BASE_DIR / "data" / "chromadb"))

_COLLECTION = None


def should_use_cloud() -> bool:
    """Determine if cloud client should be used based on environment variable.

    Returns:
        bool: True if CHROMA_USE_CLOUD is set to 'true', '1' or 'yes'
    """
    use_cloud = os.getenv("CHROMA_USE_CLOUD", "false").lower().strip()
    result = use_cloud in ("true", "1", "yes")
    print__chromadb_debug(f"🔍 [VectorStore] should_use_cloud(): {result}")
    return result


def get_chromadb_client(
    local_path: Union[str, Path] = None,
) -> Union[chromadb.PersistentClient, chromadb.CloudClient]:
    """Get ChromaDB client based on environment configuration.

    Args:
        local_path: Path to local ChromaDB directory (used if cloud is disabled)

    Returns:
        Union[chromadb.PersistentClient, chromadb.CloudClient]: Configured client

    Raises:
        ValueError: If cloud is enabled but credentials are missing
    """
    if should_use_cloud():
        api_key = os.getenv("CHROMA_API_KEY", "").strip("',\"")
        tenant = os.getenv("CHROMA_API_TENANT", "").strip("',\"")
        database = os.getenv("CHROMA_API_DATABASE", "").strip("',\"")

        if not api_key or not tenant or not database:
            error_msg = (
                "Cloud mode enabled but missing credentials. "
                "Please set CHROMA_API_KEY, CHROMA_API_TENANT, and CHROMA_API_DATABASE"
            )
            print__chromadb_debug(f"❌ [VectorStore] {error_msg}")
            raise ValueError(error_msg)

        print__chromadb_debug("🌐 [VectorStore] Creating CloudClient...")
        return chromadb.CloudClient(api_key=api_key, tenant=tenant, database=database)

    local_path = Path(local_path or CHROMA_LOCAL_PATH)
    if not local_path.exists():
        print__chromadb_debug(
            f"⚠️ [VectorStore] Local ChromaDB path not found, creating it: {local_path}"
        )
        local_path.mkdir(parents=True, exist_ok=True)

    print__chromadb_debug(f"📂 [VectorStore] Creating PersistentClient at {local_path}")
    return chromadb.PersistentClient(path=str(local_path))


def get_roadmap_collection():
    """Return the cached roadmap collection, creating it on first use."""
    global _COLLECTION
    if _COLLECTION is None:
        client = get_chromadb_client()
        _COLLECTION = client.get_or_create_collection(
            name=COLLECTION_NAME, metadata=COLLECTION_METADATA
        )
        print__chromadb_debug(
            f"✅ [VectorStore] Collection '{COLLECTION_NAME}' ready "
            f"({_COLLECTION.count()} items)"
        )
    return _COLLECTION


def reset_collection_cache():
    global _COLLECTION
    _COLLECTION = None


# ==============================================================================
# PUBLIC OPERATIONS
# ==============================================================================
def initialize_collection() -> bool:
    try:
        get_roadmap_collection()
        return True
    except Exception as e:
        print__chromadb_debug(f"❌ [VectorStore] Error initializing collection: {e}")
        return False


def add_roadmap_embedding(
    roadmap_id: str, title: str, description: str, embedding: list
) -> bool:
    try:
        get_roadmap_collection().upsert(
            ids=[roadmap_id],
            embeddings=[embedding],
            metadatas=[
                {
                    "roadmapId": roadmap_id,
                    "title": title or "",
                    "description": description or "",
                    "createdAt": datetime.now(timezone.utc).isoformat(),
                }
            ],
        )
        print__chromadb_debug(f"✅ [VectorStore] Embedding added for roadmap: {roadmap_id}")
        return True
    except Exception as e:
        print__chromadb_debug(f"❌ [VectorStore] Error adding roadmap embedding: {e}")
        return False


def search_similar_roadmaps(query_embedding: list, limit: int = 5) -> list:
    """Return [{roadmapId, title, description, similarity}], best match first."""
    try:
        result = get_roadmap_collection().query(
            query_embeddings=[query_embedding],
            n_results=limit,
            include=["metadatas", "distances"],
        )
    except Exception as e:
        print__chromadb_debug(f"❌ [VectorStore] Error searching similar roadmaps: {e}")
        return []

    metadatas = (result.get("metadatas") or [[]])[0] or []
    distances = (result.get("distances") or [[]])[0] or []

    similar = []
    for metadata, distance in zip(metadatas, distances):
        metadata = metadata or {}
        # zero-vector queries come back with NaN distances
        if distance is None or math.isnan(distance):
            similarity = 0.0
        else:
            similarity = 1 - distance
        similar.append(
            {
                "roadmapId": metadata.get("roadmapId"),
                "title": metadata.get("title"),
                "description": metadata.get("description"),
                "similarity": similarity,
            }
        )
    return similar


def delete_roadmap_embedding(roadmap_id: str) -> bool:
    try:
        get_roadmap_collection().delete(ids=[roadmap_id])
        print__chromadb_debug(f"🗑️ [VectorStore] Embedding deleted for roadmap: {roadmap_id}")
        return True
    except Exception as e:
        print__chromadb_debug(f"❌ [VectorStore] Error deleting roadmap embedding: {e}")
        return False


def get_collection_info():
    try:
        collection = get_roadmap_collection()
        return {
            "name": collection.name,
            "count": collection.count(),
            "metadata": collection.metadata,
            "mode": "cloud" if should_use_cloud() else "local",
        }
    except Exception as e:
        print__chromadb_debug(f"❌ [VectorStore] Error getting collection info: {e}")
        return None
