# meal_grounding/services/pinecone_client.py
from pinecone import Pinecone

from meal_grounding.config import Settings


def get_pinecone_index(settings: Settings):
    """Return a Pinecone Index handle, or None when Pinecone is not configured."""
    api_key = settings.pinecone_api_key
    host = settings.pinecone_host
    index_name = settings.pinecone_index

    if not api_key or not (host or index_name):
        return None

    pc = Pinecone(api_key=api_key)
    if host:
        return pc.Index(host=host)
    return pc.Index(index_name)
