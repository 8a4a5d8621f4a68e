"""Backend drivers behind the storage facade."""

from .base import BaseStore, CollectionStore
from .blob_storage import BlobStore
from .json_storage import LocalDocumentStore
from .sql_repository import RelationalStore

__all__ = ["BaseStore", "CollectionStore", "BlobStore", "LocalDocumentStore", "RelationalStore"]
