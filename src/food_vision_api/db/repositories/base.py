"""Base repository class with common database operations."""

from typing import Any, Generic, TypeVar

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)


def to_object_ids(ids: list[str]) -> list[ObjectId]:
    """Convert string ids to ObjectIds, dropping malformed ones."""
    object_ids = []
    for id in ids:
        try:
            object_ids.append(ObjectId(id))
        except (InvalidId, TypeError):
            continue
    return object_ids


class BaseRepository(Generic[T]):
    """
    Base repository providing common document operations.

    Subclasses set ``model_class`` for document-to-model conversion.
    """

    model_class: type[T]

    def __init__(self, collection: AsyncIOMotorCollection):
        """
        Initialize repository with a MongoDB collection.

        Args:
            collection: Motor collection instance
        """
        self.collection = collection

    def _to_model(self, doc: dict[str, Any]) -> T:
        """Convert MongoDB document to the Pydantic model."""
        doc = dict(doc)
        if "_id" in doc:
            doc["id"] = str(doc.pop("_id"))
        return self.model_class.model_validate(doc)

    def _to_models(self, docs: list[dict[str, Any]]) -> list[T]:
        """Convert list of MongoDB documents to models."""
        return [self._to_model(doc) for doc in docs if doc is not None]

    def _to_document(self, model: T) -> dict[str, Any]:
        """Convert a model to a MongoDB document (store-assigned id omitted)."""
        return model.model_dump(mode="python", exclude={"id"})

    async def find_by_id(self, id: str) -> T | None:
        """
        Find document by ID.

        Returns:
            Model, or None if not found or the id is malformed
        """
        try:
            object_id = ObjectId(id)
        except (InvalidId, TypeError):
            return None
        doc = await self.collection.find_one({"_id": object_id})
        return self._to_model(doc) if doc else None

    async def find_many(
        self,
        filter: dict[str, Any] | None = None,
        sort: list[tuple[str, int]] | None = None,
        limit: int | None = None,
        skip: int = 0,
    ) -> list[T]:
        """
        Find multiple documents matching filter.

        Args:
            filter: MongoDB query filter
            sort: List of (field, direction) tuples
            limit: Maximum documents to return (None for all)
            skip: Number of documents to skip

        Returns:
            List of models
        """
        cursor = self.collection.find(filter or {})

        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)

        docs = await cursor.to_list(length=limit)
        return self._to_models(docs)

    async def insert_one(self, document: dict[str, Any]) -> str:
        """
        Insert a single document.

        Returns:
            Inserted document ID as string
        """
        result = await self.collection.insert_one(document)
        return str(result.inserted_id)

    async def count(self, filter: dict[str, Any] | None = None) -> int:
        """Count documents matching filter."""
        return await self.collection.count_documents(filter or {})

    async def aggregate(
        self,
        pipeline: list[dict[str, Any]],
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Execute an aggregation pipeline."""
        cursor = self.collection.aggregate(pipeline)
        return await cursor.to_list(length=limit)
