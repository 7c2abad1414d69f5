"""
Generic record access layer.

Maps conjunctive equality filters onto document queries for any record kind.
Book and review mutations always carry the caller's scope (owner or author
id), which is appended to the filter here rather than left to each caller.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, Iterator, List, Mapping, NamedTuple, Optional, Tuple, Union

from bson import ObjectId
from pymongo import ReturnDocument

from utilities.logger import OperationLogger

from .database import MongoDBManager
from .models import RecordKind, RecordSchema, schema_for


class UnknownFieldError(ValueError):
    """A filter or patch names a field the record schema does not declare."""


class MissingScopeError(ValueError):
    """A scoped record kind was mutated without an owner/author scope."""


class Clause(NamedTuple):
    """Single equality condition."""
    field: str
    value: Any


FilterLike = Union["Filter", Iterable[Union[Clause, Tuple[str, Any], Mapping[str, Any]]], None]


class Filter:
    """
    Ordered list of equality clauses combined with logical AND.

    An empty filter matches every record of a kind.
    """

    def __init__(self, clauses: Optional[Iterable[Clause]] = None):
        self.clauses: List[Clause] = list(clauses or [])

    @classmethod
    def of(cls, filters: FilterLike) -> "Filter":
        """
        Build a filter from another filter, (field, value) pairs or
        {"field": ..., "value": ...} mappings.
        """
        if isinstance(filters, Filter):
            return cls(filters.clauses)
        clauses = []
        for item in filters or ():
            if isinstance(item, Mapping):
                clauses.append(Clause(item["field"], item["value"]))
            else:
                field, value = item
                clauses.append(Clause(field, value))
        return cls(clauses)

    def where(self, field: str, value: Any) -> "Filter":
        """Return a new filter with one more clause."""
        return Filter(self.clauses + [Clause(field, value)])

    def __iter__(self) -> Iterator[Clause]:
        return iter(self.clauses)

    def __len__(self) -> int:
        return len(self.clauses)

    def __repr__(self) -> str:
        return f"Filter({self.clauses!r})"

    def to_query(self, schema: RecordSchema) -> Dict[str, Any]:
        """
        Translate to a MongoDB query document.

        Raises:
            UnknownFieldError: If a clause names an undeclared field
        """
        pairs = [(c.field, coerce_value(schema, c.field, c.value)) for c in self.clauses]
        fields = [field for field, _ in pairs]
        if len(set(fields)) == len(fields):
            return dict(pairs)
        # Repeated fields must all hold, so they cannot share one key
        return {"$and": [{field: value} for field, value in pairs]}


def coerce_value(schema: RecordSchema, field: str, value: Any) -> Any:
    """Validate a field against the schema and convert id strings to ObjectId."""
    if not schema.declares(field):
        raise UnknownFieldError(f"'{field}' is not a {schema.kind.value} field")
    if schema.is_object_id(field) and isinstance(value, str):
        # Malformed ids stay strings and simply match nothing
        if len(value) == 24 and ObjectId.is_valid(value):
            return ObjectId(value)
    return value


def to_record(schema: RecordSchema, document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Convert a stored document into a plain record with string ids."""
    if document is None:
        return None
    record = dict(document)
    if "_id" in record:
        record["id"] = str(record.pop("_id"))
    for field in schema.object_id_fields:
        if isinstance(record.get(field), ObjectId):
            record[field] = str(record[field])
    return record


class RecordStore:
    """
    CRUD primitives parameterized over a record kind and a filter.

    Every operation goes through MongoDBManager.ensure_connected() first.
    Not-found is reported as None (or an empty list), never as an error.
    """

    def __init__(self, db_manager: MongoDBManager):
        self.db_manager = db_manager

    @asynccontextmanager
    async def _operation(self, name: str, kind: RecordKind, **context) -> AsyncIterator[OperationLogger]:
        op = OperationLogger(name, name=__name__, kind=RecordKind(kind).value, **context).start()
        try:
            yield op
        except Exception as e:
            op.fail(e)
            raise

    async def _collection(self, kind: RecordKind):
        await self.db_manager.ensure_connected()
        return self.db_manager.collection(kind)

    @staticmethod
    def _scoped(schema: RecordSchema, filters: FilterLike, scope: Optional[str], required: bool) -> Filter:
        scoped = Filter.of(filters)
        if schema.scope_field is None:
            if scope is not None:
                raise ValueError(f"{schema.kind.value} records are not scoped")
            return scoped
        if scope is None:
            if required:
                raise MissingScopeError(f"{schema.kind.value} mutations require a scope")
            return scoped
        return scoped.where(schema.scope_field, scope)

    async def find_many(
        self,
        kind: RecordKind,
        filters: FilterLike = None,
        *,
        scope: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Find all records matching every clause, in store-native order.

        Args:
            kind: Record kind to query
            filters: Equality clauses; empty matches every record
            scope: Optional owner/author id to restrict the query

        Returns:
            List of matching records
        """
        schema = schema_for(kind)
        scoped = self._scoped(schema, filters, scope, required=False)
        query = scoped.to_query(schema)
        async with self._operation("find_many", kind, clauses=len(scoped)) as op:
            collection = await self._collection(kind)
            records = [to_record(schema, doc) async for doc in collection.find(query)]
            op.complete(count=len(records))
            return records

    async def find_one(
        self,
        kind: RecordKind,
        filters: FilterLike = None,
        *,
        scope: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Find the first record matching every clause, or None."""
        schema = schema_for(kind)
        query = self._scoped(schema, filters, scope, required=False).to_query(schema)
        async with self._operation("find_one", kind) as op:
            collection = await self._collection(kind)
            record = to_record(schema, await collection.find_one(query))
            op.complete(found=record is not None)
            return record

    async def insert(self, kind: RecordKind, record: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Persist a new record and assign it an identity.

        Args:
            kind: Record kind to insert
            record: Field values; must include the scope field for scoped kinds

        Returns:
            The stored record including its new id

        Raises:
            UnknownFieldError: If the record has undeclared fields
            MissingScopeError: If a scoped record has no owner/author reference
        """
        schema = schema_for(kind)
        if schema.scope_field and not record.get(schema.scope_field):
            raise MissingScopeError(f"{schema.kind.value} records require '{schema.scope_field}'")
        document = {
            field: coerce_value(schema, field, value)
            for field, value in record.items()
            if field != "_id"
        }
        async with self._operation("insert", kind) as op:
            collection = await self._collection(kind)
            result = await collection.insert_one(document)
            document["_id"] = result.inserted_id
            op.complete(record_id=str(result.inserted_id))
            return to_record(schema, document)

    async def update_one(
        self,
        kind: RecordKind,
        filters: FilterLike,
        patch: Mapping[str, Any],
        *,
        scope: Optional[str],
        return_updated: bool = True,
    ) -> Optional[Dict[str, Any]]:
        """
        Apply a patch to the single record matching the filter.

        None values in the patch are ignored. Identity and scope fields
        cannot be patched.

        Args:
            kind: Record kind to update
            filters: Equality clauses selecting the record
            patch: Field values to set
            scope: Owner/author id; required for book and review records
            return_updated: Return the record after (True) or before (False) the update

        Returns:
            The record, or None if nothing matched
        """
        schema = schema_for(kind)
        query = self._scoped(schema, filters, scope, required=True).to_query(schema)
        immutable = {"_id", schema.scope_field}
        changes = {}
        for field, value in patch.items():
            if value is None:
                continue
            if field in immutable:
                raise ValueError(f"'{field}' cannot be updated")
            changes[field] = coerce_value(schema, field, value)

        async with self._operation("update_one", kind, fields=sorted(changes)) as op:
            collection = await self._collection(kind)
            if not changes:
                document = await collection.find_one(query)
            else:
                document = await collection.find_one_and_update(
                    query,
                    {"$set": changes},
                    return_document=ReturnDocument.AFTER if return_updated else ReturnDocument.BEFORE,
                )
            op.complete(found=document is not None)
            return to_record(schema, document)

    async def delete_one(
        self,
        kind: RecordKind,
        filters: FilterLike,
        *,
        scope: Optional[str],
    ) -> Optional[Dict[str, Any]]:
        """Remove and return the single matching record, or None if not found."""
        schema = schema_for(kind)
        query = self._scoped(schema, filters, scope, required=True).to_query(schema)
        async with self._operation("delete_one", kind) as op:
            collection = await self._collection(kind)
            document = await collection.find_one_and_delete(query)
            op.complete(found=document is not None)
            return to_record(schema, document)
