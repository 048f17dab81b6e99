from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
import logging

from sqlalchemy import and_, false, func, or_, select
from sqlalchemy.sql import ColumnElement

from fedsearch.criteria import And, Criteria, Eq, Gt, In, Or
from fedsearch.storage.database import Database
from fedsearch.storage.models import DocumentModel
from .base import Document, DocumentStore

logger = logging.getLogger(__name__)

AfterSaveHook = Callable[[Document], Awaitable[None]]


def _accessor(field: str, sample: Any):
    """Column expression for ``field``, typed after the literal it is compared to."""
    if field == "id":
        return DocumentModel.id
    if field == "locale":
        return DocumentModel.locale
    element = DocumentModel.data[field]
    # bool before int, bool is an int subclass
    if isinstance(sample, bool):
        return element.as_boolean()
    if isinstance(sample, int):
        return element.as_integer()
    if isinstance(sample, float):
        return element.as_float()
    return element.as_string()


def compile_criteria(criteria: Criteria) -> ColumnElement:
    """Translate the criteria grammar into a SQLAlchemy boolean expression."""
    if isinstance(criteria, Eq):
        column = _accessor(criteria.field, criteria.value)
        if criteria.value is None:
            return column.is_(None)
        return column == criteria.value
    if isinstance(criteria, In):
        if not criteria.values:
            return false()
        return _accessor(criteria.field, criteria.values[0]).in_(criteria.values)
    if isinstance(criteria, Gt):
        return _accessor(criteria.field, criteria.value) > criteria.value
    if isinstance(criteria, And):
        return and_(*[compile_criteria(c) for c in criteria.clauses])
    if isinstance(criteria, Or):
        return or_(*[compile_criteria(c) for c in criteria.clauses])
    raise TypeError(f"unsupported criteria node: {criteria!r}")


def _project(document: Document, projection: Optional[Sequence[str]]) -> Document:
    if projection is None:
        return document
    projected = {"id": document["id"]}
    for field in projection:
        if field in document:
            projected[field] = document[field]
    return projected


class SqlDocumentStore(DocumentStore):
    """
    Document store keeping each document as a JSON row.

    ``id`` and ``locale`` are real columns; every other field lives in the
    ``data`` JSON column and is compared through typed JSON element access,
    so array-valued fields only match by whole-value equality.
    """

    def __init__(self, database: Database):
        self.database = database
        self._after_save: List[AfterSaveHook] = []

    def add_after_save(self, hook: AfterSaveHook) -> None:
        """Register a coroutine run with every saved document (e.g. search indexing)."""
        self._after_save.append(hook)

    async def find(
        self,
        criteria: Optional[Criteria] = None,
        projection: Optional[Sequence[str]] = None,
        skip: int = 0,
        limit: Optional[int] = None,
    ) -> List[Document]:
        stmt = select(DocumentModel).order_by(DocumentModel.id)
        if criteria is not None:
            stmt = stmt.where(compile_criteria(criteria))
        if skip:
            stmt = stmt.offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self.database.get_session() as session:
            rows = session.scalars(stmt).all()
            return [_project(row.to_document(), projection) for row in rows]

    async def count(self, criteria: Optional[Criteria] = None) -> int:
        stmt = select(func.count()).select_from(DocumentModel)
        if criteria is not None:
            stmt = stmt.where(compile_criteria(criteria))
        with self.database.get_session() as session:
            return session.scalar(stmt)

    async def save(self, document: Document) -> Document:
        """Insert or overwrite a document, then run the after-save hooks."""
        self._write([document])
        for hook in self._after_save:
            await hook(document)
        return document

    async def save_many(self, documents: List[Document]) -> None:
        """Bulk write without after-save hooks (a reindex picks these up)."""
        self._write(documents)
        logger.info(f"Saved {len(documents)} documents")

    def _write(self, documents: List[Document]) -> None:
        with self.database.get_session() as session:
            for document in documents:
                data = {k: v for k, v in document.items() if k not in ("id", "locale")}
                session.merge(DocumentModel(
                    id=document["id"],
                    locale=document.get("locale"),
                    data=data,
                ))
