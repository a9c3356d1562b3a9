"""Idempotent persistence for gateway records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from idpsync.models.categories import RecordCategory
from idpsync.models.message import TerminatedMessage

_CONFLICT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class InsertOutcome(str, Enum):
    CREATED = "created"
    ALREADY_PRESENT = "already_present"


@dataclass
class MergeResult:
    record: Any
    created: bool = False
    changed: Tuple[str, ...] = field(default_factory=tuple)


def _comparable(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MessageStore:
    """Insert-if-absent and upsert-merge over the closed set of record categories."""

    def __init__(self, session: Session) -> None:
        self._session = session
        self._logger = logging.getLogger("idpsync.services.message_store")

    @property
    def _dialect(self) -> str:
        return self._session.get_bind().dialect.name

    def get(self, category: RecordCategory, **key: Any) -> Optional[Any]:
        stmt = select(category.model).filter_by(**key)
        return self._session.scalars(stmt).first()

    def insert_if_absent(self, category: RecordCategory, values: Mapping[str, Any]) -> InsertOutcome:
        """Write ``values`` unless a row with the same natural key exists.

        A single conditional statement on SQLite/PostgreSQL; a savepoint guarded
        by the unique constraint elsewhere. Never modifies an existing row.
        """

        self._require_key(category, values)
        insert_factory = _CONFLICT_DIALECTS.get(self._dialect)
        if insert_factory is not None:
            stmt = (
                insert_factory(category.model.__table__)
                .values(**values)
                .on_conflict_do_nothing(index_elements=list(category.key))
            )
            created = self._session.execute(stmt).rowcount > 0
        else:
            created = self._insert_guarded(category, values)

        outcome = InsertOutcome.CREATED if created else InsertOutcome.ALREADY_PRESENT
        self._logger.debug(
            "record_insert_if_absent",
            extra={
                "category": category.value,
                "table": category.table_name,
                "key": self._key_of(category, values),
                "outcome": outcome.value,
            },
        )
        return outcome

    def upsert_merge(
        self,
        category: RecordCategory,
        values: Mapping[str, Any],
        key: Optional[Sequence[str]] = None,
    ) -> MergeResult:
        """Insert ``values`` or overlay them onto the existing row.

        Only attributes present in ``values`` are considered, and the row is
        written back only when at least one of them differs from storage.
        """

        key_columns = tuple(key or category.key)
        self._require_key(category, values, key_columns)
        lookup = {column: values[column] for column in key_columns}

        record = self._locked_lookup(category, lookup)
        if record is None:
            record = category.model(**values)
            try:
                with self._session.begin_nested():
                    self._session.add(record)
                    self._session.flush()
            except IntegrityError:
                # Lost an insert race; merge into the winner's row instead.
                record = self._locked_lookup(category, lookup)
                if record is None:
                    raise
            else:
                self._logger.info(
                    "record_created",
                    extra={"category": category.value, "table": category.table_name, "key": lookup},
                )
                return MergeResult(record=record, created=True, changed=tuple(values))

        changed: List[str] = []
        for attribute, value in values.items():
            if attribute in key_columns:
                continue
            if _comparable(getattr(record, attribute)) != _comparable(value):
                setattr(record, attribute, value)
                changed.append(attribute)

        if changed:
            self._session.flush()
            self._logger.info(
                "record_merged",
                extra={"category": category.value, "table": category.table_name, "key": lookup, "changed": changed},
            )
        return MergeResult(record=record, created=False, changed=tuple(changed))

    def open_terminated_ids(self, access_id: str) -> List[int]:
        """Forward message ids still awaiting a final status for ``access_id``."""

        stmt = (
            select(TerminatedMessage.message_id)
            .where(TerminatedMessage.access_id == access_id)
            .where(TerminatedMessage.is_closed.is_(False))
            .order_by(TerminatedMessage.message_id)
        )
        return list(self._session.scalars(stmt))

    def _locked_lookup(self, category: RecordCategory, lookup: Dict[str, Any]) -> Optional[Any]:
        stmt = select(category.model).filter_by(**lookup)
        if self._dialect != "sqlite":
            stmt = stmt.with_for_update(nowait=False)
        return self._session.scalars(stmt).first()

    def _insert_guarded(self, category: RecordCategory, values: Mapping[str, Any]) -> bool:
        try:
            with self._session.begin_nested():
                self._session.add(category.model(**values))
                self._session.flush()
        except IntegrityError:
            return False
        return True

    @staticmethod
    def _require_key(
        category: RecordCategory,
        values: Mapping[str, Any],
        key_columns: Optional[Sequence[str]] = None,
    ) -> None:
        missing = [column for column in (key_columns or category.key) if values.get(column) is None]
        if missing:
            raise ValueError(f"{category.value} record is missing key columns: {', '.join(missing)}")

    @staticmethod
    def _key_of(category: RecordCategory, values: Mapping[str, Any]) -> Dict[str, Any]:
        return {column: values.get(column) for column in category.key}
