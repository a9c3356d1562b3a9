"""Closed set of record categories handled by the message store."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Type

from idpsync.models.base import Base
from idpsync.models.message import OriginatedMessage, TerminatedMessage
from idpsync.models.mobile import Mobile


@dataclass(frozen=True)
class CategoryDefinition:
    model: Type[Base]
    key: Tuple[str, ...]

    @property
    def table_name(self) -> str:
        return self.model.__tablename__


class RecordCategory(str, Enum):
    """Record kinds; each member resolves to its table and natural key."""

    MOBILE = "mobile"
    MOBILE_ORIGINATED = "messageMobileOriginated"
    MOBILE_TERMINATED = "messageMobileTerminated"

    @property
    def definition(self) -> CategoryDefinition:
        return _CATEGORY_DEFINITIONS[self]

    @property
    def model(self) -> Type[Base]:
        return self.definition.model

    @property
    def key(self) -> Tuple[str, ...]:
        return self.definition.key

    @property
    def table_name(self) -> str:
        return self.definition.table_name


_CATEGORY_DEFINITIONS = {
    RecordCategory.MOBILE: CategoryDefinition(model=Mobile, key=("mobile_id",)),
    RecordCategory.MOBILE_ORIGINATED: CategoryDefinition(model=OriginatedMessage, key=("message_id",)),
    RecordCategory.MOBILE_TERMINATED: CategoryDefinition(model=TerminatedMessage, key=("message_id",)),
}
