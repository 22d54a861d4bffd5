# receivables/models/relations.py

from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator


class RelationOut(BaseModel):
    """A stored document -> customer link row. customer_id may be null."""

    document_id: int
    customer_id: Optional[int] = None


class LinkState(str, Enum):
    UNLINKED = "unlinked"      # no relation row at all
    UNRESOLVED = "unresolved"  # row exists, customer_id is null
    LINKED = "linked"


class DocumentLink(BaseModel):
    document_id: int
    state: LinkState
    customer_id: Optional[int] = None

    @model_validator(mode="after")
    def _customer_matches_state(self):
        if (self.state is LinkState.LINKED) != (self.customer_id is not None):
            raise ValueError("customer_id must be set exactly when state is 'linked'")
        return self

    @classmethod
    def from_relation(cls, document_id: int, relation: Optional[RelationOut]) -> "DocumentLink":
        if relation is None:
            return cls(document_id=document_id, state=LinkState.UNLINKED)
        if relation.customer_id is None:
            return cls(document_id=document_id, state=LinkState.UNRESOLVED)
        return cls(
            document_id=document_id,
            state=LinkState.LINKED,
            customer_id=relation.customer_id,
        )

    @property
    def is_linked(self) -> bool:
        return self.state is LinkState.LINKED


class ClassificationType(str, Enum):
    INTERNAL = "internal"  # owner / staff money movement
    EXTERNAL = "external"


class ClassificationOut(BaseModel):
    deposit_id: int
    classification_type: ClassificationType
    classification_detail: Optional[str] = None


class ClassificationIn(BaseModel):
    classification_type: ClassificationType
    detail: Optional[str] = None


class LinkIn(BaseModel):
    customer_id: int
