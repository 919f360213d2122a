"""Category model for SQLModel."""
from sqlmodel import SQLModel, Field
import uuid


class Category(SQLModel, table=True):
    """Named, coloured bucket a task belongs to."""

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        primary_key=True,
        index=True
    )
    owner_id: str = Field(index=True, max_length=255)
    name: str = Field(max_length=100, min_length=1)
    color: str = Field(max_length=20)  # hex
    is_default: bool = Field(default=False)
