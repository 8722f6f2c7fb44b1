"""
Base models for PID Tagger.
"""

import uuid

from pydantic import BaseModel as PydanticBaseModel


def new_id() -> str:
    """Generate a fresh entity identifier."""
    return str(uuid.uuid4())


class BaseModel(PydanticBaseModel):
    """
    Base model for all PID Tagger data structures.

    Fields may be populated by name or by their wire alias (``sourceItems``,
    ``from``...), and assignments are validated after creation.
    """

    model_config = {
        "populate_by_name": True,
        "validate_assignment": True,
        "extra": "ignore",
    }
