"""
Base schemas and mixins for all models.
"""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base for all schemas.

    Features:
        - Auto-trim whitespace from strings
        - Validate on attribute assignment
        - Allow ORM objects (from_attributes)
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True
    )


class FrozenSchema(BaseModel):
    """
    Base for records that must not change once produced.

    Edits go through model_copy(update=...), which returns a new instance.
    """
    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        frozen=True
    )

