import uuid

from pydantic import BaseModel, ConfigDict


def generate_id(prefix: str, length: int = 12) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{uuid.uuid4().hex[:length].upper()}"


class Document(BaseModel):
    """
    Base for models persisted in MongoDB
    Enum fields are stored as their plain string values.
    """
    model_config = ConfigDict(use_enum_values=True, validate_assignment=True, validate_default=True)

    def to_document(self) -> dict:
        return self.model_dump()
