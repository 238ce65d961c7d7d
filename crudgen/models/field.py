"""
Field descriptor models.

A field descriptor is the UI/validation metadata derived for one field of an
entity. Descriptors are serialized as-is to form-rendering clients.
"""

from typing import Any

from pydantic import BaseModel, Field

from .base import SemanticType, UIType


class FieldOption(BaseModel):
    """A selectable value for select/multiselect fields."""

    value: Any
    label: str


class FieldValidation(BaseModel):
    """Validation constraints rendered into the form and enforced on submit."""

    min_length: int | None = None
    max_length: int | None = None
    min: int | float | None = None
    max: int | float | None = None
    pattern: str | None = None


class FieldDescriptor(BaseModel):
    """Canonical descriptor for one field of an entity."""

    name: str
    type: UIType
    semantic_type: SemanticType
    label: str
    required: bool = False
    validation: FieldValidation = Field(default_factory=FieldValidation)
    options: list[FieldOption] = Field(default_factory=list)
    placeholder: str = ""
    help_text: str = ""
    default_value: Any = None
    ref: str | None = None

    @property
    def is_file(self) -> bool:
        return self.type == UIType.file

    @property
    def is_multi_valued(self) -> bool:
        """Whether submitted values collapse into an ordered sequence."""
        if self.type in (UIType.multiselect, UIType.tags):
            return True
        return self.semantic_type.is_array and self.type != UIType.file

    @property
    def expects_array(self) -> bool:
        """Whether the persisted value is a list rather than a scalar."""
        return self.semantic_type.is_array


type FieldDescriptorMap = dict[str, FieldDescriptor]
