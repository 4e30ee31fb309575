"""Template-related Pydantic schemas."""

import re
from datetime import datetime
from enum import Enum
from typing import Optional, List, Union

from pydantic import BaseModel, Field, model_validator

from formengine.models.template import TemplateStatus


class FieldType(str, Enum):
    """Value kinds a template field can hold."""
    TEXT = "text"
    DATE = "date"
    NUMBER = "number"
    CHOICE = "choice"
    BOOLEAN = "boolean"
    FILE_REFERENCE = "file-reference"


class ValidationRuleType(str, Enum):
    """Checks a field value must pass before generation."""
    PATTERN = "pattern"
    MIN_LENGTH = "minLength"
    MAX_LENGTH = "maxLength"
    MIN = "min"
    MAX = "max"


class ValidationRule(BaseModel):
    """One validation rule on a template field."""
    type: ValidationRuleType
    value: Union[int, float, str]
    message: Optional[str] = Field(None, max_length=500, description="Shown instead of the default message")

    @model_validator(mode="after")
    def check_value(self) -> "ValidationRule":
        """The rule value must suit the rule type."""
        if self.type == ValidationRuleType.PATTERN:
            if not isinstance(self.value, str):
                raise ValueError("pattern rules take a regular expression string")
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"invalid pattern: {e}")
        elif self.type in (ValidationRuleType.MIN_LENGTH, ValidationRuleType.MAX_LENGTH):
            if not isinstance(self.value, int) or self.value < 0:
                raise ValueError(f"{self.type.value} takes a non-negative integer")
        elif isinstance(self.value, str):
            raise ValueError(f"{self.type.value} takes a number")
        return self


class TemplateField(BaseModel):
    """Schema for a single form field in the template."""
    id: str = Field(..., min_length=1, description="Field identifier, unique across the whole template")
    label: str = Field(..., min_length=1, description="Human-readable field label")
    type: FieldType = FieldType.TEXT
    required: bool = False
    source_path: Optional[str] = Field(
        None,
        alias="sourcePath",
        description="Dotted locator into case/document data (e.g. 'applicant.passport.number'). "
                    "Absent means the value is user-supplied only."
    )
    options: Optional[List[str]] = Field(None, description="Allowed values for choice fields")
    help_text: Optional[str] = None
    rules: Optional[List[ValidationRule]] = None

    class Config:
        populate_by_name = True


class FieldValidationResponse(BaseModel):
    """Everything a client needs to check one field before generating."""
    field_id: str
    type: FieldType
    required: bool
    options: Optional[List[str]] = None
    rules: List[ValidationRule] = []


class TemplateSection(BaseModel):
    """Schema for a form section."""
    id: str = Field(..., min_length=1, description="Section identifier (e.g., 'personal_details')")
    title: str = Field(..., description="Section title")
    description: Optional[str] = None
    fields: List[TemplateField] = []


class TemplateCreate(BaseModel):
    """Schema for creating a new template family."""
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    sections: List[TemplateSection] = []


class TemplateUpdate(BaseModel):
    """Schema for patching a template; unset keys keep the prior value."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    sections: Optional[List[TemplateSection]] = None


class TemplateResponse(BaseModel):
    """Schema for template responses."""
    id: int
    family_id: str
    version: int
    name: str
    description: Optional[str]
    status: TemplateStatus
    sections: List[TemplateSection]
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime]
    published_at: Optional[datetime]
    archived_at: Optional[datetime]
    
    class Config:
        from_attributes = True


class TemplateListResponse(BaseModel):
    """Schema for template list responses."""
    id: int
    family_id: str
    version: int
    name: str
    description: Optional[str]
    status: TemplateStatus
    created_at: datetime
    
    class Config:
        from_attributes = True
