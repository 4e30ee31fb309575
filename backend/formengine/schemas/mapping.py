"""Field mapping and transform Pydantic schemas."""

from datetime import datetime
from typing import Annotated, Optional, Dict, Literal, Union

from pydantic import BaseModel, Field


class TrimTransform(BaseModel):
    """Strip surrounding whitespace."""
    kind: Literal["trim"]


class DateFormatTransform(BaseModel):
    """Reformat a date value using strftime-style patterns."""
    kind: Literal["dateFormat"]
    from_format: str = Field("%Y-%m-%d", alias="fromFormat")
    to_format: str = Field(..., alias="toFormat")
    
    class Config:
        populate_by_name = True


class EnumRelabelTransform(BaseModel):
    """Replace internal choice values with the portal's labels."""
    kind: Literal["enumRelabel"]
    table: Dict[str, str]
    strict: bool = Field(False, description="Reject values missing from the table instead of passing them through")


class CaseTransform(BaseModel):
    """Change letter case."""
    kind: Literal["case"]
    mode: Literal["upper", "lower"]


TransformSpec = Annotated[
    Union[TrimTransform, DateFormatTransform, EnumRelabelTransform, CaseTransform],
    Field(discriminator="kind"),
]


class PortalFieldTarget(BaseModel):
    """Where one internal field lands in the portal payload."""
    portal_field: str = Field(..., min_length=1, alias="portalField")
    transform: Optional[TransformSpec] = None
    
    class Config:
        populate_by_name = True


class PortalCreate(BaseModel):
    """Schema for registering a portal."""
    id: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=255)


class PortalResponse(BaseModel):
    id: str
    name: str
    is_active: bool
    
    class Config:
        from_attributes = True


class FieldMappingCreate(BaseModel):
    """Schema for creating a field mapping."""
    template_id: int
    portal_id: str = Field(..., min_length=1)
    mappings: Dict[str, PortalFieldTarget]


class FieldMappingUpdate(BaseModel):
    """
    Schema for updating a field mapping.
    
    ``template_id`` and ``portal_id`` are accepted only so that attempts to
    re-target a mapping can be rejected explicitly.
    """
    mappings: Optional[Dict[str, PortalFieldTarget]] = None
    template_id: Optional[int] = None
    portal_id: Optional[str] = None


class FieldMappingResponse(BaseModel):
    """Schema for field mapping responses."""
    id: int
    template_id: int
    portal_id: str
    mappings: Dict[str, PortalFieldTarget]
    is_active: bool
    created_by: str
    updated_by: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]
    
    class Config:
        from_attributes = True
