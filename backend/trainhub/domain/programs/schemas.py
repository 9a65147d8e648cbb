from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProgramCreateRequest(BaseModel):
    name: str
    description: str | None = None


class ProgramUpdateRequest(BaseModel):
    program_id: int
    name: str | None = None
    description: str | None = None


class ProgramRef(BaseModel):
    program_id: int


class ProgramListRequest(BaseModel):
    include_module_counts: bool = True


class ProgramResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    program_id: int
    name: str
    description: str | None = None
    active: bool
    created_at: datetime
    updated_at: datetime
    module_count: int | None = None


class ModuleCreateRequest(BaseModel):
    program_id: int
    name: str
    description: str | None = None
    order_index: int = 0
    content: str | None = None
    duration_minutes: int = Field(0, ge=0)
    required: bool = True


class ModuleUpdateRequest(BaseModel):
    module_id: int
    name: str | None = None
    description: str | None = None
    order_index: int | None = None
    content: str | None = None
    duration_minutes: int | None = Field(None, ge=0)
    required: bool | None = None


class ModuleRef(BaseModel):
    module_id: int


class ModuleReorderRequest(BaseModel):
    module_id: int
    order_index: int


class ModuleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    module_id: int
    program_id: int
    name: str
    description: str | None = None
    order_index: int
    content: str | None = None
    duration_minutes: int
    required: bool
    created_at: datetime
