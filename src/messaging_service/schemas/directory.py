from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ProfileRead(BaseModel):
    """Display profile of a user as served by the auth service."""

    model_config = ConfigDict(extra="ignore")

    id: UUID
    full_name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class ProjectRead(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    name: str
