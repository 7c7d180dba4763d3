"""
Operator account models for the AeroDesk application.
"""

from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict

from .enums import UserRole


class UserModel(BaseModel):
    """Terminal operator. The password hash never leaves the store layer."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str = Field(..., min_length=1, max_length=50)
    role: UserRole
    full_name: str
    is_active: bool = True
    created_at: datetime
