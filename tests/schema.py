from typing import Optional, List
from enum import Enum
from pydantic import BaseModel, Field

class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    
class Profile(BaseModel):
    bio: str
    website: Optional[str] = Field(None, json_schema_extra={"omitempty": True})
    
class User(BaseModel):
    id: int
    name: str = Field(alias="displayName")
    status: UserStatus = UserStatus.ACTIVE
    profile: Optional[Profile] = None
    password_hash: str = Field("", exclude=True)

class Team(BaseModel):
    name: str
    members: List[User] = []
    parent: Optional["Team"] = None

class GetUserRequest(BaseModel):
    id: int = Field(json_schema_extra={"path": "id"})
    verbose: bool = Field(False, json_schema_extra={"query": "verbose"})
