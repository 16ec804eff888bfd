from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel

# --- User Store Tables ---

class UserRecord(SQLModel, table=True):
    """Primary user row. Columns mirror the indexed user table of the store."""
    __tablename__ = "users"
    id: Optional[int] = Field(default=None, primary_key=True)
    user_login: str = Field(index=True)
    user_nicename: str = Field(default="", index=True)
    user_email: str = Field(index=True)
    display_name: str = Field(default="")
    # Stored as naive UTC, like the store it mirrors
    user_registered: datetime = Field(
        default_factory=lambda: datetime.now(UTC).replace(tzinfo=None),
        sa_type=DateTime(timezone=False),
    )

class UserMeta(SQLModel, table=True):
    """Generic key/value attribute attached to a user (billing, names, flags)."""
    __tablename__ = "usermeta"
    umeta_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    meta_key: str = Field(index=True)
    meta_value: str = ""

class UserRole(SQLModel, table=True):
    """Role membership. Insertion order (umrole_id) defines the primary role."""
    __tablename__ = "user_roles"
    umrole_id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="users.id", index=True)
    role: str = Field(index=True)
