"""User model used by the database user provider."""

from sqlmodel import Field, SQLModel


class User(SQLModel, table=True):
    """Authenticatable user record."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    full_name: str = Field(max_length=100)
    is_active: bool = Field(default=True)
    is_superuser: bool = Field(default=False)
    remember_token: str | None = Field(default=None, max_length=100)
