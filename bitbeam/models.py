from typing import Optional

from sqlalchemy import BigInteger
from sqlmodel import Field, SQLModel

UNKNOWN = "unknown"


class FileBase(SQLModel):
    id: str = Field(primary_key=True)
    file_name: str = Field(default=UNKNOWN)
    content_type: str = Field(default=UNKNOWN)
    upload_time: int = Field(sa_type=BigInteger)  # unix seconds
    download_limit: int = Field(default=1)
    download_count: int = Field(default=0)
    file_size: int = Field(sa_type=BigInteger)
    download_url: str
    owner: Optional[str] = Field(default=None, index=True)


class File(FileBase, table=True):
    __tablename__ = "files"

    # Set by the consumption that exhausts the limit; the row is never served again.
    pending_deletion: bool = Field(default=False)


class FileRead(FileBase):
    pass


class User(SQLModel, table=True):
    __tablename__ = "users"

    key: str = Field(primary_key=True)
    username: str = Field(unique=True, index=True)
    password: str  # passlib hash


class UserRead(SQLModel):
    key: str
    username: str
