from typing import List, Literal, Optional

from sqlmodel import Field, SQLModel

Role = Literal["admin", "user"]
DocType = Literal["pdf", "text"]
MessageRole = Literal["user", "model"]
Mode = Literal["doc", "web", "both"]

MODES = ("doc", "web", "both")


class StoreEntry(SQLModel, table=True):
    __tablename__ = "store_entry"

    key: str = Field(primary_key=True)
    value: str


class User(SQLModel):
    id: str
    username: str
    password: Optional[str] = None
    role: Role = "user"
    accessible_docs: List[str] = Field(default_factory=list)


class Document(SQLModel):
    id: str
    name: str
    content: str
    instruction: str
    upload_date: str
    type: DocType = "text"


class Message(SQLModel):
    id: str
    role: MessageRole
    text: str
    timestamp: str
    source: Mode = "doc"
