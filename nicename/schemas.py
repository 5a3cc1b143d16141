from typing import List, Optional

from pydantic import BaseModel


class RenameRequest(BaseModel):
    old: str
    new: str


class TableUpdate(BaseModel):
    table: str
    field: str
    mentions: int = 0
    urls: int = 0
    skipped: bool = False


class RenameResult(BaseModel):
    user_id: int
    old: str
    new: str
    buddypress: bool = False
    old_url: Optional[str] = None
    new_url: Optional[str] = None
    tables: List[TableUpdate] = []
