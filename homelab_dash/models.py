# homelab_dash/models.py
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Literal, Optional


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class JourneyStop(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    time: str
    location: str
    icon: str
    lat: float
    lon: float
    is_current: bool = False


class Note(CamelModel):
    """A Blinko note as returned by /api/v1/note/list and /note/upsert."""

    id: int
    content: str = ""
    type: int = 0
    is_archived: bool = False
    is_top: bool = False
    created_at: str = ""
    updated_at: str = ""


class TodoItem(CamelModel):
    id: int
    content: str
    done: bool
    column: Literal["today", "later"]
    created_at: str
    updated_at: str


class RSSItem(CamelModel):
    id: int
    title: str
    url: str
    source: str = ""
    summary: Optional[str] = None
    score: Optional[int] = None
    is_new: bool = False
    is_starred: bool = False
    published_at: str = ""


class TodoWrite(BaseModel):
    id: Optional[int] = None
    content: str = ""
    done: Optional[bool] = None
    column: Literal["today", "later"] = "today"


class TodoPatch(BaseModel):
    id: Optional[int] = Field(None, description="Blinko note id of the todo")
    content: str = ""
    done: bool = False
    column: Literal["today", "later"] = "today"
