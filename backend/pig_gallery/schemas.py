from pydantic import AliasChoices, BaseModel, Field
from typing import Any, List, Optional


class PigCreate(BaseModel):
    # Presence, length and format are checked by SubmissionService in order
    name: Optional[str] = None
    image: Optional[str] = None


class CommentCreate(BaseModel):
    content: Any = None


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None
    image: Optional[str] = Field(default=None, validation_alias=AliasChoices("image", "baseImage"))


class PigOut(BaseModel):
    id: int
    name: str
    image: str
    location: str
    likes: int
    created_at: int

    class Config:
        from_attributes = True


class PigListItem(PigOut):
    comment_count: int


class CommentOut(BaseModel):
    id: int
    content: str
    created_at: int

    class Config:
        from_attributes = True


class Stats(BaseModel):
    total: int
    totalLikes: int
    countries: int


class SubmitResponse(BaseModel):
    success: bool = True
    id: int
    message: str


class PigListResponse(BaseModel):
    success: bool = True
    total: int
    page: int
    search: Optional[str]
    pigs: List[PigListItem]


class PigResponse(BaseModel):
    success: bool = True
    pig: PigOut


class LikeResponse(BaseModel):
    success: bool = True
    likes: int


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class CommentListResponse(BaseModel):
    success: bool = True
    total: int
    page: int
    comments: List[CommentOut]


class CommentCreateResponse(BaseModel):
    success: bool = True
    id: int
    message: str
    comment: CommentOut


class StatsResponse(BaseModel):
    success: bool = True
    stats: Stats


class GenerateResponse(BaseModel):
    success: bool = True
    message: str = ""
    generatedImage: Optional[str] = None
