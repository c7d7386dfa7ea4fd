from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    id: str
    type: Literal["contact", "project", "task"]
    title: str
    content: str
    relevance: int
    metadata: dict = Field(default_factory=dict)


class SearchResponse(BaseModel):
    query: str
    terms: list[str]
    results: list[SearchResult]
    summary: str
