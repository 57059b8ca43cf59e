"""Endpoint catalog models."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EndpointRecordInput(BaseModel):
    """Fields scraped from one upstream documentation table row."""
    model_config = ConfigDict(populate_by_name=True)
    
    category: str
    name: str
    return_type: str = Field(default="", alias="returnType")
    description: str = ""
    parameters: str = ""
    link: str


class EndpointRecord(EndpointRecordInput):
    """A stored catalog entry; ``id`` and ``scraped_at`` are assigned by the store."""
    id: int
    scraped_at: Optional[datetime] = Field(default=None, alias="scrapedAt")


class CategorySummary(BaseModel):
    category: str
    count: int
