"""
Location Schemas
Geohashed user positions, clusters of co-located users, and visit history.
"""

from typing import List
from datetime import datetime
from pydantic import BaseModel, Field


class Location(BaseModel):
    """Basic location with coordinates."""
    latitude: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(..., ge=-180, le=180, description="Longitude in decimal degrees")


class UserGeohash(BaseModel):
    """Current geohashed location of an active user."""
    user_id: int
    geohash: str = Field(..., min_length=1)


class LocationCluster(BaseModel):
    """Users considered to be at the same place."""
    geohash: str = Field(..., description="Representative geohash, fixed at creation")
    user_ids: List[int] = Field(default_factory=list, description="Members in discovery order")


class PlaceVisitRecord(BaseModel):
    """A place the user stayed at for a significant amount of time."""
    geohash: str
    timestamp: datetime = Field(..., description="Start of the visit")
    duration_seconds: float = Field(..., ge=0)
