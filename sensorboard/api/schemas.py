#!/usr/bin/env python3
"""
sensorboard API Schemas - Pydantic Models for Request Validation
"""

from typing import Optional
from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    # Blank endpoint/token fall back to the configured default
    influx_url: Optional[str] = None
    influx_token: Optional[str] = None


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    role: str = Field("client", pattern="^(admin|client)$")
    organization_id: int
