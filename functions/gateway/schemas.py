"""
Pydantic schemas for the gateway's own endpoints.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: Literal["ok"]
    site_name: str
