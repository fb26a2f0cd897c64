# src/client/models.py — v1
"""Client-side types: Session and catalog entries returned by the server."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class Session(BaseModel):
    """Authenticated session; the server honours only the newest per user."""

    session_id: str
    username: str
    created_at: datetime


class Project(BaseModel):
    id: int
    name: str


class Preset(BaseModel):
    id: int
    name: str


class SourceEncoding(BaseModel):
    """Language/technology configuration set used by the analyzer."""

    id: int
    name: str


class ProjectNameCheck(BaseModel):
    """Server verdict on a project name."""

    valid: bool
    reachable: bool = True
    message: str = ""
