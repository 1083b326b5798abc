"""Dependencies handing the app-scoped services to route handlers."""

from typing import List, Optional

from fastapi import Request, UploadFile

from travel_diary.config import Settings
from travel_diary.services.entries import EntryRepository
from travel_diary.services.submissions import SubmissionOrchestrator, UploadedMedia


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_repository(request: Request) -> EntryRepository:
    return request.app.state.repository


def get_orchestrator(request: Request) -> SubmissionOrchestrator:
    return request.app.state.orchestrator


def as_uploads(files: Optional[List[UploadFile]]) -> List[UploadedMedia]:
    """Convert multipart files, skipping the empty parts browsers send for blank inputs."""
    return [
        UploadedMedia(filename=f.filename, content_type=f.content_type or "", file=f.file)
        for f in (files or [])
        if f.filename
    ]
