"""Plain data records for evidence, tags and editor responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Tag:
    """A tag attached to a piece of evidence in the local database."""

    server_tag_id: int
    tag_name: str
    id: int = 0
    evidence_id: int = 0


@dataclass
class ServerTag:
    """A tag as known by the server, including its display colour name."""

    id: int
    name: str
    color_name: str = ""

    def to_model(self) -> Tag:
        """Return the local tag record that refers to this server tag."""
        return Tag(server_tag_id=self.id, tag_name=self.name)

    @classmethod
    def from_model(cls, tag: Tag, color_name: str) -> "ServerTag":
        """Build a server tag from a local tag record and a colour name."""
        return cls(id=tag.server_tag_id, name=tag.tag_name, color_name=color_name)


@dataclass
class Evidence:
    """A single piece of captured evidence."""

    id: int = 0
    path: str = ""
    operation_slug: str = ""
    content_type: str = ""
    description: str = ""
    error_text: str = ""
    recorded_date: datetime | None = None
    upload_date: datetime | None = None
    tags: list[Tag] = field(default_factory=list)


@dataclass
class SaveEvidenceResponse:
    """Outcome of saving edited evidence."""

    model: Evidence
    action_succeeded: bool = False
    error_text: str = ""


@dataclass
class DeleteEvidenceResponse:
    """Outcome of deleting evidence from both disk and database."""

    model: Evidence
    file_delete_success: bool = False
    db_delete_success: bool = False
    error_text: str = ""