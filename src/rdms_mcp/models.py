"""Data models for RDMS records, list rows and image payloads."""

import base64
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class HistoryEntry:
    """One line of a record's change history."""

    raw_text: str
    comment: Optional[str] = None
    time: Optional[str] = None
    operator: Optional[str] = None
    action: Optional[str] = None

    @property
    def matched(self) -> bool:
        """Whether the raw text matched the timestamp/operator/action pattern."""
        return self.time is not None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dictionary; time/operator/action only when matched."""
        data: Dict[str, Any] = {
            "rawText": self.raw_text,
            "comment": self.comment,
        }
        if self.matched:
            data["time"] = self.time
            data["operator"] = self.operator
            data["action"] = self.action
        return data


@dataclass
class Record:
    """A normalized bug-like record.

    ``fields`` always holds every field name declared by the record profile;
    a field that was not found is an empty string, never missing.
    """

    record_type: str
    id: str
    fields: Dict[str, str] = field(default_factory=dict)
    images: List[str] = field(default_factory=list)
    history: List[HistoryEntry] = field(default_factory=list)

    def get(self, name: str) -> str:
        return self.fields.get(name, "")

    def is_empty(self, name: str) -> bool:
        return not self.fields.get(name)

    @property
    def title(self) -> str:
        return self.fields.get("title", "")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the flat reply shape."""
        data: Dict[str, Any] = {"id": self.id}
        data.update(self.fields)
        data["images"] = list(self.images)
        data["history"] = [entry.to_dict() for entry in self.history]
        return data


@dataclass
class ListEntry:
    """Summary row of a bug or market-bug listing."""

    id: str
    title: str
    status: str = ""
    priority: str = ""
    severity: str = ""
    assigned_to: str = ""
    reporter: str = ""
    resolver: str = ""
    resolution: str = ""
    created: str = ""
    url: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "title": self.title,
            "status": self.status,
            "priority": self.priority,
            "severity": self.severity,
            "assignedTo": self.assigned_to,
            "reporter": self.reporter,
            "resolver": self.resolver,
            "resolution": self.resolution,
            "created": self.created,
            "url": self.url,
        }


@dataclass
class ListResult:
    """Result of a listing extraction."""

    entries: List[ListEntry] = field(default_factory=list)
    message: str = ""
    type: str = ""
    success: bool = True

    @property
    def total(self) -> int:
        return len(self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "total": self.total,
            "entries": [entry.to_dict() for entry in self.entries],
            "type": self.type,
            "message": self.message,
        }


@dataclass
class ImagePayload:
    """Downloaded image bytes plus their metadata."""

    source_url: str
    mime_type: str
    mime_subtype: str
    data: bytes = b""
    saved_path: Optional[str] = None

    @property
    def byte_length(self) -> int:
        return len(self.data)

    @property
    def base64_data(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def size_kb(self) -> int:
        return round(self.byte_length / 1024)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize metadata (never the bytes)."""
        data: Dict[str, Any] = {
            "success": True,
            "imageUrl": self.source_url,
            "type": self.mime_subtype,
            "size": self.byte_length,
        }
        if self.saved_path:
            data["savedTo"] = self.saved_path
        return data


@dataclass
class LoginResult:
    """Outcome of a login attempt."""

    success: bool
    message: str = ""
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "message": self.message}
        return {"success": False, "error": self.message, "code": self.code}
