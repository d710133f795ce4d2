"""
Attachment selection for the symptom checker.

An addition is accepted or rejected as a whole: if the new files would
push the selection past the count limit, or any of them is too large or
of a disallowed type, nothing is added and the current selection stays
as it was.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

MAX_FILES = 5
MAX_FILE_BYTES = 10 * 1024 * 1024
ALLOWED_EXTENSIONS = ('.pdf', '.jpg', '.jpeg', '.png', '.doc', '.docx')

TOO_MANY_FILES = f'Maximum {MAX_FILES} files allowed'
FILE_TOO_LARGE = 'Files must be less than 10MB each'
BAD_FILE_TYPE = 'Only PDF, JPG, PNG and DOC files are allowed'

_CONTENT_TYPES = {
    '.pdf': 'application/pdf',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.doc': 'application/msword',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}


@dataclass(frozen=True)
class Attachment:
    name: str
    size: int
    content: bytes = b''

    @classmethod
    def from_bytes(cls, name: str, content: bytes) -> 'Attachment':
        return cls(name, len(content), content)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()

    @property
    def content_type(self) -> str:
        return _CONTENT_TYPES.get(self.extension, 'application/octet-stream')

    def as_upload(self) -> Tuple[str, Tuple[str, bytes, str]]:
        """Multipart part in the form ``requests`` expects under ``files=``."""
        return ('files', (self.name, self.content, self.content_type))


@dataclass
class AttachmentSelection:
    max_files: int = MAX_FILES
    max_bytes: int = MAX_FILE_BYTES
    extensions: Tuple[str, ...] = ALLOWED_EXTENSIONS
    files: List[Attachment] = field(default_factory=list)

    def check(self, new: Iterable[Attachment]) -> Optional[str]:
        """Why ``new`` cannot be added, or None when it can."""
        new = list(new)
        if len(self.files) + len(new) > self.max_files:
            return TOO_MANY_FILES
        if any(f.size > self.max_bytes for f in new):
            return FILE_TOO_LARGE
        if any(f.extension not in self.extensions for f in new):
            return BAD_FILE_TYPE
        return None

    def add(self, new: Iterable[Attachment]) -> Optional[str]:
        """Add all of ``new`` or none of it; returns the rejection reason if any."""
        new = list(new)
        reason = self.check(new)
        if reason is None:
            self.files.extend(new)
        return reason

    def remove(self, index: int) -> Optional[Attachment]:
        """Drop the file at ``index``; an index outside the selection is ignored."""
        if 0 <= index < len(self.files):
            return self.files.pop(index)
        return None

    def clear(self) -> None:
        self.files.clear()

    def uploads(self) -> list:
        return [f.as_upload() for f in self.files]

    def __len__(self):
        return len(self.files)
