from __future__ import annotations

from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict

from todochamp.common.dates import convert_date_format


class Task(BaseModel):
    """A task as shown to the user.

    - ``id`` is assigned by the document store on creation
    - ``created_at`` is already converted to the display format
    """

    model_config = ConfigDict(frozen=True)

    id: str = ""
    title: str = ""
    body: str = ""
    created_at: str = ""

    @classmethod
    def from_document(cls, task_id: str, document: Mapping[str, str]) -> Task:
        # Documents written by other clients may lack fields; default them to ""
        return cls(
            id=task_id,
            title=document.get("title") or "",
            body=document.get("body") or "",
            created_at=convert_date_format(document.get("createdAt") or ""),
        )


__all__ = ["Task"]
