"""
Source record schema.

Tasks are owned by the primary product database. This package only reads
the textual fields listed in SEARCHABLE_FIELDS and reacts to task
create/update/delete events; it never writes a task.
"""

from pydantic import BaseModel, ConfigDict, Field

# Order matters: it is the order the fields are concatenated for embedding
SEARCHABLE_FIELDS: tuple[str, ...] = (
    "title",
    "description",
    "notes",
    "outcome",
    "blocker",
    "need",
)


class TaskRecord(BaseModel):
    """
    Read-only view of a task's searchable content.

    Extra columns coming from the task table (status, assignee, tenant…)
    are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1, description="Opaque task ID")
    title: str = Field(default="", description="Task title")
    description: str | None = Field(default=None, description="Long description")
    notes: str | None = Field(default=None, description="Free-text notes")
    outcome: str | None = Field(default=None, description="Desired outcome")
    blocker: str | None = Field(default=None, description="Current blocker")
    need: str | None = Field(default=None, description="What is needed to progress")

    def search_text(self) -> str:
        """
        Build the text that represents this task in the vector store.

        Non-empty fields from SEARCHABLE_FIELDS, joined by single spaces and
        trimmed. Whitespace-only fields count as empty.
        """
        parts = []
        for name in SEARCHABLE_FIELDS:
            value = getattr(self, name)
            if value and value.strip():
                parts.append(value.strip())
        return " ".join(parts).strip()
