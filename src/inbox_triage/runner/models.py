"""Result models for batch rule runs."""

from datetime import datetime

from pydantic import BaseModel, Field


class ActionCounts(BaseModel):
    """How many messages each kind of action touched."""

    marked_read: int = Field(default=0, description="Messages marked as read")
    labeled: int = Field(default=0, description="Messages labeled")
    moved: int = Field(default=0, description="Messages moved")

    @property
    def total(self) -> int:
        return self.marked_read + self.labeled + self.moved


class BatchRunResult(BaseModel):
    """Summary of running selected rules over a folder."""

    started_at: datetime = Field(description="When the run started")
    completed_at: datetime | None = Field(default=None, description="When the run ended")
    success: bool = Field(default=True, description="False if the run aborted")
    message: str = Field(default="", description="Human-readable outcome")
    mails_processed: int = Field(default=0, description="Headers evaluated")
    total_in_scope: int = Field(default=0, description="Messages the folder reported")
    mails_matched: int = Field(default=0, description="Messages with at least one action")
    counts: ActionCounts = Field(default_factory=ActionCounts)
    errors: list[str] = Field(default_factory=list, description="Per-step failures")

    @property
    def duration_seconds(self) -> float:
        if self.completed_at is None:
            return 0.0
        return (self.completed_at - self.started_at).total_seconds()
