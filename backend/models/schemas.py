from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class TimeWindow(str, Enum):
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    ALL_TIME = "all_time"


class CommitRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    sha: str
    author_date: datetime
    author_login: Optional[str] = None
    author_display_name: str
    author_avatar_url: Optional[str] = None
    message: str = ""
    html_url: Optional[str] = None

    @computed_field
    @property
    def summary(self) -> str:
        return self.message.split("\n", 1)[0]

    @computed_field
    @property
    def body(self) -> str:
        parts = self.message.split("\n", 1)
        return parts[1].strip("\n") if len(parts) > 1 else ""

    @computed_field
    @property
    def short_sha(self) -> str:
        return self.sha[:7]


class RepoRequest(BaseModel):
    owner: Optional[str] = None
    repo: Optional[str] = None
    # https://github.com/owner/repo 형태도 허용
    url: Optional[str] = None

    @model_validator(mode="after")
    def ensure_repo(self):
        if not self.url and not (self.owner or self.repo):
            raise ValueError("url or owner/repo is required")
        return self


class ActivityRequest(RepoRequest):
    window: TimeWindow = TimeWindow.ALL_TIME


class AggregateRequest(BaseModel):
    commits: List[CommitRecord]
    window: TimeWindow = TimeWindow.ALL_TIME
    # Mostly for reproducible tests; the server clock is used when omitted.
    now: Optional[datetime] = None


class DailyCount(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str
    count: int = Field(default=0, ge=0)


class ContributorSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    login: str
    display_name: str
    avatar_url: Optional[str] = None
    total_commits: int
    daily_series: List[DailyCount]


class ActivityReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    window: TimeWindow
    start: datetime
    end: datetime
    total_commits: int
    daily_series: List[DailyCount]
    contributors: List[ContributorSummary]


class ActivityResponse(ActivityReport):
    commits: List[CommitRecord]


class RewriteRequest(BaseModel):
    owner: str
    repo: str
    sha: str = Field(min_length=4)


class RewriteResult(BaseModel):
    sha: str
    original_message: str
    rewritten_message: str
