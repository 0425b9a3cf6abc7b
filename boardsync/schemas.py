from datetime import datetime, timezone

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel


class EventPayload(BaseModel):
    """Trigger payloads arrive camelCased; snake_case is accepted too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# --- Account ---

class AccountEvent(EventPayload):
    uid: str = Field(validation_alias=AliasChoices("uid", "subjectId", "subject_id"))
    email: str | None = None
    display_name: str | None = None
    photo_url: str | None = Field(
        None, validation_alias=AliasChoices("photoURL", "photoUrl", "avatarRef", "photo_url")
    )


# --- Article ---

class ImageRef(EventPayload):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    id: str
    thumb_id: str


class ArticleAuthor(EventPayload):
    email: str | None = None
    display_name: str | None = None


class ArticleSnapshot(EventPayload):
    """The article document as the store saw it when the event fired."""

    uid: str = ""
    user: ArticleAuthor = Field(default_factory=ArticleAuthor)
    title: str = ""
    summary: str = ""
    category: str | None = None
    tags: list[str] = []
    images: list[ImageRef] = []
    read_count: int = 0
    comment_count: int = 0
    like_count: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class ArticleChange(EventPayload):
    before: ArticleSnapshot
    after: ArticleSnapshot


# --- Blob storage ---

class BlobObject(EventPayload):
    name: str
    content_type: str | None = None
    size: int = 0
    crc32c: str | None = None


# --- Event outcomes ---

class StepOutcome(BaseModel):
    step: str
    severity: str
    ok: bool
    error: str | None = None


class EventReport(BaseModel):
    event: str
    outcomes: list[StepOutcome] = []

    @computed_field
    @property
    def degraded(self) -> bool:
        return any(not o.ok for o in self.outcomes)

    @property
    def failed_steps(self) -> list[str]:
        return [o.step for o in self.outcomes if not o.ok]


# --- Metrics ---

class MetricsResponse(BaseModel):
    total_users: int
    total_boards: int
    events: dict = {}
