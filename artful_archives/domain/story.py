"""
Story domain model, as served by the CMS API.

Field names follow the API's snake_case wire format, so the same models
decode API responses and serialize into the offline cache.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .language import LanguageCode
from .workflow import WorkflowStage


class StoryMedia(BaseModel):
    """An image from the CMS media library."""
    id: int
    name: str
    alternative_text: str | None = None
    caption: str | None = None
    width: int | None = None
    height: int | None = None
    url: str
    mime: str | None = None
    size: float | None = None  # bytes

    @property
    def display_name(self) -> str:
        return self.alternative_text or self.name


class StoryAudio(BaseModel):
    """Narration URLs keyed by language."""
    english: str | None = None
    spanish: str | None = None
    hindi: str | None = None

    def audio_url(self, language: LanguageCode) -> str | None:
        return {
            LanguageCode.ENGLISH: self.english,
            LanguageCode.SPANISH: self.spanish,
            LanguageCode.HINDI: self.hindi,
        }[language]


class StoryLocalization(BaseModel):
    """Pointer to another language version of a story."""
    id: int
    locale: str
    title: str


class StoryAuthor(BaseModel):
    id: int
    name: str
    email: str | None = None


class StrapiAttributes(BaseModel):
    published_at: datetime | None = None
    created_by: StoryAuthor | None = None
    updated_by: StoryAuthor | None = None


class Story(BaseModel):
    """One multilingual, narrated content item."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    document_id: str
    title: str
    slug: str
    body_message: str
    excerpt: str
    image: StoryMedia | None = None
    images: list[StoryMedia] | None = None
    audio: StoryAudio | None = None
    workflow_stage: WorkflowStage
    visible: bool
    locale: str | None = None
    localizations: list[StoryLocalization] | None = None
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None
    created_by: StoryAuthor | None = None
    strapi_attributes: StrapiAttributes | None = Field(default=None, alias="strapiAttributes")

    @property
    def web_url(self) -> str:
        return f"/stories/{self.slug}"

    @property
    def preview_image_url(self) -> str | None:
        return self.image.url if self.image else None

    @property
    def workflow_progress(self) -> float:
        return self.workflow_stage.progress

    @property
    def is_ready_to_publish(self) -> bool:
        return self.workflow_stage is WorkflowStage.APPROVED and self.visible
