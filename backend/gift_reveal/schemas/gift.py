from datetime import date, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from gift_reveal.core.schedule import RevealState, to_reveal_datetime
from gift_reveal.models.models import DEFAULT_HINT_TEXT


class _ContentModel(BaseModel):
    # content files written by older editors use camelCase keys
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextBlock(_ContentModel):
    type: Literal["text"]
    content: str
    heading: str | None = None
    style: Literal["title", "subtitle", "normal"] | None = None
    alignment: Literal["left", "center", "right"] | None = None


class QuoteBlock(_ContentModel):
    type: Literal["quote"]
    content: str
    style: Literal["small", "big"] | None = None


class ImageBlock(_ContentModel):
    type: Literal["image"]
    url: str
    title: str | None = None
    text: str | None = None
    caption: str | None = None
    layout: Literal["image-right", "image-left", "image-center"] | None = None
    size: Literal["small", "medium", "large"] | None = None
    orientation: Literal["horizontal", "vertical"] | None = None


class GalleryImage(_ContentModel):
    url: str
    caption: str | None = None


class GalleryBlock(_ContentModel):
    type: Literal["gallery"]
    images: list[GalleryImage] = Field(default_factory=list)
    title: str | None = None
    text: str | None = None
    columns: Literal[2, 3] | None = None


class AudioBlock(_ContentModel):
    type: Literal["audio"]
    url: str
    title: str | None = None
    text: str | None = None
    duration: float | None = Field(default=None, ge=0)


PlainBlock = Annotated[
    Union[TextBlock, QuoteBlock, ImageBlock, GalleryBlock, AudioBlock],
    Field(discriminator="type"),
]


class SecretBlock(_ContentModel):
    type: Literal["secret"]
    content: list[PlainBlock] = Field(default_factory=list)
    access_message: str | None = None


Block = Annotated[
    Union[TextBlock, QuoteBlock, SecretBlock, ImageBlock, GalleryBlock, AudioBlock],
    Field(discriminator="type"),
]


class ContentMetadata(_ContentModel):
    sender_name: str | None = None
    description: str | None = None
    title: str | None = None
    created_at: str | None = None


class ContentDocument(_ContentModel):
    blocks: list[Block] = Field(default_factory=list)
    metadata: ContentMetadata = Field(default_factory=ContentMetadata)


class MemoryPhotoPayload(BaseModel):
    photo_url: str = Field(min_length=1, max_length=2048)
    photo_date: datetime | date | None = None
    text: str | None = Field(default=None, max_length=2000)

    @field_validator("photo_date")
    @classmethod
    def _photo_date_aware(cls, value: datetime | date | None) -> datetime | None:
        if value is None:
            return None
        return to_reveal_datetime(value)


def _required_text(value: str, field: str) -> str:
    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{field} must not be blank")
    return normalized


class GiftCreate(BaseModel):
    number: int = Field(gt=0)
    open_date: datetime | date
    english_description: str = Field(min_length=1)
    title: str | None = Field(default=None, max_length=255)
    author: str | None = Field(default=None, max_length=255)
    nickname: str | None = Field(default=None, max_length=255)
    hint_image_url: str = Field(default="", max_length=2048)
    hint_text: str = Field(default=DEFAULT_HINT_TEXT, max_length=512)
    code_text: str = Field(default="", max_length=512)
    is_secret: bool = False
    code: str | None = Field(default=None, max_length=512)
    content_url: str | None = Field(default=None, max_length=2048)
    content: ContentDocument | None = None
    memory_photo: MemoryPhotoPayload | None = None

    @field_validator("open_date")
    @classmethod
    def _open_date_aware(cls, value: datetime | date) -> datetime:
        return to_reveal_datetime(value)

    @field_validator("english_description")
    @classmethod
    def _description_strip(cls, value: str) -> str:
        return _required_text(value, "english_description")

    @field_validator("title", "author", "nickname", "code", "content_url")
    @classmethod
    def _optional_strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None


class GiftUpdate(BaseModel):
    number: int | None = Field(default=None, gt=0)
    open_date: datetime | date | None = None
    english_description: str | None = Field(default=None, min_length=1)
    title: str | None = Field(default=None, max_length=255)
    author: str | None = Field(default=None, max_length=255)
    nickname: str | None = Field(default=None, max_length=255)
    hint_image_url: str | None = Field(default=None, max_length=2048)
    hint_text: str | None = Field(default=None, max_length=512)
    code_text: str | None = Field(default=None, max_length=512)
    is_secret: bool | None = None
    code: str | None = Field(default=None, max_length=512)
    content_url: str | None = Field(default=None, max_length=2048)
    content: ContentDocument | None = None
    memory_photo: MemoryPhotoPayload | None = None
    remove_memory_photo: bool = False

    @field_validator("open_date")
    @classmethod
    def _open_date_aware(cls, value: datetime | date | None) -> datetime | None:
        if value is None:
            return None
        return to_reveal_datetime(value)

    @field_validator("english_description")
    @classmethod
    def _description_strip(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return _required_text(value, "english_description")


class MemoryPhotoOut(BaseModel):
    photo_url: str | None = None
    photo_date: datetime | None = None
    text: str | None = None

    model_config = {"from_attributes": True}


class RenderedGift(BaseModel):
    id: str
    number: int
    open_date: datetime
    state: RevealState
    is_secret: bool | None = None
    title: str | None = None
    author: str | None = None
    nickname: str | None = None
    english_description: str | None = None
    hint_image_url: str | None = None
    hint_text: str | None = None
    code_text: str | None = None
    code: str | None = None
    blocks: list[dict[str, Any]] = Field(default_factory=list)
    metadata: dict[str, Any] = Field(default_factory=dict)
    memory_photo: MemoryPhotoOut | None = None
    content_missing: bool = False


class GiftSummary(BaseModel):
    id: str
    number: int
    open_date: datetime
    is_open: bool
    week: int | None = None


class LatestGift(BaseModel):
    id: str | None = None
    number: int | None = None


class GalleryPhoto(BaseModel):
    gift_id: str
    number: int
    open_date: datetime
    is_open: bool
    nickname: str | None = None
    photo_url: str | None = None
    photo_date: datetime | None = None
    text: str | None = None


class GiftAdmin(BaseModel):
    id: str
    number: int
    title: str | None = None
    author: str | None = None
    nickname: str | None = None
    open_date: datetime
    english_description: str
    hint_image_url: str
    hint_text: str
    code_text: str
    is_secret: bool
    code: str | None = None
    content_path: str
    content_url: str | None = None
    created_at: datetime
    updated_at: datetime
    memory_photo: MemoryPhotoOut | None = None
    content: ContentDocument | None = None

    model_config = {"from_attributes": True}
