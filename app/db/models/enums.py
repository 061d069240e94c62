"""
Enums shared by the ORM models and the API schemas.
"""

import enum

class SourceTypeEnum(str, enum.Enum):
    IMAGE = "image"
    TEXT = "text"
    MULTIMODAL = "multimodal"
    VIDEO = "video"

class EnrichmentTypeEnum(str, enum.Enum):
    VIDEO_URL = "video_url"
    ARTICLE_URL = "article_url"
    IMAGE_URL = "image_url"
    AUDIO_URL = "audio_url"
    TEXT_SNIPPET = "text_snippet"

class PinContextEnum(str, enum.Enum):
    HOME = "home"
    RELATED = "related"

class SubmissionStatusEnum(str, enum.Enum):
    PENDING = "pending"
    INGESTED = "ingested"
    FAILED = "failed"
