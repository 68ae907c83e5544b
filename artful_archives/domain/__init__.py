"""
Domain models - the remote Story entity and its nested parts.
"""

from .language import LanguageCode
from .story import (
    Story,
    StoryAudio,
    StoryAuthor,
    StoryLocalization,
    StoryMedia,
    StrapiAttributes,
)
from .workflow import WorkflowStage

__all__ = [
    "LanguageCode",
    "Story",
    "StoryAudio",
    "StoryAuthor",
    "StoryLocalization",
    "StoryMedia",
    "StrapiAttributes",
    "WorkflowStage",
]
