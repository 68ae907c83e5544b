"""
Workflow stages a story moves through, from creation to publication.

Display names, icons and colours belong to the client UI and are not
modelled here; only ordering and adjacency are.
"""

from enum import Enum


class WorkflowStage(str, Enum):
    """Ordered content lifecycle stage."""
    CREATED = "created"
    ENGLISH_TEXT_APPROVED = "english_text_approved"
    ENGLISH_AUDIO_APPROVED = "english_audio_approved"
    ENGLISH_VERSION_APPROVED = "english_version_approved"
    MULTILINGUAL_TEXT_APPROVED = "multilingual_text_approved"
    MULTILINGUAL_AUDIO_APPROVED = "multilingual_audio_approved"
    PENDING_FINAL_REVIEW = "pending_final_review"
    APPROVED = "approved"

    @classmethod
    def parse(cls, raw: str | None) -> "WorkflowStage | None":
        """Parse a raw stage tag. Unknown tags yield None, never a default."""
        if raw is None:
            return None
        try:
            return cls(raw)
        except ValueError:
            return None

    @property
    def position(self) -> int:
        return _ORDER.index(self)

    @property
    def next_stage(self) -> "WorkflowStage | None":
        return _NEXT[self]

    @property
    def previous_stage(self) -> "WorkflowStage | None":
        return _PREVIOUS[self]

    @property
    def is_final(self) -> bool:
        return self.next_stage is None

    @property
    def is_initial(self) -> bool:
        return self.previous_stage is None

    @property
    def progress(self) -> float:
        """Fraction of the workflow completed (0.0 - 1.0)."""
        return self.position / (len(_ORDER) - 1)

    @classmethod
    def english_stages(cls) -> list["WorkflowStage"]:
        return [cls.ENGLISH_TEXT_APPROVED, cls.ENGLISH_AUDIO_APPROVED, cls.ENGLISH_VERSION_APPROVED]

    @classmethod
    def multilingual_stages(cls) -> list["WorkflowStage"]:
        return [cls.MULTILINGUAL_TEXT_APPROVED, cls.MULTILINGUAL_AUDIO_APPROVED]

    @classmethod
    def early_stages(cls) -> list["WorkflowStage"]:
        return list(_ORDER[:4])

    @classmethod
    def late_stages(cls) -> list["WorkflowStage"]:
        return list(_ORDER[4:])

    @classmethod
    def approval_stages(cls) -> list["WorkflowStage"]:
        return [stage for stage in _ORDER if stage.value.endswith("approved")]


_ORDER: tuple[WorkflowStage, ...] = (
    WorkflowStage.CREATED,
    WorkflowStage.ENGLISH_TEXT_APPROVED,
    WorkflowStage.ENGLISH_AUDIO_APPROVED,
    WorkflowStage.ENGLISH_VERSION_APPROVED,
    WorkflowStage.MULTILINGUAL_TEXT_APPROVED,
    WorkflowStage.MULTILINGUAL_AUDIO_APPROVED,
    WorkflowStage.PENDING_FINAL_REVIEW,
    WorkflowStage.APPROVED,
)

_NEXT: dict[WorkflowStage, WorkflowStage | None] = {
    WorkflowStage.CREATED: WorkflowStage.ENGLISH_TEXT_APPROVED,
    WorkflowStage.ENGLISH_TEXT_APPROVED: WorkflowStage.ENGLISH_AUDIO_APPROVED,
    WorkflowStage.ENGLISH_AUDIO_APPROVED: WorkflowStage.ENGLISH_VERSION_APPROVED,
    WorkflowStage.ENGLISH_VERSION_APPROVED: WorkflowStage.MULTILINGUAL_TEXT_APPROVED,
    WorkflowStage.MULTILINGUAL_TEXT_APPROVED: WorkflowStage.MULTILINGUAL_AUDIO_APPROVED,
    WorkflowStage.MULTILINGUAL_AUDIO_APPROVED: WorkflowStage.PENDING_FINAL_REVIEW,
    WorkflowStage.PENDING_FINAL_REVIEW: WorkflowStage.APPROVED,
    WorkflowStage.APPROVED: None,
}

_PREVIOUS: dict[WorkflowStage, WorkflowStage | None] = {
    WorkflowStage.CREATED: None,
    WorkflowStage.ENGLISH_TEXT_APPROVED: WorkflowStage.CREATED,
    WorkflowStage.ENGLISH_AUDIO_APPROVED: WorkflowStage.ENGLISH_TEXT_APPROVED,
    WorkflowStage.ENGLISH_VERSION_APPROVED: WorkflowStage.ENGLISH_AUDIO_APPROVED,
    WorkflowStage.MULTILINGUAL_TEXT_APPROVED: WorkflowStage.ENGLISH_VERSION_APPROVED,
    WorkflowStage.MULTILINGUAL_AUDIO_APPROVED: WorkflowStage.MULTILINGUAL_TEXT_APPROVED,
    WorkflowStage.PENDING_FINAL_REVIEW: WorkflowStage.MULTILINGUAL_AUDIO_APPROVED,
    WorkflowStage.APPROVED: WorkflowStage.PENDING_FINAL_REVIEW,
}
