"""Evidence requirement classification for free-text dispute reasons."""

import logging
import re

from app.schemas.classification import (
    INTAKE_DOCUMENT_COUNT,
    EvidenceRequirement,
    ReasonCategory,
    ReasonClassification,
)
from app.services.ai_service import AIService

logger = logging.getLogger(__name__)

PRODUCT_PHOTO = EvidenceRequirement(
    name="Photo of the product showing the issue",
    upload_types=["Image"],
)

PRODUCT_ISSUE_PATTERN = re.compile(
    r"\b(damaged|defective|broken|faulty|wrong (size|colou?r|item)|not as described)\b",
    re.IGNORECASE,
)


def is_product_issue(classification: ReasonClassification, custom_reason: str) -> bool:
    """Physical product defect or mismatch, judged from category and wording."""
    if classification.category == ReasonCategory.DEFECTIVE:
        return True
    text = f"{custom_reason} {classification.explanation}"
    return bool(PRODUCT_ISSUE_PATTERN.search(text))


PHOTO_SUBJECT_PATTERN = re.compile(r"\b(product|item|issue|damage|defect)", re.IGNORECASE)


def _is_photo(requirement: EvidenceRequirement) -> bool:
    """An image requirement picturing the goods themselves, not a receipt or screen."""
    name = requirement.name.lower()
    return (
        "photo" in name
        and bool(PHOTO_SUBJECT_PATTERN.search(name))
        and any(t.lower() == "image" for t in requirement.upload_types)
    )


def photo_first(documents: list[EvidenceRequirement]) -> list[EvidenceRequirement]:
    """Move the product photo to the front, adding one if the list has none."""
    for index, doc in enumerate(documents):
        if _is_photo(doc):
            return [doc] + documents[:index] + documents[index + 1:]
    return [PRODUCT_PHOTO] + documents[: INTAKE_DOCUMENT_COUNT - 1]


class RequirementService:
    """Classifies a dispute reason and settles the evidence list."""

    async def classify(self, ai: AIService, custom_reason: str) -> ReasonClassification:
        classification = await ai.classify_reason(custom_reason)

        if classification.category != ReasonCategory.NOT_ELIGIBLE and is_product_issue(
            classification, custom_reason
        ):
            classification.documents = photo_first(classification.documents)

        logger.info(
            "Classified dispute reason as %s with %d documents",
            classification.category.value,
            len(classification.documents),
        )
        return classification


requirement_service = RequirementService()
