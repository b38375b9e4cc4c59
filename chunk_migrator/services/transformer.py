"""Transformation of source customer rows into target documents."""

import logging
from typing import Optional

from .duplicate_filter import DuplicateFilter
from ..models.record import (
    MIGRATED_STATUS,
    SkipReason,
    SourceRecord,
    TargetRecord,
    TransformResult,
)

logger = logging.getLogger(__name__)


def title_case(text: Optional[str]) -> Optional[str]:
    """
    Capitalize the first letter of every whitespace-separated token.

    Surrounding whitespace is trimmed, inner runs collapse to one space and
    the remaining letters are lower-cased: "  maría   del CARMEN " becomes
    "María Del Carmen". None, empty and all-whitespace input is returned
    unchanged.
    """
    if text is None or not text.strip():
        return text

    words = []
    for word in text.lower().split():
        first = word[0].upper()
        # Characters whose upper case expands (e.g. "ß") stay as they are
        if len(first) != 1:
            first = word[0]
        words.append(first + word[1:])
    return " ".join(words)


def normalize_email(email: Optional[str]) -> Optional[str]:
    """Lower-case and trim an email address."""
    if email is None:
        return None
    return email.strip().lower()


class CustomerTransformer:
    """
    Converts SourceRecord objects to TargetRecord objects.

    Rejection policy, first match wins:
    - blank email: skipped
    - email already present in the target: skipped as a duplicate

    The transformer holds no mutable state, so it can be called from
    several threads on disjoint records.
    """

    def __init__(self, duplicate_filter: Optional[DuplicateFilter] = None):
        """
        Initialize the transformer.

        Args:
            duplicate_filter: Filter used to detect emails already migrated.
                When omitted, no contact duplicate check is made.
        """
        self.duplicate_filter = duplicate_filter

    def transform(self, record: SourceRecord) -> TransformResult:
        """
        Transform one source record.

        Args:
            record: Source row to transform

        Returns:
            TransformResult holding the target record, or the skip reason
        """
        logger.debug(f"Transforming customer {record.id} ({record.email})")

        email = normalize_email(record.email)
        if not email:
            logger.warning(f"Customer {record.id} has no valid email, skipping")
            return TransformResult(source_id=record.id, skip_reason=SkipReason.MISSING_CONTACT)

        if self.duplicate_filter and self.duplicate_filter.exists_by_contact(email):
            logger.warning(f"Customer with email {email} already exists in target, skipping")
            return TransformResult(source_id=record.id, skip_reason=SkipReason.DUPLICATE_CONTACT)

        target = TargetRecord(
            original_source_id=record.id,
            name=title_case(record.name),
            last_name=title_case(record.last_name),
            email=email,
            country=title_case(record.country),
            registered_at=record.registered_at,
            migration_status=MIGRATED_STATUS,
        )
        logger.debug(f"Transformed customer {record.id} -> {target.email}")
        return TransformResult(source_id=record.id, record=target)
