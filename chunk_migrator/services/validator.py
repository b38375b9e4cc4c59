"""Required-field validation for target records."""

import logging
from typing import List, Optional

from ..models.record import TargetRecord, ValidationError

logger = logging.getLogger(__name__)

REQUIRED_TEXT_FIELDS = ("name", "last_name", "email", "country")


class RecordValidator:
    """
    Validator for target records before insertion.

    A record is insertable when its source id is a positive number (or a
    non-blank string) and every required text field is non-blank.
    """

    def validate_record(self, record: TargetRecord) -> List[ValidationError]:
        """
        Validate a target record.

        Args:
            record: The record to validate

        Returns:
            List of validation errors, empty when the record is valid
        """
        errors = []

        id_error = self._validate_id(record)
        if id_error:
            errors.append(id_error)

        for field_name in REQUIRED_TEXT_FIELDS:
            value = getattr(record, field_name)
            if value is None or not str(value).strip():
                errors.append(ValidationError(
                    field=field_name,
                    message="Required field is missing",
                    error_type="required",
                    value=value,
                ))

        return errors

    def _validate_id(self, record: TargetRecord) -> Optional[ValidationError]:
        value = record.original_source_id
        if isinstance(value, bool) or value is None:
            valid = False
        elif isinstance(value, int):
            valid = value > 0
        else:
            valid = bool(str(value).strip())

        if valid:
            return None
        return ValidationError(
            field="original_source_id",
            message="Source id must be a positive number or a non-blank string",
            error_type="invalid_id",
            value=value,
        )
