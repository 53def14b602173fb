import logging
from uuid import uuid4
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime, timezone
from dateutil.parser import isoparse
from typing import Any, Dict, List, Optional, Union, get_type_hints, get_origin, get_args
from enum import Enum

from rolodex.errors import ValidationError

logger = logging.getLogger(__name__)

# Fields maintained by the repositories, never written by callers
SYSTEM_FIELDS = {'entity_id', 'owner_id', 'revision', 'created_on', 'changed_on'}


def default_datetime():
    """
    Definition for default datetime
    """
    return datetime.now(timezone.utc)


def get_uuid_hex():
    """
    Returns a random UUID in hex format.
    """
    return uuid4().hex


def coerce_datetime(value: Any) -> Optional[datetime]:
    """
    Normalizes ISO strings, dates and naive datetimes into timezone-aware UTC datetimes.

    Raises:
        ValueError: If a string value is not a valid ISO 8601 timestamp.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str):
        value = isoparse(value)
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    if not isinstance(value, datetime):
        raise ValueError(f"'{value}' is not a valid date")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _expects(hint, expected_type) -> bool:
    if hint is expected_type:
        return True
    if get_origin(hint) is Union:
        return expected_type in get_args(hint)
    return False


@dataclass(kw_only=True)
class BaseModel:
    """
    A base dataclass for rolodex documents.

    Every document belongs to exactly one owner and carries a ``revision`` counter
    that the store increments on each write, so callers can detect concurrent edits.
    """

    entity_id: str = field(default_factory=get_uuid_hex,
                           metadata={'field_type': 'entity_id'})
    owner_id: Optional[str] = None
    revision: int = 0
    created_on: datetime = field(default_factory=default_datetime)
    changed_on: datetime = field(default_factory=default_datetime)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(entity_id={self.entity_id!r}, revision={self.revision})"

    @classmethod
    def fields(cls) -> List[str]:
        """
        Get a list of field names for this model.
        """
        return [f.name for f in fields(cls)]

    @classmethod
    def editable_fields(cls) -> List[str]:
        """Field names a caller is allowed to write."""
        return [name for name in cls.fields() if name not in SYSTEM_FIELDS]

    def _convert_value(self, value, convert_datetime_to_iso_string: bool):
        """Helper to convert a single value for as_dict."""
        if is_dataclass(value) and hasattr(value, 'as_dict'):
            return value.as_dict(convert_datetime_to_iso_string)
        if isinstance(value, datetime) and convert_datetime_to_iso_string:
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        return value

    def as_dict(self, convert_datetime_to_iso_string: bool = False) -> Dict[str, Any]:
        """
        Convert this model to a dictionary.

        Args:
            convert_datetime_to_iso_string (bool, optional): Whether to convert datetime to ISO strings.

        Returns:
            Dict[str, Any]: A dictionary representation of this model.
        """
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, list):
                result[f.name] = [self._convert_value(i, convert_datetime_to_iso_string) for i in value]
            else:
                result[f.name] = self._convert_value(value, convert_datetime_to_iso_string)
        return result

    @classmethod
    def _convert_model_from_dict(cls, v, model_class) -> Any:
        """Convert dict/list values to nested model instances."""
        if isinstance(v, list):
            return [model_class.from_dict(item) if isinstance(item, dict) else item for item in v]
        if isinstance(v, dict):
            return model_class.from_dict(v)
        return v

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaseModel":
        """
        Load a model from a raw document. Unknown keys (such as Mongo's ``_id``) are dropped.
        """
        clean_data = {k: v for k, v in data.items() if k in cls.fields()}
        hints = get_type_hints(cls)

        for f in fields(cls):
            if f.name not in clean_data or clean_data[f.name] is None:
                continue
            value = clean_data[f.name]
            if f.metadata.get('model'):
                clean_data[f.name] = cls._convert_model_from_dict(value, f.metadata['model'])
            elif _expects(hints.get(f.name), datetime):
                try:
                    clean_data[f.name] = coerce_datetime(value)
                except (ValueError, TypeError):
                    logger.info(f"'{value}' is not a valid datetime for field '{f.name}'.")

        return cls(**clean_data)

    def _run_field_validator(self, name: str, errors: list):
        """Run custom field validator if defined."""
        validator = getattr(self, f"validate_{name}", None)
        if callable(validator):
            error = validator()
            if error:
                errors.append(error)

    def validate(self):
        """
        Validate all fields by calling corresponding `validate_<field_name>` methods if defined.
        Raise `ValidationError` if any validations fail.
        """
        errors = []
        for name in self.fields():
            self._run_field_validator(name, errors)
        if errors:
            raise ValidationError(errors)

    def prepare_for_save(self, owner_id: Optional[str] = None):
        """
        Prepare this model for its first write.

        Args:
            owner_id (str): The owning user. Overrides any value already on the instance.
        """
        if not self.entity_id:
            self.entity_id = get_uuid_hex()
        if owner_id:
            self.owner_id = owner_id
        now = datetime.now(timezone.utc)
        self.created_on = now
        self.changed_on = now
        self.revision = 0
        self.validate()
