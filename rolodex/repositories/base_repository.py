"""
base repository for rolodex
"""
import logging
from dataclasses import is_dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from rolodex.data.base import DbAdapter
from rolodex.errors import ConflictError, NotFoundError, ValidationError
from rolodex.models.base_model import BaseModel, SYSTEM_FIELDS

REVISION_BUMP = {'revision': 1}


class BaseRepository:
    """
    Owner-scoped access to one collection.

    Every read and write adds ``owner_id`` to its filter, so a document that
    belongs to another owner behaves exactly like a missing one.
    """

    def __init__(
        self,
        adapter: DbAdapter,
        model: Type[BaseModel],
        collection_name: str = None
    ):
        self.adapter = adapter
        self.model = model
        self.table_name = collection_name or model.__name__.lower()
        self.logger = logging.getLogger(
            f"{__name__}.{self.__class__.__name__}")

    def _execute_within_context(
        self,
        func,
        *args,
        **kwargs
    ):
        """Utility method to execute adapter methods within the context manager."""
        with self.adapter:
            return func(*args, **kwargs)

    @staticmethod
    def _scoped(owner_id: str, conditions: Dict[str, Any] = None) -> Dict[str, Any]:
        if not owner_id:
            raise ValidationError("An owner is required for every repository operation")
        scoped = dict(conditions or {})
        scoped['owner_id'] = owner_id
        return scoped

    @staticmethod
    def _serialize(value: Any) -> Any:
        if isinstance(value, list):
            return [BaseRepository._serialize(v) for v in value]
        if is_dataclass(value) and hasattr(value, 'as_dict'):
            return value.as_dict()
        return value

    def _from_db(self, data: Optional[Dict[str, Any]]) -> Optional[BaseModel]:
        if not data:
            return None
        return self.model.from_dict(data)

    def get(
        self,
        entity_id: str,
        owner_id: str
    ) -> Optional[BaseModel]:
        """
        Fetch one record by id for the given owner.

        :return: a model instance if found, None otherwise
        """
        data = self._execute_within_context(
            self.adapter.get_one,
            self.table_name,
            self._scoped(owner_id, {'entity_id': entity_id})
        )
        return self._from_db(data)

    def get_or_raise(self, entity_id: str, owner_id: str) -> BaseModel:
        instance = self.get(entity_id, owner_id)
        if instance is None:
            raise NotFoundError(self.table_name, entity_id)
        return instance

    def get_many(
        self,
        owner_id: str,
        conditions: Dict[str, Any] = None,
        sort: List[Tuple[str, int]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None
    ) -> List[BaseModel]:
        """
        Fetches multiple records owned by ``owner_id`` matching the given conditions.

        :param owner_id: owning user
        :param conditions: filter conditions
        :param sort: sort order
        :param limit: maximum number of records to return
        :param offset: number of records to skip before returning results
        :return: list of model instances
        """
        records = self._execute_within_context(
            self.adapter.get_many,
            self.table_name,
            self._scoped(owner_id, conditions),
            sort,
            limit,
            offset
        )
        return [self.model.from_dict(record) for record in records or []]

    def get_by_ids(self, ids: Iterable[str], owner_id: str) -> Dict[str, BaseModel]:
        """Fetch several records in one query, keyed by entity_id. Missing ids are simply absent."""
        ids = list(dict.fromkeys(ids))
        if not ids:
            return {}
        found = self.get_many(owner_id, {'entity_id': {'$in': ids}})
        return {instance.entity_id: instance for instance in found}

    def list(self, owner_id: str, sort: List[Tuple[str, int]] = None) -> List[BaseModel]:
        return self.get_many(owner_id, sort=sort or [('created_on', 1)])

    def count(self, owner_id: str, conditions: Dict[str, Any] = None) -> int:
        return self._execute_within_context(
            self.adapter.get_count,
            self.table_name,
            self._scoped(owner_id, conditions)
        )

    def create(
        self,
        instance: BaseModel,
        owner_id: str
    ) -> BaseModel:
        """
        Validates and inserts a new record for ``owner_id``.

        :param instance: The model instance to save.
        :return: The stored instance.
        """
        self._scoped(owner_id)
        instance.prepare_for_save(owner_id=owner_id)
        self.logger.info(
            f"Creating entity_id={instance.entity_id} in {self.table_name}")
        saved = self._execute_within_context(
            self.adapter.insert_one,
            self.table_name,
            instance.as_dict()
        )
        return self._from_db(saved)

    def check_fields(self, fields: Dict[str, Any]) -> None:
        """Reject unknown field names and fields owned by the store."""
        errors = []
        for name in fields:
            if name in SYSTEM_FIELDS:
                errors.append(f"Field '{name}' cannot be modified")
            elif name not in self.model.fields():
                errors.append(f"Unknown field '{name}' for {self.table_name}")
        if errors:
            raise ValidationError(errors)

    def update_fields(
        self,
        entity_id: str,
        owner_id: str,
        fields: Dict[str, Any],
        expected_revision: Optional[int] = None
    ) -> BaseModel:
        """
        Atomically sets ``fields`` on one record and bumps its revision.

        :param expected_revision: when given, the write only applies if the stored revision matches
        :raises NotFoundError: no such record for this owner
        :raises ConflictError: the record exists but its revision moved on
        """
        self.check_fields(fields)
        conditions = {'entity_id': entity_id}
        if expected_revision is not None:
            conditions['revision'] = expected_revision
        payload = {name: self._serialize(value) for name, value in fields.items()}
        payload['changed_on'] = datetime.now(timezone.utc)

        updated = self._execute_within_context(
            self.adapter.update_one,
            self.table_name,
            self._scoped(owner_id, conditions),
            payload,
            REVISION_BUMP
        )
        if updated is None:
            if expected_revision is not None and self.get(entity_id, owner_id) is not None:
                raise ConflictError(self.table_name, entity_id, expected_revision)
            raise NotFoundError(self.table_name, entity_id)
        return self._from_db(updated)

    def delete(
        self,
        entity_id: str,
        owner_id: str
    ) -> Optional[BaseModel]:
        """
        Hard-deletes a record.

        :return: the deleted record, or None when nothing matched
        """
        self.logger.info(
            f"Deleting entity_id={entity_id} from {self.table_name}")
        deleted = self._execute_within_context(
            self.adapter.delete_one,
            self.table_name,
            self._scoped(owner_id, {'entity_id': entity_id})
        )
        return self._from_db(deleted)

    def delete_many(self, owner_id: str, conditions: Dict[str, Any]) -> int:
        return self._execute_within_context(
            self.adapter.delete_many,
            self.table_name,
            self._scoped(owner_id, conditions)
        )

    def update_many(self, owner_id: str, conditions: Dict[str, Any], fields: Dict[str, Any]) -> int:
        return self._execute_within_context(
            self.adapter.update_many,
            self.table_name,
            self._scoped(owner_id, conditions),
            fields
        )

    def push_to_array(
        self,
        entity_id: str,
        owner_id: str,
        array_field: str,
        element: Any,
        unique_key: str = None
    ) -> bool:
        """Append an element to one record's array. With ``unique_key`` the push is idempotent."""
        return self._execute_within_context(
            self.adapter.push_to_array,
            self.table_name,
            self._scoped(owner_id, {'entity_id': entity_id}),
            array_field,
            self._serialize(element),
            unique_key=unique_key,
            increment=REVISION_BUMP
        )

    def pull_from_array(
        self,
        entity_id: str,
        owner_id: str,
        array_field: str,
        match: Dict[str, Any]
    ) -> bool:
        """Remove matching elements from one record's array."""
        return self._execute_within_context(
            self.adapter.pull_from_array,
            self.table_name,
            self._scoped(owner_id, {'entity_id': entity_id}),
            array_field,
            match,
            increment=REVISION_BUMP
        ) > 0

    def pull_from_array_everywhere(
        self,
        owner_id: str,
        array_field: str,
        match: Dict[str, Any]
    ) -> int:
        """Remove matching elements from every record of this owner. Returns records modified."""
        return self._execute_within_context(
            self.adapter.pull_from_array,
            self.table_name,
            self._scoped(owner_id),
            array_field,
            match,
            many=True,
            increment=REVISION_BUMP
        )

    def update_array_element_by_key(
        self,
        entity_id: str,
        owner_id: str,
        array_field: str,
        key: str,
        key_value: Any,
        fields: Dict[str, Any]
    ) -> bool:
        """Update, in place, the elements of one record's array whose ``key`` equals ``key_value``."""
        return self._execute_within_context(
            self.adapter.update_array_element_by_key,
            self.table_name,
            self._scoped(owner_id, {'entity_id': entity_id}),
            array_field,
            key,
            key_value,
            fields,
            increment=REVISION_BUMP
        ) > 0

    def update_array_elements_everywhere(
        self,
        owner_id: str,
        array_field: str,
        key: str,
        key_value: Any,
        fields: Dict[str, Any]
    ) -> int:
        """
        Bulk in-place update of matched array elements across the owner's records.

        Revisions are left alone so that repeating the same update modifies nothing.
        """
        return self._execute_within_context(
            self.adapter.update_array_element_by_key,
            self.table_name,
            self._scoped(owner_id),
            array_field,
            key,
            key_value,
            fields,
            many=True
        )
