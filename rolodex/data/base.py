from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Union


class DbAdapter(ABC):
    """
    Abstract base class for document store adapters.

    Every method is atomic for a single document only. Methods ending in ``_many``
    (or taking ``many=True``) apply the same update to each matching document
    independently; none of them span a transaction.
    """

    @abstractmethod
    def __enter__(self) -> 'DbAdapter':
        """Context manager entry point for preparing DB connection."""
        pass

    @abstractmethod
    def __exit__(self, exc_type, exc_value, traceback):
        """Context manager exit point for releasing DB resources."""
        pass

    @abstractmethod
    def get_one(self, table: str, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Fetches a single record from the specified table based on given conditions."""
        pass

    @abstractmethod
    def get_many(self, table: str, conditions: Dict[str, Any] = None, sort: List[Tuple[str, int]] = None,
                 limit: Optional[int] = None, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        """Fetches multiple records from the specified table based on given conditions."""
        pass

    @abstractmethod
    def get_count(self, table: str, conditions: Dict[str, Any]) -> int:
        """Counts the records matching the conditions."""
        pass

    @abstractmethod
    def insert_one(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """Inserts a record and returns it as stored."""
        pass

    @abstractmethod
    def update_one(self, table: str, conditions: Dict[str, Any], fields: Dict[str, Any],
                   increment: Dict[str, int] = None) -> Optional[Dict[str, Any]]:
        """Sets fields on the first matching record and returns it after the update, or None."""
        pass

    @abstractmethod
    def update_many(self, table: str, conditions: Dict[str, Any], fields: Dict[str, Any]) -> int:
        """Sets fields on every matching record. Returns the number of modified records."""
        pass

    @abstractmethod
    def delete_one(self, table: str, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Deletes the first matching record and returns it, or None."""
        pass

    @abstractmethod
    def delete_many(self, table: str, conditions: Dict[str, Any]) -> int:
        """Deletes every matching record. Returns the number of deleted records."""
        pass

    @abstractmethod
    def push_to_array(self, table: str, conditions: Dict[str, Any], array_field: str,
                      element: Dict[str, Any], unique_key: str = None,
                      increment: Dict[str, int] = None) -> bool:
        """
        Appends ``element`` to ``array_field`` of the first matching record.

        When ``unique_key`` is given, the push is skipped if the array already holds
        an element with the same value for that key. Returns True if a record changed.
        """
        pass

    @abstractmethod
    def pull_from_array(self, table: str, conditions: Dict[str, Any], array_field: str,
                        match: Dict[str, Any], many: bool = False,
                        increment: Dict[str, int] = None) -> int:
        """Removes every element matching ``match`` from ``array_field``. Returns modified record count."""
        pass

    @abstractmethod
    def update_array_element_by_key(self, table: str, conditions: Dict[str, Any], array_field: str,
                                    key: str, key_value: Any, fields: Dict[str, Any], many: bool = False,
                                    increment: Dict[str, int] = None) -> int:
        """
        Sets ``fields`` on the array elements whose ``key`` equals ``key_value``.

        Unrelated elements of the same array are left untouched. Returns modified record count.
        """
        pass

    @abstractmethod
    def create_index(self, table: str, columns: List[Union[str, Tuple[str, int]]], index_name: str,
                     unique: bool = False) -> str:
        """Creates an index if the backend supports it."""
        pass
