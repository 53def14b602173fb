import copy
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from rolodex.data.base import DbAdapter


def _resolve(value: Any, parts: List[str]) -> List[Any]:
    """Collect the values at a dotted path, descending into arrays the way MongoDB does."""
    if not parts:
        if isinstance(value, list):
            return [value, *value]
        return [value]
    if isinstance(value, list):
        found = []
        for item in value:
            found.extend(_resolve(item, parts))
        return found
    if isinstance(value, dict) and parts[0] in value:
        return _resolve(value[parts[0]], parts[1:])
    return []


def _matches_condition(values: List[Any], condition: Any) -> bool:
    if isinstance(condition, dict) and condition and all(k.startswith('$') for k in condition):
        for operator, argument in condition.items():
            if operator == '$in':
                ok = any(v in argument for v in values)
            elif operator == '$nin':
                ok = not any(v in argument for v in values)
            elif operator == '$ne':
                ok = argument not in values
            elif operator == '$exists':
                ok = bool(values) == bool(argument)
            else:
                raise NotImplementedError(f"Operator {operator} is not supported by MemoryAdapter")
            if not ok:
                return False
        return True
    return condition in values


def matches(document: Dict[str, Any], conditions: Optional[Dict[str, Any]]) -> bool:
    """True when ``document`` satisfies every condition (equality, dotted paths, $in/$nin/$ne/$exists)."""
    for path, condition in (conditions or {}).items():
        values = _resolve(document, path.split('.'))
        if not values and not (isinstance(condition, dict) and '$exists' in condition):
            values = [None]
        if not _matches_condition(values, condition):
            return False
    return True


def _sort_key(value: Any) -> Tuple[bool, Any]:
    return (False, '') if value is None else (True, value)


class MemoryAdapter(DbAdapter):
    """
    In-process document store with the same single-document guarantees as MongoDB.

    Each collection is a list of dicts guarded by one re-entrant lock, so every
    method is atomic with respect to the others. Intended for local development
    (``DB_BACKEND=memory``) and tests.
    """

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = {}
        self._indexes: Dict[str, Dict[str, List]] = {}
        self._lock = threading.RLock()

    def __enter__(self) -> 'MemoryAdapter':
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        pass

    def _table(self, name: str) -> List[Dict[str, Any]]:
        return self._collections.setdefault(name, [])

    def _find(self, table: str, conditions: Dict[str, Any]) -> List[Dict[str, Any]]:
        return [doc for doc in self._table(table) if matches(doc, conditions)]

    @staticmethod
    def _apply(doc: Dict[str, Any], set_fields: Dict[str, Any] = None,
               increment: Dict[str, int] = None) -> None:
        for name, value in (set_fields or {}).items():
            doc[name] = copy.deepcopy(value)
        for name, amount in (increment or {}).items():
            doc[name] = doc.get(name, 0) + amount

    def _modify(self, table: str, conditions: Dict[str, Any], many: bool,
                mutate: Callable[[Dict[str, Any]], bool], increment: Dict[str, int] = None) -> int:
        """Run ``mutate`` on matching documents; ``increment`` applies only when a document changed."""
        modified = 0
        for doc in self._find(table, conditions):
            if mutate(doc):
                self._apply(doc, increment=increment)
                modified += 1
            if not many:
                break
        return modified

    def get_one(self, table: str, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            found = self._find(table, conditions)
            return copy.deepcopy(found[0]) if found else None

    def get_many(self, table: str, conditions: Dict[str, Any] = None, sort: List[Tuple[str, int]] = None,
                 limit: Optional[int] = None, offset: Optional[int] = None) -> List[Dict[str, Any]]:
        with self._lock:
            found = copy.deepcopy(self._find(table, conditions))
        # Missing values order lowest, as null does in MongoDB
        for field_name, direction in reversed(sort or []):
            found.sort(key=lambda d: _sort_key(d.get(field_name)), reverse=direction < 0)
        if offset:
            found = found[offset:]
        if limit:
            found = found[:limit]
        return found

    def get_count(self, table: str, conditions: Dict[str, Any]) -> int:
        with self._lock:
            return len(self._find(table, conditions))

    def insert_one(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        doc = copy.deepcopy(data)
        doc.pop('_id', None)
        with self._lock:
            self._check_unique(table, doc)
            self._table(table).append(doc)
            return copy.deepcopy(doc)

    def _check_unique(self, table: str, doc: Dict[str, Any]) -> None:
        for index_name, columns in self._indexes.get(table, {}).items():
            key = {column: doc.get(column) for column in columns}
            if self._find(table, key):
                raise RuntimeError(f"insert_one failed: duplicate key for index {index_name}")

    def update_one(self, table: str, conditions: Dict[str, Any], fields: Dict[str, Any],
                   increment: Dict[str, int] = None) -> Optional[Dict[str, Any]]:
        with self._lock:
            found = self._find(table, conditions)
            if not found:
                return None
            self._apply(found[0], fields, increment)
            return copy.deepcopy(found[0])

    def update_many(self, table: str, conditions: Dict[str, Any], fields: Dict[str, Any]) -> int:
        def mutate(doc):
            changed = any(doc.get(name) != value for name, value in fields.items())
            self._apply(doc, fields)
            return changed

        with self._lock:
            return self._modify(table, conditions, True, mutate)

    def delete_one(self, table: str, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with self._lock:
            found = self._find(table, conditions)
            if not found:
                return None
            self._table(table).remove(found[0])
            return copy.deepcopy(found[0])

    def delete_many(self, table: str, conditions: Dict[str, Any]) -> int:
        with self._lock:
            found = self._find(table, conditions)
            remaining = [doc for doc in self._table(table) if all(doc is not f for f in found)]
            self._collections[table] = remaining
            return len(found)

    def push_to_array(self, table: str, conditions: Dict[str, Any], array_field: str,
                      element: Dict[str, Any], unique_key: str = None,
                      increment: Dict[str, int] = None) -> bool:
        def mutate(doc):
            array = doc.setdefault(array_field, [])
            if unique_key and any(e.get(unique_key) == element[unique_key] for e in array):
                return False
            array.append(copy.deepcopy(element))
            return True

        with self._lock:
            return self._modify(table, conditions, False, mutate, increment) > 0

    def pull_from_array(self, table: str, conditions: Dict[str, Any], array_field: str,
                        match: Dict[str, Any], many: bool = False,
                        increment: Dict[str, int] = None) -> int:
        def mutate(doc):
            array = doc.get(array_field) or []
            kept = [e for e in array if not matches(e, match)]
            doc[array_field] = kept
            return len(kept) != len(array)

        with self._lock:
            return self._modify(table, conditions, many, mutate, increment)

    def update_array_element_by_key(self, table: str, conditions: Dict[str, Any], array_field: str,
                                    key: str, key_value: Any, fields: Dict[str, Any], many: bool = False,
                                    increment: Dict[str, int] = None) -> int:
        query = dict(conditions)
        query[f"{array_field}.{key}"] = key_value

        def mutate(doc):
            changed = False
            for element in doc.get(array_field) or []:
                if element.get(key) != key_value:
                    continue
                for name, value in fields.items():
                    if element.get(name) != value:
                        element[name] = copy.deepcopy(value)
                        changed = True
            return changed or bool(increment)

        with self._lock:
            return self._modify(table, query, many, mutate, increment)

    def create_index(self, table: str, columns: List[Union[str, Tuple[str, int]]], index_name: str,
                     unique: bool = False) -> str:
        if unique:
            names = [c[0] if isinstance(c, tuple) else c for c in columns]
            with self._lock:
                self._indexes.setdefault(table, {})[index_name] = names
        return index_name
