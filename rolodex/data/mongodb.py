from typing import Any, Dict, List, Optional, Tuple, Union
from pymongo import MongoClient, ReturnDocument, errors
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.read_concern import ReadConcern
from pymongo.write_concern import WriteConcern

from rolodex.data.base import DbAdapter

# Identifier bound by `array_filters` in positional array updates
ARRAY_ELEMENT = 'elem'


class MongoDBAdapter(DbAdapter):
    """
    MongoDB adapter with robust defaults:
      - Retryable writes enabled
      - Majority write concern
      - Configurable timeouts and pool sizes
      - Clean error handling

    Only single-document atomicity is relied upon; no method opens a transaction.
    """

    def __init__(
        self,
        mongo_uri: str,
        mongo_database: str,
        **client_options: Any
    ):
        options = {
            'retryWrites': True,
            'w': 'majority',
            'serverSelectionTimeoutMS': 5000,
            'connectTimeoutMS': 5000,
            'maxPoolSize': 100,
            'tz_aware': True,
        }
        options.update(client_options)
        self.client: MongoClient = MongoClient(mongo_uri, **options)
        self.db_name: str = mongo_database
        self.db: Database = None

    def __enter__(self) -> 'MongoDBAdapter':
        """
        Context manager entry point for establishing a MongoDB connection.

        This method verifies the connection to the MongoDB instance by executing
        a ping command. If the ping command fails, a ConnectionError is raised.

        Returns:
            MongoDBAdapter: The initialized adapter with a live connection.
        """
        if self.db is None:
            try:
                self.client.admin.command('ping')
            except errors.PyMongoError as e:
                raise ConnectionError(f"MongoDB ping failed: {e}") from e
            self.db = self.client.get_database(self.db_name)
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        # The MongoClient is thread-safe and long-lived; application teardown closes it via close().
        pass

    def close(self) -> None:
        """Close the underlying MongoClient."""
        self.client.close()
        self.db = None

    def _get_collection(self, name: str, write: bool = False) -> Collection:
        """
        Get a MongoDB collection with a local read concern, and a majority write
        concern when ``write`` is True.
        """
        rc = ReadConcern('local')
        if write:
            return self.db.get_collection(name, read_concern=rc, write_concern=WriteConcern('majority'))
        return self.db.get_collection(name, read_concern=rc)

    @staticmethod
    def _update_document(set_fields: Dict[str, Any] = None, increment: Dict[str, int] = None,
                         **operators: Any) -> Dict[str, Any]:
        update: Dict[str, Any] = {op: value for op, value in operators.items() if value}
        if set_fields:
            update['$set'] = set_fields
        if increment:
            update['$inc'] = increment
        return update

    def get_one(
        self,
        table: str,
        conditions: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        """
        Retrieve a single document from the specified MongoDB collection based on given conditions.

        Raises:
            RuntimeError: If the query fails due to a PyMongoError.
        """
        try:
            return self._get_collection(table).find_one(conditions, {'_id': 0})
        except errors.PyMongoError as e:
            raise RuntimeError(f"get_one failed: {e}") from e

    def get_many(
        self,
        table: str,
        conditions: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """
        Retrieve multiple documents from the specified MongoDB collection based on given conditions.

        Args:
            table (str): The name of the collection from which to fetch the documents.
            conditions (Optional[Dict[str, Any]]): Filter conditions.
            sort (Optional[List[Tuple[str, int]]]): Sort order.
            limit (Optional[int]): The maximum number of documents to return. If None, no limit is applied.
            offset (Optional[int]): The number of documents to skip before returning results.

        Raises:
            RuntimeError: If the query fails due to a PyMongoError.
        """
        try:
            cursor = self._get_collection(table).find(conditions or {}, {'_id': 0})
            if sort:
                cursor = cursor.sort(sort)
            if offset is not None and offset > 0:
                cursor = cursor.skip(offset)
            if limit is not None and limit > 0:
                cursor = cursor.limit(limit)
            return list(cursor)
        except errors.PyMongoError as e:
            raise RuntimeError(f"get_many failed: {e}") from e

    def get_count(self, table: str, conditions: Dict[str, Any]) -> int:
        try:
            return self._get_collection(table).count_documents(conditions or {})
        except errors.PyMongoError as e:
            raise RuntimeError(f"get_count failed: {e}") from e

    def insert_one(self, table: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a document and return it as stored (without Mongo's ``_id``).

        Raises:
            RuntimeError: If the insert fails due to a PyMongoError.
        """
        try:
            coll = self._get_collection(table, write=True)
            doc = data.copy()
            doc.pop('_id', None)
            insert_result = coll.insert_one(doc)
            return coll.find_one({'_id': insert_result.inserted_id}, {'_id': 0})
        except errors.PyMongoError as e:
            raise RuntimeError(f"insert_one failed: {e}") from e

    def update_one(
        self,
        table: str,
        conditions: Dict[str, Any],
        fields: Dict[str, Any],
        increment: Dict[str, int] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Atomically set ``fields`` (and apply ``increment``) on the first matching document.

        Returns:
            Optional[Dict[str, Any]]: The document after the update, or None when nothing matched.

        Raises:
            RuntimeError: If the update fails due to a PyMongoError.
        """
        try:
            return self._get_collection(table, write=True).find_one_and_update(
                conditions,
                self._update_document(fields, increment),
                projection={'_id': 0},
                return_document=ReturnDocument.AFTER
            )
        except errors.PyMongoError as e:
            raise RuntimeError(f"update_one failed: {e}") from e

    def update_many(self, table: str, conditions: Dict[str, Any], fields: Dict[str, Any]) -> int:
        try:
            result = self._get_collection(table, write=True).update_many(
                conditions, {'$set': fields})
            return result.modified_count
        except errors.PyMongoError as e:
            raise RuntimeError(f"update_many failed: {e}") from e

    def delete_one(self, table: str, conditions: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            return self._get_collection(table, write=True).find_one_and_delete(
                conditions, projection={'_id': 0})
        except errors.PyMongoError as e:
            raise RuntimeError(f"delete_one failed: {e}") from e

    def delete_many(self, table: str, conditions: Dict[str, Any]) -> int:
        try:
            return self._get_collection(table, write=True).delete_many(conditions).deleted_count
        except errors.PyMongoError as e:
            raise RuntimeError(f"delete_many failed: {e}") from e

    def push_to_array(
        self,
        table: str,
        conditions: Dict[str, Any],
        array_field: str,
        element: Dict[str, Any],
        unique_key: str = None,
        increment: Dict[str, int] = None
    ) -> bool:
        """
        Append ``element`` to ``array_field`` with ``$push``.

        The uniqueness guard is part of the filter, so the check and the push happen
        in the same single-document operation.
        """
        query = dict(conditions)
        if unique_key:
            query[f"{array_field}.{unique_key}"] = {'$ne': element[unique_key]}
        try:
            result = self._get_collection(table, write=True).update_one(
                query, self._update_document(increment=increment, **{'$push': {array_field: element}}))
            return result.modified_count > 0
        except errors.PyMongoError as e:
            raise RuntimeError(f"push_to_array failed: {e}") from e

    def pull_from_array(
        self,
        table: str,
        conditions: Dict[str, Any],
        array_field: str,
        match: Dict[str, Any],
        many: bool = False,
        increment: Dict[str, int] = None
    ) -> int:
        query = dict(conditions)
        for key, value in match.items():
            query[f"{array_field}.{key}"] = value
        update = self._update_document(increment=increment, **{'$pull': {array_field: match}})
        try:
            coll = self._get_collection(table, write=True)
            result = coll.update_many(query, update) if many else coll.update_one(query, update)
            return result.modified_count
        except errors.PyMongoError as e:
            raise RuntimeError(f"pull_from_array failed: {e}") from e

    def update_array_element_by_key(
        self,
        table: str,
        conditions: Dict[str, Any],
        array_field: str,
        key: str,
        key_value: Any,
        fields: Dict[str, Any],
        many: bool = False,
        increment: Dict[str, int] = None
    ) -> int:
        """
        Update matched array elements in place using ``$[elem]`` with ``array_filters``.
        """
        query = dict(conditions)
        query[f"{array_field}.{key}"] = key_value
        set_fields = {f"{array_field}.$[{ARRAY_ELEMENT}].{name}": value for name, value in fields.items()}
        update = self._update_document(set_fields, increment)
        array_filters = [{f"{ARRAY_ELEMENT}.{key}": key_value}]
        try:
            coll = self._get_collection(table, write=True)
            if many:
                result = coll.update_many(query, update, array_filters=array_filters)
            else:
                result = coll.update_one(query, update, array_filters=array_filters)
            return result.modified_count
        except errors.PyMongoError as e:
            raise RuntimeError(f"update_array_element_by_key failed: {e}") from e

    def create_index(
        self,
        table: str,
        columns: List[Union[str, Tuple[str, int]]],
        index_name: str,
        unique: bool = False
    ) -> str:
        """
        Create a MongoDB index.

        Raises:
            RuntimeError: If the operation fails due to a PyMongoError.
        """
        try:
            options: Dict[str, Any] = {'name': index_name}
            if unique:
                options['unique'] = True
            return self._get_collection(table, write=True).create_index(columns, **options)
        except errors.PyMongoError as e:
            raise RuntimeError(f"create_index failed: {e}") from e
