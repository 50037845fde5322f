"""
In-memory Motor look-alike for tests: mongomock collections with
awaitable methods and cursors exposing to_list().
"""

import mongomock


class AsyncCursor:
    def __init__(self, cursor):
        self._cursor = cursor

    def sort(self, *args, **kwargs):
        self._cursor = self._cursor.sort(*args, **kwargs)
        return self

    def skip(self, count):
        self._cursor = self._cursor.skip(count)
        return self

    def limit(self, count):
        self._cursor = self._cursor.limit(count)
        return self

    async def to_list(self, length=None):
        docs = list(self._cursor)
        return docs if length is None else docs[:length]


class AsyncCollection:
    def __init__(self, collection):
        self._collection = collection

    def find(self, *args, **kwargs):
        return AsyncCursor(self._collection.find(*args, **kwargs))

    def aggregate(self, pipeline, **kwargs):
        return AsyncCursor(self._collection.aggregate(pipeline, **kwargs))

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        async def method(*args, **kwargs):
            return attr(*args, **kwargs)

        return method


class AsyncDatabase:
    def __init__(self, name="classlab_test"):
        self._db = mongomock.MongoClient()[name]

    def __getitem__(self, name):
        return AsyncCollection(self._db[name])

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        return self[name]

    async def command(self, *args, **kwargs):
        return self._db.command(*args, **kwargs)
