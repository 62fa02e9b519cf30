"""In-memory fake of the slice of the pymongo API the app uses.

Supports equality, ``$in`` and ``$ne`` filters and ``$set`` / ``$unset``
updates. No network, no real MongoDB.
"""

from __future__ import annotations

import copy
from types import SimpleNamespace
from typing import Any

from bson import ObjectId
from pymongo import ReturnDocument


def _matches(doc: dict, filter_dict: dict) -> bool:
    for key, expected in filter_dict.items():
        actual = doc.get(key)
        if isinstance(expected, dict):
            if "$in" in expected and actual not in expected["$in"]:
                return False
            if "$ne" in expected and actual == expected["$ne"]:
                return False
        elif actual != expected:
            return False
    return True


class FakeCursor:

    def __init__(self, docs: list[dict]) -> None:
        self._docs = docs

    def limit(self, n: int) -> FakeCursor:
        if n:
            self._docs = self._docs[:n]
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:

    def __init__(self) -> None:
        self._docs: list[dict] = []
        self.indexes: list[Any] = []

    def create_index(self, keys, **kwargs) -> None:
        self.indexes.append((keys, kwargs))

    def insert_one(self, doc: dict) -> SimpleNamespace:
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    def find(self, filter_dict: dict | None = None) -> FakeCursor:
        return FakeCursor([copy.deepcopy(d) for d in self._docs if _matches(d, filter_dict or {})])

    def find_one(self, filter_dict: dict | None = None) -> dict | None:
        for d in self._docs:
            if _matches(d, filter_dict or {}):
                return copy.deepcopy(d)
        return None

    def count_documents(self, filter_dict: dict) -> int:
        return sum(1 for d in self._docs if _matches(d, filter_dict))

    def find_one_and_update(self, filter_dict: dict, update: dict, return_document=ReturnDocument.BEFORE) -> dict | None:
        for d in self._docs:
            if _matches(d, filter_dict):
                before = copy.deepcopy(d)
                d.update(copy.deepcopy(update.get("$set", {})))
                for key in update.get("$unset", {}):
                    d.pop(key, None)
                return copy.deepcopy(d) if return_document == ReturnDocument.AFTER else before
        return None

    def delete_one(self, filter_dict: dict) -> SimpleNamespace:
        for i, d in enumerate(self._docs):
            if _matches(d, filter_dict):
                del self._docs[i]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:

    def __init__(self, name: str = "dashboard_test") -> None:
        self.name = name
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection())

    def list_collection_names(self) -> list[str]:
        return list(self._collections)
