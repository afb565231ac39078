# Overview: Document-style serialization shared by every model.

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from sqlalchemy import Date, DateTime, inspect


def _dump(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def _load(column_type, value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    if isinstance(column_type, DateTime):
        return datetime.fromisoformat(value)
    if isinstance(column_type, Date):
        return date.fromisoformat(value)
    return value


class DocumentMixin:
    """
    Round-trippable document view of a row.

    to_dict() emits every mapped column under its attribute name plus the
    embedded child collections named in __children__ (document key ->
    relationship attribute). from_dict() is the exact inverse, including the
    primary key, so a document can be reinserted under its original id.
    """

    __children__: dict[str, str] = {}

    def to_dict(self) -> dict:
        mapper = inspect(type(self))
        doc = {attr.key: _dump(getattr(self, attr.key)) for attr in mapper.column_attrs}
        for key, rel in self.__children__.items():
            doc[key] = [child.to_dict() for child in getattr(self, rel)]
        return doc

    @classmethod
    def from_dict(cls, doc: dict):
        mapper = inspect(cls)
        values = {}
        for attr in mapper.column_attrs:
            if attr.key in doc:
                values[attr.key] = _load(attr.columns[0].type, doc[attr.key])
        obj = cls(**values)
        for key, rel in cls.__children__.items():
            child_cls = mapper.relationships[rel].mapper.class_
            setattr(obj, rel, [child_cls.from_dict(child) for child in doc.get(key) or []])
        return obj
