# Overview: Service-layer operations for archive-delete and restore of products, transactions and customers.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import ArchiveLogEntry, Customer, Product, Transaction, User
from ..models.documents import DELETION_METADATA_FIELDS
from ..time_utils import date_string, utcnow
from ..validation import ConflictError, NotFoundError, ValidationError, coerce_identifier
from .concurrency import atomic

"""
Archive Log (authoritative)

- archive_delete copies every matched document (original id included) into
  archive_log_entries with deletion metadata, then removes the originals.
  Both steps commit in ONE transaction: a document is never deleted without
  its log entry.
- Read-only documents are never deleted; one read-only match rejects the
  whole request.
- restore reinserts the stored documents under their original ids and drops
  the log entries, again in one transaction. A document whose id is live
  again is a ConflictError. Restoring ids with no log entry is not an error.
"""

ARCHIVABLE = {
    "products": Product,
    "transactions": Transaction,
    "customers": Customer,
}

NO_LOGS_MESSAGE = "No logs found for the provided IDs."


def _model_for(collection: str):
    model = ARCHIVABLE.get(collection)
    if model is None:
        raise ValidationError(
            f"Unknown collection {collection!r}",
            details={"allowed": sorted(ARCHIVABLE)},
        )
    return model


def _coerce_ids(ids) -> list[int]:
    if not isinstance(ids, (list, tuple)) or not ids:
        raise ValidationError("ids must be a non-empty list")
    return [coerce_identifier(value, "ids") for value in ids]


def _actor_name(actor_id) -> str | None:
    if actor_id is None:
        return None
    user = db.session.get(User, actor_id)
    if user is None:
        current_app.logger.warning("Archive actor %s could not be resolved", actor_id)
        return None
    return user.name


def archive_delete(collection: str, ids, *, actor_id=None, shop_id: int | None = None) -> dict:
    """Move documents into the archive log. Returns {"deleted": n}."""
    model = _model_for(collection)
    ids = _coerce_ids(ids)

    with atomic():
        query = db.session.query(model).filter(model.id.in_(ids))
        if shop_id is not None:
            query = query.filter(model.shop_id == shop_id)
        rows = query.all()
        if not rows:
            raise NotFoundError("No Data found!", details={"ids": ids})
        read_only = [row.id for row in rows if getattr(row, "read_only", False)]
        if read_only:
            raise NotFoundError(
                "Sorry! Read only data can not be deleted",
                details={"read_only_ids": read_only},
            )

        documents = [row.to_dict() for row in rows]
        for row in rows:
            db.session.delete(row)

        deleted_by = _actor_name(actor_id)
        now = utcnow()
        day = date_string(now)
        db.session.flush()
        db.session.add_all([
            ArchiveLogEntry(
                collection=collection,
                shop_id=doc.get("shop_id"),
                original_id=doc["id"],
                document=doc,
                deleted_at=now,
                deleted_by=deleted_by,
                delete_month=now.month,
                delete_year=now.year,
                delete_date_string=day,
            )
            for doc in documents
        ])

    current_app.logger.info(
        "Archived %s %s for shop=%s by actor=%s", len(documents), collection, shop_id, actor_id
    )
    return {"deleted": len(documents)}


def restore(collection: str, ids, *, shop_id: int | None = None) -> dict:
    """Reinsert archived documents under their original ids."""
    model = _model_for(collection)
    ids = _coerce_ids(ids)

    query = db.session.query(ArchiveLogEntry).filter(
        ArchiveLogEntry.collection == collection,
        ArchiveLogEntry.original_id.in_(ids),
    )
    if shop_id is not None:
        query = query.filter(ArchiveLogEntry.shop_id == shop_id)
    entries = query.all()
    if not entries:
        return {"success": False, "message": NO_LOGS_MESSAGE}

    with atomic():
        for entry in entries:
            doc = {k: v for k, v in entry.document.items() if k not in DELETION_METADATA_FIELDS}
            if db.session.get(model, entry.original_id) is not None:
                raise ConflictError(
                    f"{collection} id {entry.original_id} already exists",
                    details={"id": entry.original_id},
                )
            db.session.add(model.from_dict(doc))
            db.session.delete(entry)

    current_app.logger.info("Restored %s %s for shop=%s", len(entries), collection, shop_id)
    return {"success": True, "message": "Success", "restored": len(entries)}
