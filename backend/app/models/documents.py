from __future__ import annotations

from ..extensions import db
from .base import DocumentMixin


class SequenceCounter(DocumentMixin, db.Model):
    """
    Atomic per-shop counters (invoice_no, product_id, buy_back_id, ...).

    One row per (shop, counter_name); `value` is the last number handed out.
    Rows are only ever incremented, so numbers are never reused.
    """
    __tablename__ = "sequence_counters"
    __table_args__ = (
        db.UniqueConstraint("shop_id", "counter_name", name="uq_sequence_counters_shop_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    counter_name = db.Column(db.String(32), nullable=False)
    value = db.Column(db.Integer, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("sequence_counters", lazy=True))


DELETION_METADATA_FIELDS = ("deleted_at", "deleted_by", "delete_month", "delete_year", "delete_date_string")


class ArchiveLogEntry(db.Model):
    """
    Soft-deleted document awaiting possible restore.

    `document` is the full to_dict() copy of the deleted row, primary key
    included, so restoring is a plain reinsertion. The deletion metadata lives
    in its own columns so logs can be filtered by date and actor.
    """
    __tablename__ = "archive_log_entries"
    __table_args__ = (
        db.UniqueConstraint("collection", "original_id", name="uq_archive_log_collection_original"),
        db.Index("ix_archive_log_shop_collection", "shop_id", "collection"),
        {"sqlite_autoincrement": True},
    )
    # Listing resolves unknown fields inside `document`; "id" means the original id
    __document_column__ = "document"
    __field_aliases__ = {"id": "original_id"}

    id = db.Column(db.Integer, primary_key=True)
    collection = db.Column(db.String(32), nullable=False)
    shop_id = db.Column(db.Integer, nullable=True)
    original_id = db.Column(db.Integer, nullable=False)

    document = db.Column(db.JSON, nullable=False)

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=False)
    deleted_by = db.Column(db.String(255), nullable=True)
    delete_month = db.Column(db.Integer, nullable=False)
    delete_year = db.Column(db.Integer, nullable=False)
    delete_date_string = db.Column(db.String(10), nullable=False, index=True)

    def to_dict(self) -> dict:
        """Original fields plus deletion metadata, as listed to clients."""
        doc = dict(self.document)
        doc.update({
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "deleted_by": self.deleted_by,
            "delete_month": self.delete_month,
            "delete_year": self.delete_year,
            "delete_date_string": self.delete_date_string,
        })
        return doc
