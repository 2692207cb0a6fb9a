# force3/models/storage.py
from datetime import datetime

from force3 import db


class StoredDocument(db.Model):
    """
    Un documento JSON por clave (state, today_done, plan_versions, week_notes...).
    Sustituye al almacenamiento local del navegador: un único escritor, sin
    aislamiento transaccional entre pestañas.
    """
    __tablename__ = "stored_documents"

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), unique=True, nullable=False, index=True)
    payload = db.Column(db.Text, nullable=False, default="null")  # JSON serializado
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now, nullable=False)

    def __repr__(self):
        return f"<StoredDocument {self.key} {len(self.payload or '')}b>"
