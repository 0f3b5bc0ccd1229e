from functools import partial
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from freight_recon.database import Base
from freight_recon.utils.ids import generate_id


class File(Base):
    """Metadata for an uploaded source document kept in object storage"""
    __tablename__ = "files"

    id = Column(String, primary_key=True, default=partial(generate_id, "file"))
    filename = Column(String, nullable=False)
    mime_type = Column(String, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    storage_path = Column(String, nullable=False)
    file_type = Column(String, nullable=True)  # invoice_pdf, pod, po_pdf, bol_pdf, other
    created_at = Column(DateTime(timezone=True), server_default=func.now())
