"""
Store and store document models
"""
import enum
from sqlalchemy import Column, Integer, String, Text, Boolean, BigInteger, DateTime, ForeignKey, JSON, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base


def _values(enum_cls):
    return [m.value for m in enum_cls]


class StoreStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUSPENDED = "suspended"


class DocumentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DocumentType(str, enum.Enum):
    CAC_CERTIFICATE = "cac_certificate"
    COMPANY_LOGO = "company_logo"
    LIVE_PHOTOS = "live_photos"
    TIN_CERTIFICATE = "tin_certificate"
    TAX_CLEARANCE = "tax_clearance"
    DPR_NUPRC = "dpr_nuprc"
    IMPORT_LICENSE = "import_license"
    NCDMB = "ncdmb"
    OEM_PARTNER = "oem_partner"
    HSE_CERT = "hse_cert"


MANDATORY_DOCUMENTS = (
    DocumentType.CAC_CERTIFICATE,
    DocumentType.COMPANY_LOGO,
    DocumentType.LIVE_PHOTOS,
)


class Store(Base):
    """Stores table"""
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=True)
    rc_number = Column(String(100), nullable=False, unique=True)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=False)
    alternate_phone = Column(String(30), nullable=True)
    address = Column(Text, nullable=False)
    city = Column(String(100), nullable=True)
    website = Column(String(255), nullable=True)
    opening_hours = Column(String(255), nullable=True)
    contact_person = Column(String(255), nullable=False)
    business_lines = Column(JSON, nullable=True)  # ["upstream", "downstream", ...]
    product_line = Column(Text, nullable=True)
    states = Column(JSON, nullable=True)  # states of operation
    status = Column(SQLEnum(StoreStatus, values_callable=_values, native_enum=False), default=StoreStatus.PENDING, nullable=False, index=True)
    subscription = Column(String(20), nullable=False, default="basic")  # display plan slug
    rejection_reason = Column(Text, nullable=True)
    suspension_reason = Column(Text, nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="store", lazy="selectin")
    documents = relationship("StoreDocument", back_populates="store", cascade="all, delete-orphan", order_by="StoreDocument.id", lazy="selectin")
    products = relationship("Product", back_populates="store")
    subscriptions = relationship("Subscription", back_populates="store")

    def document(self, doc_type: str):
        for doc in self.documents:
            if doc.type == doc_type:
                return doc
        return None

    @property
    def logo(self):
        doc = self.document(DocumentType.COMPANY_LOGO.value)
        return doc.file_path if doc else None


class StoreDocument(Base):
    """Verification documents uploaded at registration"""
    __tablename__ = "store_documents"

    id = Column(Integer, primary_key=True, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String(50), nullable=False)  # DocumentType value
    file_path = Column(String(500), nullable=False)
    original_name = Column(String(255), nullable=True)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(BigInteger, nullable=True)
    is_mandatory = Column(Boolean, default=False)
    status = Column(SQLEnum(DocumentStatus, values_callable=_values, native_enum=False), default=DocumentStatus.PENDING, nullable=False)
    rejection_reason = Column(Text, nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    store = relationship("Store", back_populates="documents")
