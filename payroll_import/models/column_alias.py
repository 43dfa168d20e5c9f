import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from payroll_import.database import Base, TimestampMixin


class AliasOrigin(str, enum.Enum):
    exact = "exact"
    fuzzy = "fuzzy"
    manual = "manual"


class ColumnAlias(Base, TimestampMixin):
    """
    A spreadsheet column name known to correspond to a canonical payroll field.
    
    The table grows as reviewers confirm mappings. Rows are keyed by
    (field_key, alias_key) where alias_key is the normalized alias text, so
    saving the same alias again replaces its confidence (last write wins).
    """
    __tablename__ = "column_alias"

    id = Column(Integer, primary_key=True, index=True)
    field_key = Column(String, nullable=False, index=True)
    alias_text = Column(String, nullable=False)
    alias_key = Column(String, nullable=False)  # casefolded, whitespace-collapsed alias_text
    confidence_score = Column(Integer, nullable=False, default=100)
    origin = Column(Enum(AliasOrigin), nullable=False, default=AliasOrigin.manual)
    is_active = Column(Boolean, nullable=False, default=True)
    config_id = Column(Integer, ForeignKey("mapping_configuration.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(String, nullable=True)

    configuration = relationship("MappingConfiguration")

    __table_args__ = (
        UniqueConstraint('field_key', 'alias_key', name='uix_alias_field_text'),
    )
