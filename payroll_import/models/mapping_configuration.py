import enum
from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from payroll_import.database import Base, TimestampMixin


class MappingType(str, enum.Enum):
    exact = "exact"
    fuzzy = "fuzzy"
    manual = "manual"
    alias = "alias"


class MappingConfiguration(Base, TimestampMixin):
    """
    Named, reusable field -> column template.
    
    Import sessions reference configurations by id; a configuration is a
    template matched against each new file's headers, not a literal list.
    """
    __tablename__ = "mapping_configuration"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(String, nullable=True)

    field_mappings = relationship(
        "ConfigurationFieldMapping",
        back_populates="configuration",
        cascade="all, delete-orphan",
        order_by="ConfigurationFieldMapping.position",
    )


class ConfigurationFieldMapping(Base):
    __tablename__ = "configuration_field_mapping"

    id = Column(Integer, primary_key=True, index=True)
    config_id = Column(Integer, ForeignKey("mapping_configuration.id", ondelete="CASCADE"), nullable=False)
    position = Column(Integer, nullable=False, default=0)
    field_key = Column(String, nullable=False)
    column_name = Column(String, nullable=False)
    confidence_score = Column(Integer, nullable=False, default=80)
    mapping_type = Column(Enum(MappingType), nullable=False, default=MappingType.manual)
    validation_passed = Column(Boolean, nullable=False, default=True)

    configuration = relationship("MappingConfiguration", back_populates="field_mappings")

    __table_args__ = (
        UniqueConstraint('config_id', 'field_key', name='uix_config_field'),
    )
