import pytest

from payroll_import.core.exceptions import AliasNotFoundError, UnknownFieldError
from payroll_import.models import ColumnAlias
from payroll_import.models.column_alias import AliasOrigin
from payroll_import.models.mapping_configuration import MappingType
from payroll_import.schemas.column_mapping import ColumnAliasCreate, ColumnAliasUpdate, FieldMapping
from payroll_import.services.column_alias import column_alias_service as service


def test_alias_upsert_is_last_write_wins(db):
    service.create_alias(db, ColumnAliasCreate(field_key="employee_id", alias_text="Mã số NV", confidence_score=80))
    service.create_alias(db, ColumnAliasCreate(field_key="employee_id", alias_text="  MÃ SỐ NV", confidence_score=95))

    aliases = db.query(ColumnAlias).all()
    assert len(aliases) == 1
    assert aliases[0].confidence_score == 95
    assert aliases[0].alias_text == "MÃ SỐ NV"


def test_alias_for_unknown_field_is_rejected(db):
    with pytest.raises(UnknownFieldError):
        service.create_alias(db, ColumnAliasCreate(field_key="nope", alias_text="x"))


def test_inactive_aliases_are_not_used_for_matching(db):
    service.create_alias(db, ColumnAliasCreate(field_key="employee_id", alias_text="Code"))
    service.create_alias(db, ColumnAliasCreate(field_key="salary_month", alias_text="Period", is_active=False))

    known = service.known_aliases(db)

    assert [(a.field_key, a.alias_text) for a in known] == [("employee_id", "Code")]


def test_search_filters_and_counts(db):
    for text, score in [("Code", 90), ("Staff code", 70), ("Mã", 50)]:
        service.create_alias(db, ColumnAliasCreate(field_key="employee_id", alias_text=text, confidence_score=score))
    service.create_alias(db, ColumnAliasCreate(field_key="salary_month", alias_text="Period"))

    items, total = service.search_aliases(db, field_key="employee_id", confidence_min=60, sort_by="confidence_score")

    assert total == 2
    assert [a.alias_text for a in items] == ["Staff code", "Code"]

    items, total = service.search_aliases(db, alias_text="code", limit=1)
    assert total == 2
    assert len(items) == 1


def test_bulk_create_reports_rejected_rows(db):
    created, errors = service.bulk_create_aliases(db, [
        ColumnAliasCreate(field_key="employee_id", alias_text="Code"),
        ColumnAliasCreate(field_key="bogus", alias_text="X"),
        ColumnAliasCreate(field_key="salary_month", alias_text="Period", origin=AliasOrigin.exact),
    ])

    assert [a.alias_text for a in created] == ["Code", "Period"]
    assert [e["index"] for e in errors] == [1]


def test_update_keeps_match_key_in_sync(db):
    alias = service.create_alias(db, ColumnAliasCreate(field_key="employee_id", alias_text="Code"))

    service.update_alias(db, alias.id, ColumnAliasUpdate(alias_text="Staff Code", confidence_score=70))

    assert service.crud.get_by_field_and_text(db, "employee_id", "staff code").id == alias.id


def test_delete_missing_alias(db):
    with pytest.raises(AliasNotFoundError):
        service.delete_alias(db, 12345)


def test_learning_skips_already_known_headers(db):
    service.create_alias(db, ColumnAliasCreate(field_key="tam_ung", alias_text="Advance", confidence_score=100))

    learned = service.learn_aliases(db, [
        FieldMapping(field_key="employee_id", column_name="Mã Nhân Viên", mapping_type=MappingType.manual),
        FieldMapping(field_key="tam_ung", column_name="advance", mapping_type=MappingType.manual),
        FieldMapping(field_key="thue_tncn", column_name="Tax", mapping_type=MappingType.manual),
    ], created_by="hr")

    assert [(a.field_key, a.alias_text, a.origin) for a in learned] == [
        ("thue_tncn", "Tax", AliasOrigin.manual)
    ]
    assert db.query(ColumnAlias).count() == 2
