from payroll_import.models.mapping_configuration import MappingType
from payroll_import.schemas.field_schema import FieldSpec, FieldValueType
from payroll_import.services.auto_mapper import KnownAlias, auto_map_columns
from payroll_import.services.field_schema import NET_SALARY

SHORT_SCHEMA = [
    FieldSpec(key="employee_id", label="Mã NV", value_type=FieldValueType.text, required=True),
    FieldSpec(key="salary_month", label="Tháng Lương", value_type=FieldValueType.date, required=True),
    FieldSpec(key=NET_SALARY, label="Lương Thực Nhận", value_type=FieldValueType.number, required=True),
]


def test_unaccented_headers_map_fuzzily_at_60():
    result = auto_map_columns(["Ma NV", "Thang Luong", "Luong Thuc Nhan"], SHORT_SCHEMA)

    assert result.mapping.as_dict() == {
        "employee_id": "Ma NV",
        "salary_month": "Thang Luong",
        NET_SALARY: "Luong Thuc Nhan",
    }
    for mapping in result.mapping.assignments.values():
        assert mapping.confidence_score == 60
        assert mapping.mapping_type == MappingType.fuzzy
    assert result.conflicts == []
    assert result.unmapped_fields == []


def test_exact_label_match_is_case_and_whitespace_insensitive():
    result = auto_map_columns(["  mã   nhân viên ", "THÁNG LƯƠNG", "Tổng Cộng Tiền Lương"])

    assert result.mapping.column_for("employee_id") == "  mã   nhân viên "
    assert result.mapping.column_for("salary_month") == "THÁNG LƯƠNG"
    assert result.mapping.column_for("tong_cong_tien_luong") == "Tổng Cộng Tiền Lương"
    assert result.mapping.assignments["tong_cong_tien_luong"].confidence_score == 100
    assert result.mapping.assignments["employee_id"].mapping_type == MappingType.exact


def test_field_key_counts_as_exact_match():
    result = auto_map_columns(["employee_id", "salary_month"], SHORT_SCHEMA)

    assert result.mapping.assignments["employee_id"].confidence_score == 100
    assert result.mapping.assignments["salary_month"].mapping_type == MappingType.exact


def test_alias_match_uses_stored_confidence():
    aliases = [KnownAlias("employee_id", "Mã số NV", 90)]

    result = auto_map_columns(["mã số nv", "Tháng Lương"], SHORT_SCHEMA, aliases)

    mapping = result.mapping.assignments["employee_id"]
    assert mapping.column_name == "mã số nv"
    assert mapping.confidence_score == 90
    assert mapping.mapping_type == MappingType.alias


def test_weak_alias_loses_to_fuzzy_match():
    aliases = [KnownAlias("employee_id", "Ma NV", 40)]

    result = auto_map_columns(["Ma NV"], SHORT_SCHEMA, aliases)

    mapping = result.mapping.assignments["employee_id"]
    assert mapping.confidence_score == 60
    assert mapping.mapping_type == MappingType.fuzzy


def test_column_claimed_by_stronger_match_is_not_reassigned():
    # "Tổng Cộng Tiền Lương" is contained in the label of tong_cong_tien_luong_san_pham,
    # but its exact match to tong_cong_tien_luong wins the column.
    result = auto_map_columns(["Tổng Cộng Tiền Lương"])

    assert result.mapping.as_dict() == {"tong_cong_tien_luong": "Tổng Cộng Tiền Lương"}
    assert "tong_cong_tien_luong_san_pham" in result.unmapped_fields


def test_mapping_is_injective_with_ambiguous_headers():
    columns = ["Lương", "Tiền Lương", "Thuế", "BHXH", "Tháng", "Tiền"]

    result = auto_map_columns(columns)

    used = list(result.mapping.as_dict().values())
    assert len(used) == len(set(used))
    assert set(result.unmapped_columns) == set(columns) - set(used)


def test_auto_mapping_is_idempotent():
    columns = ["Mã Nhân Viên", "Tháng", "Lương", "Thuế TNCN", "Tạm ứng", "Ghi chú"]
    aliases = [KnownAlias("salary_month", "tháng", 95)]

    first = auto_map_columns(columns, aliases=aliases)
    second = auto_map_columns(columns, aliases=aliases)

    assert first.mapping == second.mapping
    assert first.mapping.column_for("salary_month") == "Tháng"


def test_missing_required_fields_are_reported_as_conflicts():
    result = auto_map_columns(["Lương Thực Nhận"], SHORT_SCHEMA)

    missing = {conflict.field_key for conflict in result.conflicts}
    assert missing == {"employee_id", "salary_month"}
    assert all(c.type == "required_field_missing" for c in result.conflicts)


def test_unmatched_columns_are_left_unassigned():
    result = auto_map_columns(["Ghi chú", "Ma NV"], SHORT_SCHEMA)

    assert result.unmapped_columns == ["Ghi chú"]
    assert result.confidence_summary.medium_confidence == 1
    assert result.confidence_summary.high_confidence == 0
