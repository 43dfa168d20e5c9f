from payroll_import.services.field_schema import (
    EMPLOYEE_ID,
    SALARY_MONTH,
    PAYROLL_FIELDS,
    categories,
    get_field,
    required_fields,
)


def test_field_keys_are_unique():
    keys = [field.key for field in PAYROLL_FIELDS]

    assert len(keys) == len(set(keys))


def test_every_field_is_reachable_by_key():
    for field in PAYROLL_FIELDS:
        assert get_field(field.key) is field


def test_required_fields_are_employee_and_month():
    assert [field.key for field in required_fields()] == [EMPLOYEE_ID, SALARY_MONTH]


def test_categories_in_registry_order():
    names = categories()

    assert len(names) == 10
    assert names[0] == "Thông tin cơ bản"
    assert names[-1] == "Lương thực nhận"
