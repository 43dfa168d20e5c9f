"""
python -m scripts.seed_reference_data
"""

import sys

sys.path.insert(0, ".")

from dotenv import load_dotenv
load_dotenv()

from payroll_import.database import SessionLocal
from payroll_import.crud.column_alias import column_alias_crud
from payroll_import.models.column_alias import AliasOrigin
from payroll_import.models.employee import Employee

# Header spellings seen in payroll workbooks before the alias table existed
DEFAULT_ALIASES = {
    "employee_id": ["mã nhân viên", "ma_nhan_vien", "id", "mã nv", "manv"],
    "salary_month": ["tháng lương", "thang_luong", "month", "tháng"],
    "he_so_lam_viec": ["hệ số làm việc", "hệ số lv"],
    "tong_cong_tien_luong": ["tổng cộng tiền lương", "tổng lương", "total_salary"],
    "tien_luong_thuc_nhan_cuoi_ky": ["tiền lương thực nhận cuối kỳ", "lương thực nhận", "net_salary"],
    "bhxh_bhtn_bhyt_total": ["bhxh bhtn bhyt total", "bảo hiểm", "insurance"],
    "thue_tncn": ["thuế tncn", "thuế", "tax"],
    "tam_ung": ["tạm ứng", "advance"],
}

SAMPLE_EMPLOYEES = [
    ("DB01234", "Nguyễn Văn An", "Sản xuất"),
    ("DB01235", "Trần Thị Bình", "Sản xuất"),
    ("DB01236", "Lê Văn Cường", "Kho vận"),
    ("DB01237", "Phạm Thị Dung", "Hành chính"),
]


def seed_reference_data():
    """Seed default aliases and sample employees (safe to run repeatedly)."""
    db = SessionLocal()
    
    try:
        alias_count = 0
        for field_key, aliases in DEFAULT_ALIASES.items():
            for alias_text in aliases:
                column_alias_crud.stage_upsert(
                    db,
                    field_key=field_key,
                    alias_text=alias_text,
                    confidence_score=90,
                    origin=AliasOrigin.exact,
                    created_by="seed",
                )
                alias_count += 1
        
        employee_count = 0
        for employee_id, full_name, department in SAMPLE_EMPLOYEES:
            if db.query(Employee).filter(Employee.employee_id == employee_id).first():
                continue
            db.add(Employee(employee_id=employee_id, full_name=full_name, department=department))
            employee_count += 1
            print(f"Added employee: {employee_id} {full_name}")
        
        db.commit()
        print(f"\nSeeded {alias_count} aliases and {employee_count} new employees")
        
    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()


if __name__ == "__main__":
    seed_reference_data()
