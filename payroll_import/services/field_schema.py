"""
Canonical payroll field registry.

Every import must eventually populate these fields. The list is static;
`key` is the join key used by mappings, aliases and records.
"""
from typing import Dict, List, Optional, Sequence
from payroll_import.schemas.field_schema import FieldSpec, FieldValueType

EMPLOYEE_ID = "employee_id"
SALARY_MONTH = "salary_month"
NET_SALARY = "tien_luong_thuc_nhan_cuoi_ky"

_BASIC = "Thông tin cơ bản"
_COEFFICIENTS = "Hệ số cơ bản"
_WORK_TIME = "Thời gian làm việc"
_PRODUCT_PAY = "Lương sản phẩm"
_BONUS = "Thưởng và phụ cấp"
_INSURANCE = "Bảo hiểm và phúc lợi"
_LEAVE = "Phép và lễ"
_TOTALS = "Tổng lương"
_DEDUCTIONS = "Thuế và khấu trừ"
_NET = "Lương thực nhận"


def _number(key: str, label: str, category: str, description: str = "") -> FieldSpec:
    return FieldSpec(
        key=key,
        label=label,
        value_type=FieldValueType.number,
        required=False,
        category=category,
        description=description,
    )


PAYROLL_FIELDS: List[FieldSpec] = [
    FieldSpec(key=EMPLOYEE_ID, label="Mã Nhân Viên", value_type=FieldValueType.text, required=True,
              category=_BASIC, description="Mã định danh duy nhất của nhân viên"),
    FieldSpec(key=SALARY_MONTH, label="Tháng Lương", value_type=FieldValueType.date, required=True,
              category=_BASIC, description="Tháng lương theo định dạng YYYY-MM"),

    _number("he_so_lam_viec", "Hệ Số Làm Việc", _COEFFICIENTS),
    _number("he_so_phu_cap_ket_qua", "Hệ Số Phụ Cấp Kết Quả", _COEFFICIENTS),
    _number("he_so_luong_co_ban", "Hệ Số Lương Cơ Bản", _COEFFICIENTS),
    _number("luong_toi_thieu_cty", "Lương Tối Thiểu Công Ty", _COEFFICIENTS),

    _number("ngay_cong_trong_gio", "Ngày Công Trong Giờ", _WORK_TIME),
    _number("gio_cong_tang_ca", "Giờ Công Tăng Ca", _WORK_TIME),
    _number("gio_an_ca", "Giờ Ăn Ca", _WORK_TIME),
    _number("tong_gio_lam_viec", "Tổng Giờ Làm Việc", _WORK_TIME),
    _number("tong_he_so_quy_doi", "Tổng Hệ Số Quy Đổi", _WORK_TIME),

    _number("tong_luong_san_pham_cong_doan", "Tổng Lương Sản Phẩm Công Đoạn", _PRODUCT_PAY),
    _number("don_gia_tien_luong_tren_gio", "Đơn Giá Tiền Lương Trên Giờ", _PRODUCT_PAY),
    _number("tien_luong_san_pham_trong_gio", "Tiền Lương Sản Phẩm Trong Giờ", _PRODUCT_PAY),
    _number("tien_luong_tang_ca", "Tiền Lương Tăng Ca", _PRODUCT_PAY),
    _number("tien_luong_30p_an_ca", "Tiền Lương 30p Ăn Ca", _PRODUCT_PAY),

    _number("tien_khen_thuong_chuyen_can", "Tiền Khen Thưởng Chuyên Cần", _BONUS),
    _number("luong_hoc_viec_pc_luong", "Lương Học Việc PC Lương", _BONUS),
    _number("tong_cong_tien_luong_san_pham", "Tổng Cộng Tiền Lương Sản Phẩm", _BONUS),
    _number("ho_tro_thoi_tiet_nong", "Hỗ Trợ Thời Tiết Nóng", _BONUS),
    _number("bo_sung_luong", "Bổ Sung Lương", _BONUS),

    _number("bhxh_21_5_percent", "BHXH 21.5%", _INSURANCE),
    _number("pc_cdcs_pccc_atvsv", "PC CDCS PCCC ATVSV", _INSURANCE),
    _number("luong_phu_nu_hanh_kinh", "Lương Phụ Nữ Hành Kinh", _INSURANCE),
    _number("tien_con_bu_thai_7_thang", "Tiền Con Bú Thai 7 Tháng", _INSURANCE),
    _number("ho_tro_gui_con_nha_tre", "Hỗ Trợ Gửi Con Nhà Trẻ", _INSURANCE),

    _number("ngay_cong_phep_le", "Ngày Công Phép Lễ", _LEAVE),
    _number("tien_phep_le", "Tiền Phép Lễ", _LEAVE),

    _number("tong_cong_tien_luong", "Tổng Cộng Tiền Lương", _TOTALS),
    _number("tien_boc_vac", "Tiền Bốc Vác", _TOTALS),
    _number("ho_tro_xang_xe", "Hỗ Trợ Xăng Xe", _TOTALS),

    _number("thue_tncn_nam_2024", "Thuế TNCN Năm 2024", _DEDUCTIONS),
    _number("tam_ung", "Tạm Ứng", _DEDUCTIONS),
    _number("thue_tncn", "Thuế TNCN", _DEDUCTIONS),
    _number("bhxh_bhtn_bhyt_total", "BHXH BHTN BHYT Total", _DEDUCTIONS),
    _number("truy_thu_the_bhyt", "Truy Thu Thẻ BHYT", _DEDUCTIONS),

    _number(NET_SALARY, "Tiền Lương Thực Nhận Cuối Kỳ", _NET, "Lương thực nhận sau khấu trừ"),
]

_FIELDS_BY_KEY: Dict[str, FieldSpec] = {field.key: field for field in PAYROLL_FIELDS}


def get_field_schema() -> List[FieldSpec]:
    return list(PAYROLL_FIELDS)


def get_field(key: str, field_schema: Optional[Sequence[FieldSpec]] = None) -> Optional[FieldSpec]:
    if field_schema is None:
        return _FIELDS_BY_KEY.get(key)
    return next((field for field in field_schema if field.key == key), None)


def required_fields(field_schema: Optional[Sequence[FieldSpec]] = None) -> List[FieldSpec]:
    return [field for field in (field_schema or PAYROLL_FIELDS) if field.required]


def fields_by_category(category: str) -> List[FieldSpec]:
    return [field for field in PAYROLL_FIELDS if field.category == category]


def categories() -> List[str]:
    seen = []
    for field in PAYROLL_FIELDS:
        if field.category not in seen:
            seen.append(field.category)
    return seen
