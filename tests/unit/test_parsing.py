import pytest

from app.extraction.exceptions import ExtractionValidationError
from app.extraction.parsing import (
    DEFAULT_CONFIDENCE,
    build_fields,
    build_line_items,
    coerce_amount,
    coerce_confidence,
    normalize_tax_id,
)
from app.records.models import LineItem


class TestCoerceAmount:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (1000, 1000),
            (462.5, 463),
            (462.4, 462),
            ("1,000", 1000),
            ("￥1,280円", 1280),
            ("¥ 3,300", 3300),
            ("１，０００円", 1000),
            ("2.5", 3),
        ],
    )
    def test_coerces(self, value: object, expected: int) -> None:
        assert coerce_amount(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, True, "abc", "", "1,000.5.2", [], {}, float("nan"), float("inf"), -float("inf")],
    )
    def test_unusable_is_none(self, value: object) -> None:
        assert coerce_amount(value) is None

    def test_amount_beyond_decimal_precision_is_none(self) -> None:
        assert coerce_amount(1e300) is None
        assert coerce_amount("9" * 40) is None


class TestNormalizeTaxId:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("T1234567890123", "T1234567890123"),
            ("t1234567890123", "T1234567890123"),
            ("T1-2345-6789-0123", "T1234567890123"),
            ("11234567890123", "T1234567890123"),
            ("T11234567890123", "T1234567890123"),
            ("11-9876-5432-1098", "T1987654321098"),
            ("Ｔ１２３４５６７８９０１２３", "T1234567890123"),
            ("1234567890123", "T1234567890123"),
        ],
    )
    def test_normalizes(self, value: str, expected: str) -> None:
        assert normalize_tax_id(value) == expected

    @pytest.mark.parametrize("value", [None, "", "T123", "X1234567890123", 1234567890123])
    def test_invalid_is_none(self, value: object) -> None:
        assert normalize_tax_id(value) is None


class TestCoerceConfidence:
    def test_valid_value_kept(self) -> None:
        assert coerce_confidence(0.9) == 0.9

    @pytest.mark.parametrize("value", [None, -0.1, 1.5, "0.9", True])
    def test_missing_or_out_of_range_uses_default(self, value: object) -> None:
        assert coerce_confidence(value) == DEFAULT_CONFIDENCE == 0.8


class TestBuildLineItems:
    def test_drops_malformed_entries(self) -> None:
        items = build_line_items(
            [
                {"description": "コーヒー", "price": 550},
                {"description": "おにぎり", "price": "150", "quantity": 2},
                {"description": "", "price": 100},
                {"description": "no price"},
                "garbage",
                {"description": "お茶", "price": 120, "quantity": 0},
            ]
        )
        assert items == [
            LineItem(description="コーヒー", price=550),
            LineItem(description="おにぎり", price=150, quantity=2),
            LineItem(description="お茶", price=120),
        ]

    def test_non_list_is_empty(self) -> None:
        assert build_line_items(None) == []


class TestBuildFields:
    def test_builds_complete_fields(self) -> None:
        fields = build_fields(
            {
                "vendor": " 株式会社山田商店 ",
                "date": "令和5年3月15日",
                "amount": "1,000",
                "taxId": "11234567890123",
                "items": [{"description": "紅茶", "price": 450, "quantity": None}],
                "confidence": 0.9,
            },
            raw_text="ocr text",
        )
        assert fields.vendor == "株式会社山田商店"
        assert fields.date == "2023-03-15"
        assert fields.amount == 1000
        assert fields.tax_id == "T1234567890123"
        assert fields.line_items == [LineItem(description="紅茶", price=450)]
        assert fields.confidence == 0.9
        assert fields.raw_text == "ocr text"

    def test_accepts_legacy_t_number_key(self) -> None:
        fields = build_fields({"tNumber": "T1234567890123", "confidence": 0.7}, raw_text="")
        assert fields.tax_id == "T1234567890123"

    def test_nulls_are_kept_as_none(self) -> None:
        fields = build_fields(
            {"vendor": None, "date": None, "amount": None, "taxId": None, "items": []},
            raw_text="x",
        )
        assert not fields.has_structured_data
        assert fields.confidence == 0.8

    def test_non_object_raises(self) -> None:
        with pytest.raises(ExtractionValidationError):
            build_fields(["not", "an", "object"], raw_text="x")
