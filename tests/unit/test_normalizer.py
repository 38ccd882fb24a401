"""Unit tests for value normalizers."""

import pytest

from magento_woowup.processor.normalizer import (
    CategoryIndex,
    build_order_payment,
    build_prices,
    clean_empty,
    flatten_category_tree,
    get_payment_type,
    map_gender,
    pick_media_url,
    title_case,
    valid_document,
)


class TestTitleCase:

    def test_trims_and_capitalizes_words(self):
        assert title_case("  juan CARLOS ") == "Juan Carlos"

    def test_only_letters_after_whitespace_are_capitalized(self):
        assert title_case("o'NEIL") == "O'neil"

    def test_none_is_empty(self):
        assert title_case(None) == ""


class TestDocument:

    def test_separators_are_stripped(self):
        assert valid_document("12.345-678 9") == "123456789"

    def test_parentheses_are_separators(self):
        assert valid_document("(20) 1234567") == "201234567"

    @pytest.mark.parametrize("document", ["abc123", "123456", "", None, "12a4567"])
    def test_invalid_documents(self, document):
        assert valid_document(document) is None


class TestGender:

    def test_codes(self):
        assert map_gender("1") == "M"
        assert map_gender(2) == "F"

    def test_unknown_code(self):
        assert map_gender("3") is None
        assert map_gender(None) is None


class TestPaymentType:

    def test_classification(self):
        assert get_payment_type("mercadopago_ticket") == "mercadopago"
        assert get_payment_type("visa_credit") == "credit"
        assert get_payment_type("unknown_wallet") == "other"

    def test_case_insensitive(self):
        assert get_payment_type("MAESTRO_DEBIT") == "debit"

    def test_first_match_wins(self):
        assert get_payment_type("todopago_credit") == "todopago"


def test_build_order_payment():
    payment = build_order_payment({
        "payment_type_id": "credit_card",
        "payment_method": "VISA",
        "cardTruncated": "4509 95** **** 3704",
        "installments": " 6 ",
        "total_amount": "140.50",
    })

    assert payment == {
        "type": "credit",
        "brand": "Visa",
        "first_digits": "450995",
        "installments": 6,
        "amount": 140.5,
    }


def test_build_prices_uses_discount_magnitude():
    prices = build_prices({
        "base_subtotal": "150.00",
        "base_discount_amount": "-20.00",
        "base_tax_amount": "0",
        "base_shipping_amount": "10",
    })

    assert prices["discount"] == 20.0
    assert prices["total"] == 130.0
    assert prices["shipping"] == 10.0


def test_clean_empty_drops_empty_values_one_level_deep():
    cleaned = clean_empty({
        "email": "a@b.com",
        "document": "",
        "gender": None,
        "tags": "0",
        "address": {"city": "", "country": "AR"},
        "empty": {},
    })

    assert cleaned == {"email": "a@b.com", "address": {"country": "AR"}}


class TestMedia:

    def test_label_match_wins(self):
        media = [
            {"url": "a.jpg", "label": "front", "position": "1"},
            {"url": "b.jpg", "label": "back", "position": "2"},
        ]
        assert pick_media_url(media, "back") == "b.jpg"

    def test_lowest_position_without_label_match(self):
        media = [
            {"url": "b.jpg", "label": "back", "position": "2"},
            {"url": "a.jpg", "label": "front", "position": "1"},
        ]
        assert pick_media_url(media, "missing") == "a.jpg"

    def test_empty_gallery(self):
        assert pick_media_url([]) is None


class TestCategories:

    @pytest.fixture
    def tree(self):
        # A -> [B, C -> [D]]
        return [{
            "id": "A",
            "name": "ropa",
            "url_path": "https://shop.example.com/ropa",
            "children": [
                {"id": "B", "name": "remeras", "children": []},
                {"id": "C", "name": "pantalones", "children": [{"id": "D", "name": "jeans", "children": []}]},
            ],
        }]

    def test_flatten_records_ancestor_paths(self, tree):
        flat = flatten_category_tree(tree)

        assert flat["A"]["path"] == []
        assert flat["B"]["path"] == ["A"]
        assert flat["C"]["path"] == ["A"]
        assert flat["D"]["path"] == ["A", "C"]
        assert flat["A"]["name"] == "Ropa"

    def test_breadcrumb_for_last_category(self, tree):
        index = CategoryIndex.from_tree(tree)

        crumbs = index.breadcrumb(["B", "D"])

        assert [c["id"] for c in crumbs] == ["A", "C", "D"]
        assert all("path" not in c for c in crumbs)

    def test_breadcrumb_unknown_category(self, tree):
        index = CategoryIndex.from_tree(tree)

        assert index.breadcrumb(["Z"]) == []
        assert index.breadcrumb([]) == []

    def test_breadcrumb_stops_at_missing_ancestor(self):
        index = CategoryIndex({
            "D": {"id": "D", "name": "Jeans", "url": "", "image_url": "", "path": ["A", "C"]},
            "C": {"id": "C", "name": "Pantalones", "url": "", "image_url": "", "path": ["A"]},
        })

        assert [c["id"] for c in index.breadcrumb(["D"])] == ["C", "D"]

    def test_index_keys_are_strings(self):
        index = CategoryIndex({3: {"id": 3, "path": []}})

        assert 3 in index
        assert "3" in index
        assert len(index) == 1
