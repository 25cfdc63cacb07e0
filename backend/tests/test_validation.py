import pytest

from boekkhuen.validation import (
    LineItemInput,
    ValidationError,
    parse_int,
    parse_line_items,
    parse_notes,
    parse_payment,
    parse_sale_query,
    parse_sale_type,
)


class TestParseInt:
    def test_accepts_ints_and_digit_strings(self):
        assert parse_int(5, "q") == 5
        assert parse_int(" 12 ", "q") == 12

    def test_missing_uses_default(self):
        assert parse_int(None, "q", default=0) == 0

    def test_missing_without_default_is_rejected(self):
        with pytest.raises(ValidationError, match="q is required"):
            parse_int(None, "q")

    @pytest.mark.parametrize("value", [1.0, "1.5", "1e3", "abc", "", True, [1]])
    def test_rejects_anything_that_is_not_a_plain_integer(self, value):
        with pytest.raises(ValidationError):
            parse_int(value, "q")

    def test_rejects_negative_instead_of_clamping(self):
        with pytest.raises(ValidationError, match=">= 0"):
            parse_int(-3, "withdrawal")


class TestParseLineItems:
    def test_defaults_absent_quantities_to_zero(self):
        items = parse_line_items([{"product_id": 7, "withdrawal": 3}])
        assert items == [LineItemInput(product_id=7, withdrawal=3, return_qty=0, defective=0)]

    def test_reads_return_key(self):
        [item] = parse_line_items([{"product_id": 7, "withdrawal": 10, "return": 2, "defective": 1}])
        assert item.return_qty == 2
        assert item.net_quantity == 7
        assert item.stock_delta == -8

    @pytest.mark.parametrize("raw", [None, [], {}, "items"])
    def test_requires_non_empty_list(self, raw):
        with pytest.raises(ValidationError, match="Sale items are required"):
            parse_line_items(raw)

    def test_requires_product_reference(self):
        with pytest.raises(ValidationError, match=r"items\[0\].product_id"):
            parse_line_items([{"withdrawal": 1}])

    def test_negative_quantity_names_the_field(self):
        with pytest.raises(ValidationError, match=r"items\[1\].return"):
            parse_line_items([{"product_id": 1, "withdrawal": 1}, {"product_id": 2, "return": -1}])

    def test_string_quantity_with_decimals_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_line_items([{"product_id": 1, "withdrawal": "2.5"}])


def test_sale_type_accepts_codes_and_thai_labels():
    assert parse_sale_type("withdrawal") == "WITHDRAWAL"
    assert parse_sale_type("เบิก") == "WITHDRAWAL"
    assert parse_sale_type("คืน") == "RETURN"
    with pytest.raises(ValidationError):
        parse_sale_type("refund")
    with pytest.raises(ValidationError):
        parse_sale_type(None)


class TestParsePayment:
    def test_defaults(self):
        payment = parse_payment({})
        assert payment.cash_amount_cents == 0
        assert payment.paid_amount_cents is None
        assert payment.settled is True
        assert payment.payment_method is None

    def test_full_breakdown(self):
        payment = parse_payment({
            "cash_amount_cents": 10000,
            "transfer_amount_cents": 5000,
            "customer_pending_cents": 2000,
            "expense_amount_cents": 300,
            "awaiting_transfer_cents": 700,
            "paid_amount_cents": 16000,
            "payment_method": "transfer",
            "settled": False,
        })
        assert payment.transfer_amount_cents == 5000
        assert payment.paid_amount_cents == 16000
        assert payment.payment_method == "TRANSFER"
        assert payment.settled is False

    def test_rejects_negative_amounts(self):
        with pytest.raises(ValidationError):
            parse_payment({"cash_amount_cents": -1})

    def test_rejects_unknown_method(self):
        with pytest.raises(ValidationError):
            parse_payment({"payment_method": "cheque"})

    def test_rejects_non_boolean_settled(self):
        with pytest.raises(ValidationError):
            parse_payment({"settled": "yes"})

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError) as exc:
            parse_payment({"cash_amount": 25000})
        assert "cash_amount" in exc.value.message


class TestParseNotes:
    def test_none_means_untouched(self):
        assert parse_notes(None) is None

    def test_strips_text(self):
        assert parse_notes("  paid at gate  ") == "paid at gate"
        assert parse_notes("   ") == ""

    @pytest.mark.parametrize("value", [5, 1.5, True, ["x"], {"a": 1}])
    def test_rejects_non_strings(self, value):
        with pytest.raises(ValidationError):
            parse_notes(value)

    def test_rejects_overlong_text(self):
        with pytest.raises(ValidationError):
            parse_notes("x" * 1001)


class TestParseSaleQuery:
    def test_defaults(self):
        query = parse_sale_query({}, default_per_page=20)
        assert query.page == 1
        assert query.per_page == 20
        assert query.settled is None

    def test_all_filters(self):
        query = parse_sale_query({
            "employee_id": "3",
            "type": "withdrawal",
            "settled": "false",
            "date_from": "2026-01-01",
            "date_to": "2026-01-31T23:59:59Z",
            "page": "2",
            "per_page": "5",
        })
        assert query.employee_id == 3
        assert query.sale_type == "WITHDRAWAL"
        assert query.settled is False
        assert query.date_from.day == 1
        assert query.page == 2
        assert query.per_page == 5

    def test_unknown_filter_is_rejected(self):
        with pytest.raises(ValidationError, match="Unknown filter: status"):
            parse_sale_query({"status": "open"})

    def test_per_page_is_capped(self):
        with pytest.raises(ValidationError):
            parse_sale_query({"per_page": "500"}, max_per_page=100)

    def test_inverted_date_range(self):
        with pytest.raises(ValidationError):
            parse_sale_query({"date_from": "2026-02-01", "date_to": "2026-01-01"})
