"""
Unit tests for the shared building blocks: pagination, sort resolution,
validation helpers, the stale-version retry and the in-memory unit of work.
"""

from decimal import Decimal

import pytest

from src.core.offers.ports import OFFER_SORT_FIELDS
from src.core.shared.concurrency import retry_on_stale_version
from src.core.shared.exceptions import ConflictError, ValidationError
from src.core.shared.memory import InMemoryStore, InMemoryUnitOfWork
from src.core.shared.pagination import PageRequest, PagedResult, resolve_sort
from src.core.shared.validation import require_vin, to_decimal, to_money


class _Row:
    def __init__(self, name):
        self.id = None
        self.name = name


class TestPagination:
    def test_skip_and_take(self):
        page = PageRequest(page_number=3, page_size=10)

        assert page.skip == 20
        assert page.take == 10

    @pytest.mark.parametrize("page_number", [0, -1])
    def test_page_number_must_be_positive(self, page_number):
        with pytest.raises(ValidationError) as exc_info:
            PageRequest(page_number=page_number, page_size=10)

        assert exc_info.value.field == "page_number"

    @pytest.mark.parametrize("page_size", [0, 101])
    def test_page_size_is_bounded(self, page_size):
        with pytest.raises(ValidationError) as exc_info:
            PageRequest(page_number=1, page_size=page_size)

        assert exc_info.value.field == "page_size"

    def test_paged_result_navigation(self):
        result = PagedResult(items=[1, 2], total_count=5, page_number=2, page_size=2)

        assert result.total_pages == 3
        assert result.has_next
        assert result.has_previous

    def test_map_keeps_page_metadata(self):
        result = PagedResult(items=[1, 2], total_count=5, page_number=1, page_size=2)

        mapped = result.map(lambda item: item * 10)

        assert mapped.items == [10, 20]
        assert mapped.total_count == 5
        assert not mapped.has_previous


class TestSortResolution:
    def test_known_key_is_matched_loosely(self):
        assert resolve_sort("Discount_Percentage", OFFER_SORT_FIELDS, False) == (
            "discount_percentage",
            False,
        )

    def test_unknown_key_falls_back_to_newest_first(self):
        assert resolve_sort("color", OFFER_SORT_FIELDS, False) == ("created_at", True)

    def test_missing_key_falls_back_to_newest_first(self):
        assert resolve_sort(None, OFFER_SORT_FIELDS, False) == ("created_at", True)


class TestValidation:
    def test_vin_of_sixteen_characters_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            require_vin("1HGCM82633A00435")

        assert exc_info.value.field == "vin_number"

    @pytest.mark.parametrize("vin", ["1HGCM82633A00435!", "1HGCM82633A00435I", "1HGCM 2633A004352"])
    def test_vin_charset_is_enforced(self, vin):
        with pytest.raises(ValidationError) as exc_info:
            require_vin(vin)

        assert exc_info.value.field == "vin_number"

    def test_lowercase_vin_is_upper_cased(self):
        assert require_vin("1hgcm82633a004352") == "1HGCM82633A004352"

    def test_float_goes_through_str(self):
        assert to_decimal(0.1, "price") == Decimal("0.1")

    @pytest.mark.parametrize("value", [None, True, "abc", "NaN"])
    def test_non_numbers_are_rejected(self, value):
        with pytest.raises(ValidationError):
            to_decimal(value, "price")

    @pytest.mark.parametrize("value", ["19.99", "20", "20.500", Decimal("1E+3")])
    def test_money_with_cents(self, value):
        assert to_money(value, "price") == Decimal(str(value))

    def test_money_below_a_cent_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            to_money("22000.125", "discounted_price")

        assert exc_info.value.field == "discounted_price"


class TestRetryOnStaleVersion:
    def test_stale_version_is_retried_once(self):
        calls = []

        def operation():
            calls.append(1)
            if len(calls) == 1:
                raise ConflictError("lost race", reason=ConflictError.STALE_VERSION)
            return "done"

        assert retry_on_stale_version(operation) == "done"
        assert len(calls) == 2

    def test_gives_up_after_the_last_attempt(self):
        calls = []

        def operation():
            calls.append(1)
            raise ConflictError("lost race", reason=ConflictError.STALE_VERSION)

        with pytest.raises(ConflictError):
            retry_on_stale_version(operation)
        assert len(calls) == 2

    def test_duplicates_are_not_retried(self):
        calls = []

        def operation():
            calls.append(1)
            raise ConflictError("duplicate", reason="duplicate_application")

        with pytest.raises(ConflictError):
            retry_on_stale_version(operation)
        assert len(calls) == 1


class TestInMemoryUnitOfWork:
    def test_rollback_restores_registered_stores(self):
        store = InMemoryStore()
        uow = InMemoryUnitOfWork(repositories=[store])

        with uow:
            store._insert(_Row("kept"))

        with pytest.raises(RuntimeError):
            with uow:
                store._insert(_Row("dropped"))
                raise RuntimeError("boom")

        assert len(store) == 1
        assert uow.rolled_back
        assert uow.commit_count == 1

    def test_stored_rows_are_copies(self):
        store = InMemoryStore()
        row = store._insert(_Row("original"))

        row.name = "changed outside"

        assert store._load(row.id).name == "original"
