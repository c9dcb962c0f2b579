"""
Unit tests for curve tenors, quote parsing and rate resets.
"""

from datetime import date, timedelta
import logging
import math
import pandas as pd
import pytest

from curvecal.curves import (
    CurveTenorCollection,
    Deposit,
    FRA,
    InstrumentType,
    RateResets,
    Swap,
    create_flat_curve,
    create_tenor,
    is_basis_tenor,
    is_credit_tenor,
    is_rate_tenor,
    parse_quote,
    tenors_from_quotes,
)
from curvecal.errors import DuplicateTenorError, MissingFixingError, QuoteFormatError


AS_OF = date(2024, 1, 15)


class TestParseQuote:
    """Tests for quote text parsing."""

    def test_numbers(self):
        assert parse_quote(0.0525) == 0.0525
        assert parse_quote(1) == 1.0
        assert parse_quote("0.0525") == 0.0525

    def test_units(self):
        assert parse_quote("5.25%") == pytest.approx(0.0525)
        assert parse_quote("25bp") == pytest.approx(0.0025)
        assert parse_quote(" 125 bps ") == pytest.approx(0.0125)

    def test_invalid(self):
        with pytest.raises(QuoteFormatError):
            parse_quote("abc", "5Y")
        with pytest.raises(QuoteFormatError):
            parse_quote(True)
        with pytest.raises(QuoteFormatError):
            parse_quote(None)


class TestInstrumentType:
    """Tests for family parsing and classification."""

    def test_aliases(self):
        assert InstrumentType.from_string("MM") == InstrumentType.DEPOSIT
        assert InstrumentType.from_string("ois") == InstrumentType.SWAP
        assert InstrumentType.from_string("Swap Leg") == InstrumentType.SWAP_LEG
        with pytest.raises(ValueError):
            InstrumentType.from_string("SWAPTION")

    def test_classification(self):
        swap = create_tenor(AS_OF, "SWAP", "5Y", 0.04)
        basis = create_tenor(AS_OF, "SWAP", "5Y", 0.001, basis=True)
        cds = create_tenor(AS_OF, "CDS", "5Y", 0.01)
        assert is_rate_tenor(swap) and not is_basis_tenor(swap)
        assert is_basis_tenor(basis) and not is_rate_tenor(basis)
        assert is_credit_tenor(cds) and not is_rate_tenor(cds)


class TestCreateTenor:
    """Tests for single tenor construction."""

    def test_forward_start_name_and_dates(self):
        tenor = create_tenor(AS_OF, "FRA", "3M", 0.05, start_tenor="3M")
        assert tenor.name == "3Mx3M"
        assert isinstance(tenor.product, FRA)
        assert tenor.product.start == date(2024, 4, 15)
        assert tenor.maturity == date(2024, 7, 15)
        assert tenor.curve_date == tenor.maturity

    def test_forward_tenor_string(self):
        tenor = create_tenor(AS_OF, "FRA", "3Mx3M", 0.05)
        same = create_tenor(AS_OF, "FRA", "3M", 0.05, start_tenor="3M")
        assert tenor.name == "3Mx3M"
        assert tenor.product.start == same.product.start
        assert tenor.maturity == same.maturity

    def test_explicit_dates_and_terms(self):
        tenor = create_tenor(AS_OF, "SWAP", "2Y", 0.045, name="SW2",
                             maturity="2026-01-20", fixed_frequency=2, day_count="ACT/365")
        assert tenor.name == "SW2"
        assert isinstance(tenor.product, Swap)
        assert tenor.maturity == date(2026, 1, 20)
        assert tenor.product.fixed_frequency == 2
        assert tenor.original_quote == 0.045

    def test_rejects_maturity_before_start(self):
        with pytest.raises(ValueError):
            create_tenor(AS_OF, "DEPOSIT", "3M", 0.05, maturity=date(2023, 1, 1))


class TestCurveTenorCollection:
    """Tests for the per-curve tenor collection."""

    @pytest.fixture
    def collection(self):
        return CurveTenorCollection([
            create_tenor(AS_OF, "SWAP", "5Y", 0.045),
            create_tenor(AS_OF, "DEPOSIT", "3M", 0.053),
            create_tenor(AS_OF, "SWAP", "2Y", 0.048),
        ], curve_name="USD")

    def test_sorted_by_maturity(self, collection):
        assert collection.names() == ["3M", "2Y", "5Y"]
        assert collection.index("2Y") == 1
        assert collection[0].name == "3M"
        assert collection["5Y"].current_quote == 0.045
        assert "2Y" in collection and "10Y" not in collection

    def test_duplicate_name(self, collection):
        with pytest.raises(DuplicateTenorError):
            collection.add(create_tenor(AS_OF, "DEPOSIT", "2Y", 0.05))

    def test_after(self, collection):
        assert collection.after(date(2025, 1, 1)).name == "2Y"
        assert collection.after(date(2040, 1, 1)) is None

    def test_quotes_round_trip(self, collection):
        quotes = collection.quotes()
        collection["2Y"].bump_quote(10.0)
        assert collection.quotes() != quotes
        collection.restore_quotes(quotes)
        assert collection.quotes() == quotes
        with pytest.raises(ValueError):
            collection.restore_quotes(quotes[:1])

    def test_clone_is_independent(self, collection):
        clone = collection.clone()
        clone["5Y"].current_quote = 0.06
        assert collection["5Y"].current_quote == 0.045

    def test_remove(self, collection):
        removed = collection.remove("2Y")
        assert removed.name == "2Y"
        assert len(collection) == 2


class TestTenorsFromQuotes:
    """Tests for building tenors from quote rows."""

    def test_dict_rows(self):
        tenors = tenors_from_quotes(AS_OF, [
            {"instrument_type": "DEPOSIT", "tenor": "3M", "quote": "5.30%"},
            {"instrument_type": "FRA", "start_tenor": "3M", "tenor": "3M", "quote": 0.0531},
            {"instrument_type": "SWAP", "tenor": "5Y", "quote": 0.0455},
        ], curve_name="USD")
        assert tenors.names() == ["3M", "3Mx3M", "5Y"]
        assert isinstance(tenors["3M"].product, Deposit)
        assert tenors["3M"].current_quote == pytest.approx(0.053)

    def test_dataframe_drops_missing_quotes(self, caplog):
        df = pd.DataFrame([
            {"instrument_type": "DEPOSIT", "tenor": "6M", "quote": 0.052, "start_tenor": None},
            {"instrument_type": "SWAP", "tenor": "2Y", "quote": math.nan, "start_tenor": None},
            {"instrument_type": "FRA", "tenor": "3M", "quote": 0.051, "start_tenor": "6M"},
        ])
        with caplog.at_level(logging.WARNING, logger="curvecal.curves.tenor_factory"):
            tenors = tenors_from_quotes(AS_OF, df, curve_name="USD")

        assert tenors.names() == ["6M", "6Mx3M"]
        assert any("2Y" in record.getMessage() for record in caplog.records)

    def test_bad_quote_raises(self):
        with pytest.raises(QuoteFormatError):
            tenors_from_quotes(AS_OF, [{"instrument_type": "SWAP", "tenor": "2Y", "quote": "n/a"}])

    def test_duplicates_raise(self):
        rows = [{"instrument_type": "SWAP", "tenor": "2Y", "quote": 0.04}] * 2
        with pytest.raises(DuplicateTenorError):
            tenors_from_quotes(AS_OF, rows)


class TestRateResets:
    """Tests for fixings and projected resets."""

    @pytest.fixture
    def resets(self):
        return RateResets("SOFR", {date(2024, 1, 10): 0.0531})

    def test_stored_fixing(self, resets):
        assert resets.fixing(date(2024, 1, 10)) == 0.0531
        assert date(2024, 1, 10) in resets
        assert len(resets) == 1

    def test_missing_past_fixing(self, resets):
        with pytest.raises(MissingFixingError):
            resets.fixing(date(2024, 1, 11))
        with pytest.raises(LookupError):
            resets.fixing(date(2023, 12, 1), create_flat_curve(AS_OF, 0.05), date(2024, 3, 1))

    def test_projected_fixing(self, resets):
        curve = create_flat_curve(AS_OF, 0.05)
        start = AS_OF + timedelta(days=91)
        end = start + timedelta(days=90)
        expected = (math.exp(0.05 * 90 / 365) - 1.0) / (90 / 360)
        assert resets.fixing(start, curve, end) == pytest.approx(expected, rel=1e-10)

    def test_add_and_iterate(self, resets):
        resets.add(date(2024, 1, 9), 0.053)
        assert [d for d, _ in resets] == [date(2024, 1, 9), date(2024, 1, 10)]
