import pytest
from travel_expense_mcp.errors import ErrorKind, InvalidDateRangeError, RateTableError
from travel_expense_mcp.models import PerDiemRate
from travel_expense_mcp.per_diem import PER_DIEM_RATES, PerDiemCalculator


@pytest.fixture
def calculator():
    return PerDiemCalculator()


def test_nyc_three_day_trip(calculator):
    result = calculator.calculate("2024-03-10", "2024-03-12", "NYC")

    assert result.location == "New York City"
    assert result.total_days == 3
    assert result.full_days == 1
    assert result.partial_days == 2
    assert result.total_amount == 230.00
    assert [(day.date, day.day_type, day.rate) for day in result.breakdown] == [
        ("2024-03-10", "first", 69.00),
        ("2024-03-11", "full", 92.00),
        ("2024-03-12", "last", 69.00),
    ]


def test_single_day_is_one_first_day(calculator):
    result = calculator.calculate("2024-03-10", "2024-03-10", "Boston")

    assert result.total_days == 1
    assert result.full_days == 0
    assert result.partial_days == 1
    assert result.breakdown[0].day_type == "first"
    assert result.total_amount == 18.00


def test_two_day_trip_has_no_full_days(calculator):
    result = calculator.calculate("2024-06-01", "2024-06-02", "London")

    assert [day.day_type for day in result.breakdown] == ["first", "last"]
    assert result.total_amount == 225.00


def test_crosses_month_boundary(calculator):
    result = calculator.calculate("2024-02-28", "2024-03-02", "Zurich")

    assert result.location == "Switzerland"
    assert [day.date for day in result.breakdown] == [
        "2024-02-28",
        "2024-02-29",
        "2024-03-01",
        "2024-03-02",
    ]
    assert result.total_amount == 112.50 * 2 + 150.00 * 2


def test_total_is_sum_of_breakdown(calculator):
    result = calculator.calculate("2024-01-01", "2024-01-10", "Denver")

    assert result.total_amount == round(sum(day.rate for day in result.breakdown), 2)
    assert result.full_days + result.partial_days == result.total_days


def test_end_before_start_rejected(calculator):
    with pytest.raises(InvalidDateRangeError) as excinfo:
        calculator.calculate("2024-03-12", "2024-03-10", "NYC")

    assert excinfo.value.kind is ErrorKind.INVALID_DATE_RANGE
    assert "End date must be after start date" in str(excinfo.value)


@pytest.mark.parametrize("bad", ["not-a-date", "2024-13-01", ""])
def test_unparseable_date_rejected(calculator, bad):
    with pytest.raises(InvalidDateRangeError):
        calculator.calculate(bad, "2024-03-10", "NYC")


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("NYC", "New York City"),
        ("new york city", "New York City"),
        ("Manhattan, NY", "New York City"),
        ("SF", "San Francisco"),
        ("Geneva", "Switzerland"),
        ("United Kingdom", "London"),
        ("TX", "All Other US"),
        ("Austin, United States", "All Other US"),
        ("Tokyo", "Rest of World"),
        ("", "Rest of World"),
    ],
)
def test_find_rate(calculator, query, expected):
    assert calculator.find_rate(query).location == expected


@pytest.mark.parametrize("query", ["Boston", "Zurich", "Tokyo", "TX"])
def test_find_rate_ignores_case_and_repeats(calculator, query):
    variants = [query, query.lower(), query.upper(), query.capitalize()]

    assert len({calculator.find_rate(variant) for variant in variants}) == 1
    assert calculator.find_rate(query) == calculator.find_rate(query)


def test_find_rate_nyc_case_variants(calculator):
    assert calculator.find_rate("NYC") == calculator.find_rate("nyc") == calculator.find_rate("Nyc")


def test_exact_match_wins_over_substring(calculator):
    assert calculator.find_rate("Other").location == "Rest of World"


def test_rates_lists_whole_table(calculator):
    rates = calculator.rates

    assert len(rates) == len(PER_DIEM_RATES)
    assert sum(1 for rate in rates if rate.is_default) == 2


def test_missing_default_is_rate_table_error():
    calculator = PerDiemCalculator(
        [PerDiemRate(location="Boston", country="US", full_day=18.0, partial_day=18.0)]
    )

    with pytest.raises(RateTableError):
        calculator.find_rate("Tokyo")
