from budget_tracker.formatting import format_currency, format_day_weekday, format_month_label, format_percent


def test_format_currency():
    assert format_currency(1234.56) == '₱1,234.56'
    assert format_currency(-50) == '-₱50.00'
    assert format_currency(1234.5, include_sign=False) == '1,234.50'


def test_format_percent():
    assert format_percent(82.345) == '82.3%'
    assert format_percent(100, decimals=0) == '100%'


def test_format_day_weekday():
    assert format_day_weekday('2025-07-24') == '24-Thursday'
    assert format_day_weekday('2025-07-01') == '1-Tuesday'
    assert format_day_weekday('') == ''
    assert format_day_weekday('someday') == 'someday'


def test_format_month_label():
    assert format_month_label(None) == 'All months'
    assert format_month_label('2025-07') == 'July 2025'
