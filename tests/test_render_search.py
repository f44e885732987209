from datetime import date

import pytest

from certradar.colors import set_color_enabled, style
from certradar.models import Certificate, SearchResult
from certradar.render_search import format_search_results, is_date_expired


@pytest.fixture(autouse=True)
def _no_colour():
    set_color_enabled(False)
    yield
    set_color_enabled(None)


def _cert(crtsh_id, cn="example.com", issuer="Test Issuer", not_after="2099-01-01"):
    return Certificate(
        crtsh_id=crtsh_id,
        common_name=cn,
        name_value=cn,
        issuer_name=issuer,
        not_before="2024-01-01",
        not_after=not_after,
        serial_number="123456",
    )


def _result(certs):
    return SearchResult(certificates=certs, total=len(certs), source="crt.sh")


def _table_lines(text):
    return [line for line in text.splitlines() if line[:1] in "┌╞├└│"]


def test_is_date_expired_formats():
    today = date(2024, 6, 1)
    assert is_date_expired("2024-01-15T00:00:00", today)
    assert is_date_expired("2024-01-15", today)
    assert not is_date_expired("2025-01-01", today)
    assert not is_date_expired("2024-06-01", today)
    assert not is_date_expired("not a date", today)


def test_empty_results():
    out = format_search_results(_result([]), None)
    assert "Certificate Transparency Search Results" in out
    assert "Found 0 certificates (Source: crt.sh)" in out
    assert out.endswith("  No certificates found.\n")


def test_table_rows_and_alignment():
    certs = [_cert(1), _cert(22, cn="sub.example.com"), _cert(333)]
    out = format_search_results(_result(certs), None)
    lines = _table_lines(out)
    assert len({len(line) for line in lines}) == 1
    data_rows = [line for line in lines if line.startswith("│")]
    assert len(data_rows) == 4  # header and three certificates
    assert "Common Name" in data_rows[0]
    assert "sub.example.com" in out
    assert "Showing" not in out


def test_limit_note():
    certs = [_cert(i) for i in range(1, 4)]
    out = format_search_results(_result(certs), 2)
    data_rows = [line for line in _table_lines(out) if line.startswith("│")]
    assert len(data_rows) == 3
    assert "Showing 2 of 3 certificates. Use --limit to see more." in out


def test_limit_not_exceeded_has_no_note():
    out = format_search_results(_result([_cert(1)]), 5)
    assert "Showing" not in out


def test_long_values_truncated():
    long_cn = "a" * 50 + ".example.com"
    long_issuer = "b" * 40
    out = format_search_results(_result([_cert(1, cn=long_cn, issuer=long_issuer)]), None)
    assert long_cn[:37] + "..." in out
    assert long_cn not in out
    assert long_issuer[:27] + "..." in out


def test_not_after_coloured_by_expiry():
    set_color_enabled(True)
    out = format_search_results(
        _result([_cert(1, not_after="2000-01-01"), _cert(2, not_after="2999-01-01")]), None
    )
    assert style("2000-01-01", "red") in out
    assert style("2999-01-01", "green") in out