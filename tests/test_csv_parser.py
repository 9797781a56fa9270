"""Tests for the row scanner, field parser and row formatter."""

import io

import pytest

from bulkcopy.csv_parser import RowScanner, extract_field, format_row, parse_line


def scan(text: str, chunk_size: int = 64 * 1024) -> list[str]:
    return list(RowScanner(io.StringIO(text), chunk_size=chunk_size))


class TestRowScanner:
    def test_simple_rows(self):
        scanner = RowScanner(io.StringIO("field1,field2,field3\nnextrow"))
        assert scanner.read_row() == "field1,field2,field3"
        assert scanner.read_row() == "nextrow"
        assert scanner.read_row() is None

    def test_newline_inside_quotes_stays_in_row(self):
        rows = scan('field1,"field2\nwith newline",field3\nnextrow')
        assert rows == ['field1,"field2\nwith newline",field3', "nextrow"]

    @pytest.mark.parametrize("newline", ["\n", "\r\n", "\r"])
    def test_line_terminators(self, newline):
        text = newline.join(["Name,Age", "John,30", "Jane,25"]) + newline
        assert scan(text) == ["Name,Age", "John,30", "Jane,25"]

    def test_quotes_are_kept(self):
        assert scan('a,"b ""c"""\n') == ['a,"b ""c"""']

    def test_empty_stream_yields_nothing(self):
        scanner = RowScanner(io.StringIO(""))
        assert scanner.read_row() is None
        assert scanner.read_row() is None

    def test_blank_line_is_an_empty_row(self):
        assert scan("a\n\nb\n") == ["a", "", "b"]

    def test_final_row_without_newline(self):
        assert scan("a,b\n1,2") == ["a,b", "1,2"]

    def test_crlf_split_across_chunks(self):
        # chunk boundary falls between \r and \n
        assert scan("ab\r\ncd\r\n", chunk_size=3) == ["ab", "cd"]

    def test_quoted_region_across_chunks(self):
        text = 'id,"multi\nline, with comma"\n2,plain\n'
        assert scan(text, chunk_size=4) == ['id,"multi\nline, with comma"', "2,plain"]

    def test_stray_quote_opens_quoted_region(self):
        # A quote in the middle of a field still toggles quoting, so the
        # following newline belongs to the row.
        assert scan('a,b"c\nd"e\nf') == ['a,b"c\nd"e', "f"]

    def test_invalid_chunk_size(self):
        with pytest.raises(ValueError):
            RowScanner(io.StringIO(""), chunk_size=0)


class TestExtractField:
    def test_simple_field_unmodified(self):
        line = "Simple field"
        assert extract_field(line, 0, len(line)) == "Simple field"

    def test_quoted_field_removes_quotes(self):
        line = '"Quoted field"'
        assert extract_field(line, 0, len(line)) == "Quoted field"

    def test_escaped_quotes_unescaped(self):
        line = '"Field with ""escaped"" quotes"'
        assert extract_field(line, 0, len(line)) == 'Field with "escaped" quotes'

    def test_whitespace_trimmed(self):
        line = "   padded  "
        assert extract_field(line, 0, len(line)) == "padded"

    def test_whitespace_inside_quotes_kept(self):
        line = '  " padded "  '
        assert extract_field(line, 0, len(line)) == " padded "

    def test_lone_quote_is_not_a_quoted_field(self):
        assert extract_field('"', 0, 1) == '"'


class TestParseLine:
    def test_simple_fields(self):
        assert parse_line("John Doe,30,john@example.com") == ["John Doe", "30", "john@example.com"]

    def test_quoted_field_with_comma(self):
        fields = parse_line('Product A,"Description with, comma",10.99')
        assert fields == ["Product A", "Description with, comma", "10.99"]

    def test_quoted_field_with_escaped_quotes(self):
        fields = parse_line('1,"Smith, John","Said ""hi"""')
        assert fields == ["1", "Smith, John", 'Said "hi"']

    def test_empty_fields(self):
        assert parse_line(",,") == ["", "", ""]

    def test_default_null_sentinel(self):
        assert parse_line("a,␀,c") == ["a", None, "c"]

    def test_quoted_null_sentinel_is_data(self):
        assert parse_line('a,"␀",c') == ["a", "␀", "c"]

    def test_custom_null_sentinel(self):
        assert parse_line("a,NULL,null", null_value="NULL") == ["a", None, "null"]

    def test_empty_string_null_sentinel(self):
        assert parse_line('a,,""', null_value="") == ["a", None, ""]

    def test_no_null_sentinel(self):
        assert parse_line("a,␀", null_value=None) == ["a", "␀"]

    def test_values_stay_strings(self):
        assert parse_line("1,2.5,2024-01-01") == ["1", "2.5", "2024-01-01"]


class TestFormatRow:
    def test_plain_values(self):
        assert format_row(["a", "b", "1"]) == "a,b,1"

    def test_quotes_values_needing_it(self):
        row = format_row(["Smith, John", 'Said "hi"', "two\nlines", "cr\rhere"])
        assert row == '"Smith, John","Said ""hi""","two\nlines","cr\rhere"'

    def test_none_written_as_sentinel(self):
        assert format_row(["a", None]) == "a,␀"

    def test_sentinel_text_is_quoted(self):
        assert format_row(["␀"]) == '"␀"'

    def test_none_without_sentinel(self):
        assert format_row(["a", None], null_value=None) == "a,"

    @pytest.mark.parametrize(
        "record",
        [
            ["Smith, John", 'Said "hi"', "multi\nline", None, ""],
            ["  leading", "trailing  ", "␀", '"', ",\r\n"],
        ],
    )
    def test_parse_reads_back_formatted_row(self, record):
        [line] = scan(format_row(record) + "\n")
        assert parse_line(line) == record

    def test_round_trip_with_empty_sentinel(self):
        record = ["", None, "x"]
        assert parse_line(format_row(record, ""), "") == record
