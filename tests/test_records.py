"""Tests for header-keyed record mapping."""

from modmap.records import parse_csv_as_records, records_frame, to_records


class TestToRecords:
    def test_empty_rows(self):
        assert to_records([]) == []

    def test_header_only(self):
        assert to_records([["Module", "Team"]]) == []

    def test_header_normalization(self):
        records = to_records([["Module", " Team "], ["mod-a", "T1"]])
        assert list(records[0].keys()) == ["module", "team"]

    def test_short_rows_padded_with_empty_strings(self):
        records = to_records([["module", "application", "team"], ["mod-a"]])
        assert records == [{"module": "mod-a", "application": "", "team": ""}]

    def test_extra_fields_ignored(self):
        records = to_records([["module"], ["mod-a", "surplus"]])
        assert records == [{"module": "mod-a"}]

    def test_all_empty_record_dropped(self):
        records = to_records([["module", "team"], ["", ""], ["mod-a", "T1"]])
        assert records == [{"module": "mod-a", "team": "T1"}]

    def test_order_preserved(self):
        rows = [["module"], ["c"], ["a"], ["b"]]
        assert [r["module"] for r in to_records(rows)] == ["c", "a", "b"]


class TestParseCsvAsRecords:
    def test_quoted_values(self):
        text = 'Module,Product Owner\nmod-a,"Smith, Anna"\n'
        assert parse_csv_as_records(text) == [{"module": "mod-a", "product owner": "Smith, Anna"}]

    def test_byte_order_mark_before_header(self):
        records = parse_csv_as_records("\ufeffModule,Application,Team\nmod-a,App,T1\n")
        assert records == [{"module": "mod-a", "application": "App", "team": "T1"}]

    def test_byte_order_mark_inside_header_row(self):
        records = to_records([["\ufeffModule", "Team"], ["mod-a", "T1"]])
        assert list(records[0]) == ["module", "team"]


class TestRecordsFrame:
    def test_empty_frame_has_core_columns(self):
        df = records_frame([])
        assert df.empty
        assert {"module", "application", "team"}.issubset(df.columns)

    def test_missing_columns_added(self):
        df = records_frame([{"module": "mod-a"}])
        assert df.loc[0, "team"] == ""
        assert df.loc[0, "module"] == "mod-a"
