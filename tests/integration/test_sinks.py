"""
Integration test: record sinks and Pipeline.save().
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest
from models import ConsistencyReport, ExtractionSample, ValidatedRecord
from repositories import (
    JsonlRecordSink,
    ROW_COLUMNS,
    RecordSink,
    SinkConfigError,
    configure_sink,
    record_to_row,
    get_sink,
)
from repositories import sheets_backend
from repositories.sheets_backend import SheetsRecordSink
from finder import Pipeline


def validated(name="Jane Doe", **fields):
    return ValidatedRecord(
        record=ExtractionSample(agent_name=name, email="jane@acmelit.com", **fields),
        confidence_score=80,
        passes_quality_gate=True,
    )


class TestJsonlSink:

    def test_append_and_read(self, records_path):
        sink = JsonlRecordSink(records_path)
        sink.append(validated(), datetime(2024, 1, 15, 12, 0))
        sink.append(validated("John Roe"), datetime(2024, 1, 15, 12, 5))

        rows = sink.read_all()
        assert [r["record"]["agent_name"] for r in rows] == ["Jane Doe", "John Roe"]
        assert rows[0]["processed_at"] == "2024-01-15T12:00:00"
        assert rows[0]["confidence_score"] == 80

    def test_corrupt_line_skipped(self, temp_dir):
        path = temp_dir / "agents.jsonl"
        sink = JsonlRecordSink(path)
        sink.append(validated(), datetime.now())
        with open(path, "a") as f:
            f.write("{truncated\n")
        assert len(sink.read_all()) == 1

    def test_missing_path(self):
        with pytest.raises(SinkConfigError):
            JsonlRecordSink(None)


class TestSheetsSink:

    def test_requires_sheet_id(self, temp_dir):
        with pytest.raises(SinkConfigError):
            SheetsRecordSink(None, str(temp_dir / "creds.json"))

    def test_requires_credentials_file(self, temp_dir):
        with pytest.raises(SinkConfigError):
            SheetsRecordSink("sheet-123", str(temp_dir / "missing.json"))

    @pytest.fixture
    def worksheet(self, monkeypatch):
        """Stub gspread so the sink talks to a MagicMock worksheet."""
        ws = MagicMock()
        client = MagicMock()
        client.open_by_key.return_value.worksheet.return_value = ws
        monkeypatch.setattr(sheets_backend.Credentials, "from_service_account_file",
                            lambda path, scopes: object())
        monkeypatch.setattr(sheets_backend.gspread, "authorize", lambda creds: client)
        return ws

    @pytest.fixture
    def sink(self, temp_dir):
        creds = temp_dir / "creds.json"
        creds.write_text("{}")
        return SheetsRecordSink("sheet-123", str(creds))

    def test_header_written_to_empty_tab(self, sink, worksheet):
        worksheet.row_values.return_value = []
        sink.append(validated(), datetime(2024, 1, 15, 12, 0))

        worksheet.update.assert_called_once_with(range_name="A1", values=[ROW_COLUMNS])
        row = worksheet.append_row.call_args.args[0]
        assert row[ROW_COLUMNS.index("agent_name")] == "Jane Doe"

    def test_matching_header_left_alone(self, sink, worksheet):
        worksheet.row_values.return_value = list(ROW_COLUMNS)
        sink.append(validated(), datetime(2024, 1, 15, 12, 0))

        worksheet.update.assert_not_called()
        worksheet.append_row.assert_called_once()

    def test_foreign_header_not_overwritten(self, sink, worksheet):
        worksheet.row_values.return_value = ["Name", "Phone", "Notes"]
        with pytest.raises(SinkConfigError):
            sink.append(validated(), datetime(2024, 1, 15, 12, 0))

        worksheet.update.assert_not_called()
        worksheet.append_row.assert_not_called()


class TestSinkFactory:

    def setup_method(self):
        configure_sink()

    def teardown_method(self):
        configure_sink()

    def test_jsonl_default(self, settings):
        sink = get_sink(settings)
        assert isinstance(sink, JsonlRecordSink)
        assert get_sink(settings) is sink

    def test_unknown_sink(self, settings):
        settings.sink = "postgres"
        with pytest.raises(SinkConfigError):
            get_sink(settings)

    def test_sheets_misconfigured(self, settings):
        settings.sink = "sheets"
        with pytest.raises(SinkConfigError):
            get_sink(settings)


class FlakySink(RecordSink):
    """Fails for one agent name."""

    def __init__(self, bad_name):
        self.bad_name = bad_name
        self.saved = []

    def append(self, record, processed_at):
        if record.record.agent_name == self.bad_name:
            raise IOError("quota exceeded")
        self.saved.append(record)


class TestPipelineSave:

    def make(self, settings, sink, make_oracle, make_embedder, make_fetcher):
        return Pipeline(settings, oracle=make_oracle(), embedder=make_embedder(),
                        fetcher=make_fetcher(), sink=sink)

    def test_one_failure_does_not_block_others(self, settings, make_oracle, make_embedder, make_fetcher):
        sink = FlakySink("John Roe")
        pipeline = self.make(settings, sink, make_oracle, make_embedder, make_fetcher)

        summary = pipeline.save([validated(), validated("John Roe"), validated("Ann Lee")])

        assert summary.saved == 2
        assert summary.failed == 1
        assert "quota exceeded" in summary.errors[0]
        assert [r.record.agent_name for r in sink.saved] == ["Jane Doe", "Ann Lee"]

    def test_writes_jsonl(self, settings, make_oracle, make_embedder, make_fetcher):
        sink = JsonlRecordSink(settings.sink_path)
        pipeline = self.make(settings, sink, make_oracle, make_embedder, make_fetcher)
        summary = pipeline.save([validated()])
        assert summary.saved == 1
        assert sink.read_all()[0]["record"]["email"] == "jane@acmelit.com"

    def test_unconfigured_sink_raises(self, settings, make_oracle, make_embedder, make_fetcher):
        configure_sink()
        settings.sink = "sheets"
        pipeline = self.make(settings, None, make_oracle, make_embedder, make_fetcher)
        try:
            with pytest.raises(SinkConfigError):
                pipeline.save([validated()])
        finally:
            configure_sink()


class TestRowLayout:

    def test_header_and_row_align(self):
        record = validated(genres_fiction=["Thriller", "Romance"], country="Germany")
        record.consistency = ConsistencyReport(score=90, samples=2, needs_review=False)

        row = dict(zip(ROW_COLUMNS, record_to_row(record, datetime(2024, 1, 15, 12, 0))))

        assert row["processed_at"] == "2024-01-15T12:00:00"
        assert row["genres_fiction"] == "Thriller, Romance"
        assert row["consistency_score"] == 90
        assert row["needs_review"] is False
        assert row["is_open_to_submissions"] == ""
