"""Tests for the per-job handler."""

from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from src.documents.processor import ExtractionOutcome
from src.extraction.fields import ExtractionMethod, InvoiceFields
from src.integrations.monday import RemoteFile
from src.jobs.handler import JobHandler
from src.jobs.queue import Job


@pytest.fixture
def downloaded(tmp_path: Path) -> Path:
    path = tmp_path / "abc-invoice.pdf"
    path.write_bytes(b"%PDF-1.4")
    return path


def _handler(source: MagicMock, processor: MagicMock, tmp_path: Path) -> tuple[JobHandler, MagicMock]:
    sink = MagicMock()
    return JobHandler(source, sink, processor, upload_dir=tmp_path), sink


class TestJobHandler:
    """Tests for JobHandler.__call__."""

    def test_no_files_is_a_noop(self, tmp_path: Path) -> None:
        source = MagicMock()
        source.fetch_files.return_value = []
        processor = MagicMock()
        handler, sink = _handler(source, processor, tmp_path)

        handler(Job("item-1", "board-1"))

        source.fetch_files.assert_called_once_with("item-1")
        source.download.assert_not_called()
        processor.extract.assert_not_called()
        sink.apply_fields.assert_not_called()

    def test_first_file_processed_and_applied(self, tmp_path: Path, downloaded: Path) -> None:
        files = [RemoteFile("invoice.pdf", "https://x/1"), RemoteFile("other.pdf", "https://x/2")]
        source = MagicMock()
        source.fetch_files.return_value = files
        source.download.return_value = downloaded
        fields = InvoiceFields(
            total_value=Decimal("55.20"),
            extraction_method=ExtractionMethod.STRUCTURED_CODE,
        )
        processor = MagicMock()
        processor.extract.return_value = ExtractionOutcome(fields=fields)
        handler, sink = _handler(source, processor, tmp_path)

        handler(Job("item-1", "board-1"))

        source.download.assert_called_once_with(files[0], tmp_path)
        processor.extract.assert_called_once_with(downloaded, "invoice.pdf")
        sink.apply_fields.assert_called_once_with("board-1", "item-1", fields)
        assert not downloaded.exists()

    def test_no_code_still_updates_sink(self, tmp_path: Path, downloaded: Path) -> None:
        source = MagicMock()
        source.fetch_files.return_value = [RemoteFile("scan.png", 99)]
        source.download.return_value = downloaded
        processor = MagicMock()
        processor.extract.return_value = ExtractionOutcome(fields=InvoiceFields())
        handler, sink = _handler(source, processor, tmp_path)

        handler(Job("item-2", "board-1"))

        sink.apply_fields.assert_called_once()
        assert sink.apply_fields.call_args.args[2].is_empty

    def test_download_removed_when_extraction_fails(
        self, tmp_path: Path, downloaded: Path
    ) -> None:
        source = MagicMock()
        source.fetch_files.return_value = [RemoteFile("invoice.pdf", "https://x/1")]
        source.download.return_value = downloaded
        processor = MagicMock()
        processor.extract.side_effect = RuntimeError("decoder blew up")
        handler, sink = _handler(source, processor, tmp_path)

        with pytest.raises(RuntimeError):
            handler(Job("item-3", "board-1"))

        assert not downloaded.exists()
        sink.apply_fields.assert_not_called()
