"""
Integration tests for the parsing pipeline.

Runs the walker / worker pool / collector over real files on disk and checks
what ends up on the output sink and the diagnostic stream.
"""

import gzip
import io
import json
from collections import Counter
from pathlib import Path

import pytest

from elb_log_parser.config import Settings
from elb_log_parser.dialects import ALBParser, ALBRecord, ClassicLBParser
from elb_log_parser.exceptions import (
    EncodingError,
    GrammarMismatch,
    SourceReadError,
    ThreadFault,
)
from elb_log_parser.pipeline import (
    PipelineController,
    PipelineResult,
    iter_candidate_files,
    run_directory,
    run_stream,
)
from elb_log_parser.reporting import Reporter
from logtree import INVALID_LINE, alb_line, classic_line, write_gzip, write_plain

pytestmark = pytest.mark.integration


def make_controller(dialect: str = "alb", **overrides):
    """Controller with plain diagnostics captured in a StringIO."""
    settings = Settings(dialect=dialect, workers=4).with_overrides(**overrides)
    stderr = io.StringIO()
    reporter = Reporter(settings.skip_parse_errors, use_color=False, stream=stderr)
    return PipelineController(dialect, settings, reporter), stderr


def output_lines(output: io.BytesIO) -> list[str]:
    return output.getvalue().decode("utf-8").splitlines()


def expected_alb_json(items) -> list[str]:
    parser = ALBParser()
    return [parser.parse(alb_line(item)).to_json() for item in items]


# =============================================================================
# Walker
# =============================================================================


class TestCandidateFiles:
    """Tests for iter_candidate_files()."""

    def test_suffix_and_size_filtering(self, alb_tree: Path):
        names = sorted(item.path.name for item in iter_candidate_files(alb_tree, ".log.gz"))
        assert names == sorted(
            ["elb_a.log.gz", "elb_b.log.gz"] * 3 + ["no-lines.log.gz"]
        )

    def test_classic_suffix(self, alb_tree: Path):
        names = [item.path.name for item in iter_candidate_files(alb_tree, ".log")]
        assert names == ["classic.log"]

    def test_root_file(self, classic_tree: Path):
        root = classic_tree / "one.log"
        items = list(iter_candidate_files(root, ".log"))
        assert [item.path for item in items] == [root]
        assert items[0].size == root.stat().st_size

    def test_missing_root(self, tmp_path: Path):
        with pytest.raises(SourceReadError) as exc_info:
            list(iter_candidate_files(tmp_path / "missing", ".log"))
        assert "Failed to enumerate log directory" in str(exc_info.value)

    def test_symlinked_directories_not_followed(self, classic_tree: Path, tmp_path: Path):
        outside = tmp_path / "outside"
        write_plain(outside / "extra.log", [classic_line(99)])
        (classic_tree / "link").symlink_to(outside, target_is_directory=True)

        names = sorted(item.path.name for item in iter_candidate_files(classic_tree, ".log"))

        assert names == ["one.log", "three.log", "two.log"]


# =============================================================================
# Directory mode
# =============================================================================


class TestDirectoryMode:
    """Tests for PipelineController.run_directory()."""

    def test_all_records_emitted(self, alb_tree: Path):
        controller, stderr = make_controller()
        output = io.BytesIO()

        result = controller.run_directory(alb_tree, output)

        assert result.success
        assert result.files_processed == 7
        assert result.records_emitted == 300
        assert result.lines_skipped == 0
        assert Counter(output_lines(output)) == Counter(expected_alb_json(range(300)))
        assert stderr.getvalue() == ""

    def test_records_are_json_objects(self, alb_tree: Path):
        controller, _ = make_controller()
        output = io.BytesIO()

        controller.run_directory(alb_tree, output)

        for text in output_lines(output):
            record = json.loads(text)
            assert list(record) == list(ALBRecord.FIELDS)

    def test_runs_are_deterministic_as_multisets(self, alb_tree: Path):
        outputs = []
        for _ in range(2):
            controller, _ = make_controller()
            output = io.BytesIO()
            controller.run_directory(alb_tree, output)
            outputs.append(Counter(output_lines(output)))
        assert outputs[0] == outputs[1]

    def test_order_within_a_file_is_preserved(self, alb_tree: Path):
        controller, _ = make_controller()
        output = io.BytesIO()

        controller.run_directory(alb_tree, output)

        items_by_file: dict[int, list[int]] = {}
        for text in output_lines(output):
            item = int(json.loads(text)["url"].rsplit("/", 1)[1])
            items_by_file.setdefault(item // 50, []).append(item)
        assert len(items_by_file) == 6
        for items in items_by_file.values():
            assert items == sorted(items)

    def test_single_worker(self, alb_tree: Path):
        controller, _ = make_controller(workers=1)
        output = io.BytesIO()

        result = controller.run_directory(alb_tree, output)

        assert result.records_emitted == 300

    def test_bounded_output_queue(self, alb_tree: Path):
        controller, _ = make_controller(output_queue_size=1)
        output = io.BytesIO()

        result = controller.run_directory(alb_tree, output)

        assert result.records_emitted == 300
        assert len(output_lines(output)) == 300

    def test_classic_dialect(self, classic_tree: Path):
        controller, _ = make_controller("classic-lb")
        output = io.BytesIO()

        result = controller.run_directory(classic_tree, output)

        assert result.files_processed == 3
        assert result.records_emitted == 60
        parser = ClassicLBParser()
        expected = [parser.parse(classic_line(item)).to_json() for item in range(60)]
        assert Counter(output_lines(output)) == Counter(expected)

    def test_single_file_root(self, classic_tree: Path):
        controller, _ = make_controller("classic-lb")
        output = io.BytesIO()

        result = controller.run_directory(classic_tree / "two.log", output)

        assert result.files_processed == 1
        assert result.records_emitted == 20

    def test_empty_directory(self, tmp_path: Path):
        controller, _ = make_controller()
        output = io.BytesIO()

        result = controller.run_directory(tmp_path, output)

        assert result.success
        assert result.files_processed == 0
        assert output.getvalue() == b""

    def test_convenience_function(self, classic_tree: Path):
        output = io.BytesIO()
        settings = Settings(dialect="classic-lb", workers=2, color="never")

        result = run_directory(classic_tree, "classic-lb", settings, output)

        assert isinstance(result, PipelineResult)
        assert result.records_emitted == 60


class TestDirectoryModeErrors:
    """Error propagation in directory mode."""

    @pytest.fixture
    def tree_with_invalid_lines(self, tmp_path: Path) -> Path:
        root = tmp_path / "logs"
        write_gzip(root / "a.log.gz", [alb_line(0), INVALID_LINE, alb_line(1)])
        write_gzip(root / "b.log.gz", [alb_line(2), alb_line(3)])
        write_gzip(root / "c.log.gz", [INVALID_LINE, alb_line(4)])
        return root

    def test_tolerant_mode(self, tree_with_invalid_lines: Path):
        controller, stderr = make_controller(skip_parse_errors=True)
        output = io.BytesIO()

        result = controller.run_directory(tree_with_invalid_lines, output)

        assert result.success
        assert result.lines_skipped == 2
        assert Counter(output_lines(output)) == Counter(expected_alb_json(range(5)))
        assert stderr.getvalue().splitlines() == [
            "Skipping error: Invalid log line: this is not an access log line"
        ] * 2

    def test_strict_mode(self, tree_with_invalid_lines: Path):
        controller, stderr = make_controller()
        output = io.BytesIO()

        with pytest.raises(GrammarMismatch) as exc_info:
            controller.run_directory(tree_with_invalid_lines, output)

        assert exc_info.value.line == INVALID_LINE
        assert "Error: Invalid log line: this is not an access log line" in stderr.getvalue()
        assert set(output_lines(output)) <= set(expected_alb_json(range(5)))

    def test_strict_mode_stops_the_worker(self, tmp_path: Path):
        root = tmp_path / "logs"
        write_gzip(root / "a.log.gz", [alb_line(0), INVALID_LINE, alb_line(1)])
        controller, _ = make_controller(workers=1)
        output = io.BytesIO()

        with pytest.raises(GrammarMismatch):
            controller.run_directory(root, output)

        assert output_lines(output) == expected_alb_json([0])

    def test_missing_root(self, tmp_path: Path):
        controller, _ = make_controller()
        with pytest.raises(SourceReadError):
            controller.run_directory(tmp_path / "missing", io.BytesIO())

    def test_corrupt_gzip(self, tmp_path: Path):
        root = tmp_path / "logs"
        root.mkdir()
        (root / "corrupt.log.gz").write_bytes(b"not gzip at all")
        controller, _ = make_controller(skip_parse_errors=True)

        with pytest.raises(SourceReadError) as exc_info:
            controller.run_directory(root, io.BytesIO())

        assert exc_info.value.path == root / "corrupt.log.gz"

    def test_invalid_utf8_is_fatal_even_when_tolerant(self, tmp_path: Path):
        root = tmp_path / "logs"
        bad = alb_line(0).replace(b"curl/8.0.1", b"curl/\xff")
        write_gzip(root / "a.log.gz", [bad])
        controller, _ = make_controller(skip_parse_errors=True)

        with pytest.raises(EncodingError) as exc_info:
            controller.run_directory(root, io.BytesIO())

        assert exc_info.value.field == "user_agent"

    def test_unexpected_exception_is_a_thread_fault(self, alb_tree: Path, monkeypatch):
        def explode(self):
            raise RuntimeError("serializer bug")

        monkeypatch.setattr(ALBRecord, "to_json", explode)
        controller, _ = make_controller()

        with pytest.raises(ThreadFault) as exc_info:
            controller.run_directory(alb_tree, io.BytesIO())

        assert exc_info.value.thread_name.startswith("worker-")
        assert isinstance(exc_info.value.original, RuntimeError)

    def test_output_failure_does_not_deadlock(self, alb_tree: Path):
        class BrokenOutput(io.BytesIO):
            def write(self, data):
                raise BrokenPipeError("reader went away")

        controller, _ = make_controller(output_queue_size=1)

        with pytest.raises(BrokenPipeError):
            controller.run_directory(alb_tree, BrokenOutput())

    def test_controller_is_reusable_after_failure(self, alb_tree: Path, tmp_path: Path):
        controller, _ = make_controller()
        with pytest.raises(SourceReadError):
            controller.run_directory(tmp_path / "missing", io.BytesIO())

        result = controller.run_directory(alb_tree, io.BytesIO())

        assert result.success
        assert result.records_emitted == 300


# =============================================================================
# Stream mode
# =============================================================================


class TestStreamMode:
    """Tests for PipelineController.run_stream()."""

    def test_order_is_preserved(self):
        lines = [alb_line(item) for item in range(25)]
        controller, _ = make_controller()
        output = io.BytesIO()

        result = controller.run_stream(io.BytesIO(b"".join(lines)), output)

        assert result.records_emitted == 25
        assert output_lines(output) == expected_alb_json(range(25))

    def test_last_line_without_newline(self):
        data = alb_line(0) + alb_line(1).rstrip(b"\n")
        controller, _ = make_controller()
        output = io.BytesIO()

        controller.run_stream(io.BytesIO(data), output)

        assert output_lines(output) == expected_alb_json([0, 1])

    def test_tolerant_mode(self):
        data = alb_line(0) + INVALID_LINE + alb_line(1)
        controller, stderr = make_controller(skip_parse_errors=True)
        output = io.BytesIO()

        result = controller.run_stream(io.BytesIO(data), output)

        assert result.lines_skipped == 1
        assert output_lines(output) == expected_alb_json([0, 1])
        assert stderr.getvalue().count("Skipping error:") == 1

    def test_strict_mode_stops_at_first_invalid_line(self):
        data = alb_line(0) + INVALID_LINE + alb_line(1)
        controller, stderr = make_controller()
        output = io.BytesIO()

        with pytest.raises(GrammarMismatch):
            controller.run_stream(io.BytesIO(data), output)

        assert output_lines(output) == expected_alb_json([0])
        assert stderr.getvalue().startswith("Error: Invalid log line:")

    def test_convenience_function(self):
        output = io.BytesIO()
        settings = Settings(dialect="classic-lb", color="never")

        result = run_stream(io.BytesIO(classic_line(0)), "classic-lb", settings, output)

        assert result.source == "-"
        assert result.records_emitted == 1


class TestPipelineResult:
    def test_to_dict(self, classic_tree: Path):
        controller, _ = make_controller("classic-lb")

        result = controller.run_directory(classic_tree, io.BytesIO())
        summary = result.to_dict()

        assert summary["success"] is True
        assert summary["dialect"] == "classic-lb"
        assert summary["records_emitted"] == 60
        assert summary["errors"] == []
        assert summary["duration_seconds"] >= 0

    def test_duration_unset_before_completion(self):
        assert PipelineResult(success=False, dialect="alb", source="-").duration_seconds is None


def test_gzip_multi_member_file(tmp_path: Path):
    """ALB files may be several gzip members concatenated together."""
    root = tmp_path / "logs"
    root.mkdir()
    (root / "multi.log.gz").write_bytes(
        gzip.compress(alb_line(0) + alb_line(1)) + gzip.compress(alb_line(2))
    )
    controller, _ = make_controller()
    output = io.BytesIO()

    controller.run_directory(root, output)

    assert output_lines(output) == expected_alb_json([0, 1, 2])
