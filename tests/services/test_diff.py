from k8sdiff.models import CommandResult, ManifestResult
from k8sdiff.services.diff import DiffService, build_report
from k8sdiff.services.filesystem import FileSystemService


class DummyLogger:
    def debug(self, *_args, **_kwargs):
        return None

    def info(self, *_args, **_kwargs):
        return None

    def warning(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class FakeCaptureRunner:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def capture(self, command, cwd=None):
        self.calls.append((command, cwd))
        return self.result


def test_compute_writes_both_sides_and_runs_yamldiff(tmp_path):
    runner = FakeCaptureRunner(CommandResult(stdout="+ kind: Service\n", stderr="", exit_code=0))
    service = DiffService(
        command_runner=runner,
        filesystem_service=FileSystemService(logger=DummyLogger(), console=DummyConsole()),
        logger=DummyLogger(),
        console=DummyConsole(),
    )
    base_file = tmp_path / "base-ref.yaml"
    head_file = tmp_path / "head-ref.yaml"

    result = service.compute(
        ManifestResult(content="", stderr="boom", has_error=True),
        ManifestResult(content="kind: Service\n", stderr="", has_error=False),
        str(base_file),
        str(head_file),
    )

    assert base_file.read_text(encoding="utf-8") == ""
    assert head_file.read_text(encoding="utf-8") == "kind: Service\n"
    assert runner.calls == [(["yamldiff", str(base_file), str(head_file)], str(tmp_path))]
    assert result.stdout == "+ kind: Service\n"


def test_build_report_without_errors():
    report = build_report(
        ManifestResult.empty(),
        ManifestResult.empty(),
        CommandResult(stdout="no changes", stderr="", exit_code=0),
    )

    assert report.diff_output == "no changes"
    assert report.combined_stderr == ""
    assert report.has_error is False


def test_build_report_prefixes_each_stage_error():
    report = build_report(
        ManifestResult(content="", stderr="chart not found", has_error=True),
        ManifestResult(content="", stderr="bad overlay", has_error=True),
        CommandResult(stdout="", stderr="parse error", exit_code=2),
    )

    assert report.combined_stderr == (
        "Base ref error: chart not found\n"
        "Head ref error: bad overlay\n"
        "Yamldiff error: parse error\n"
    )
    assert report.has_error is True


def test_build_report_flags_diff_failure_only():
    report = build_report(
        ManifestResult.empty(),
        ManifestResult(content="kind: Pod\n", stderr="", has_error=False),
        CommandResult(stdout="", stderr="parse error", exit_code=2),
    )

    assert "Yamldiff error: parse error" in report.combined_stderr
    assert "Base ref error" not in report.combined_stderr
    assert report.has_error is True
