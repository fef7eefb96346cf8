"""Tests for JSONL episode reporting and the CLI."""

import json

import pytest
from click.testing import CliRunner

from crossing.app.main import cli
from crossing.config.schema import EpisodeConfig, EpisodeStats
from crossing.utils.logging import EpisodeReporter, rotate_reports, summarize_episodes


def make_stats(index, reward, accident=False, passed=3):
    return EpisodeStats(
        episode_index=index,
        episode_length=10.0 * index,
        episode_steps=100 * index,
        accident=accident,
        total_passed=passed,
        cumulative_reward=reward,
        end_reason="accident" if accident else "cap_reached",
    )


class TestEpisodeReporter:
    """Test the JSONL episode report."""

    def test_write_and_read(self, tmp_path):
        """Test episodes are appended and read back in order."""
        reporter = EpisodeReporter(tmp_path / "reports" / "run.jsonl")
        reporter.write_episode(make_stats(1, 0.5))
        reporter.write_episode(make_stats(2, -0.4, accident=True))

        episodes = reporter.read_episodes()

        assert [e.episode_index for e in episodes] == [1, 2]
        assert episodes[1].accident is True
        assert episodes[1].end_reason == "accident"

    def test_events_are_skipped(self, tmp_path):
        """Test session events do not show up as episodes."""
        reporter = EpisodeReporter(tmp_path / "run.jsonl")
        reporter.log_event("session_start", {"episodes": 1})
        reporter.write_episode(make_stats(1, 0.5))
        reporter.log_event("session_end")

        assert len(reporter.read_episodes()) == 1
        assert reporter.get_log_stats()["entries"] == 3

    def test_malformed_lines_are_skipped(self, tmp_path):
        """Test a truncated line does not break reading."""
        path = tmp_path / "run.jsonl"
        reporter = EpisodeReporter(path)
        reporter.write_episode(make_stats(1, 0.5))
        with open(path, 'a') as f:
            f.write('{"episode_index": 2, "episode_len\n')

        assert len(reporter.read_episodes()) == 1

    def test_jsonl_format(self, tmp_path):
        """Test each record is a single compact JSON line."""
        path = tmp_path / "run.jsonl"
        EpisodeReporter(path).write_episode(make_stats(1, 0.5))

        lines = path.read_text().splitlines()
        assert len(lines) == 1
        assert json.loads(lines[0])["cumulative_reward"] == 0.5

    def test_missing_report(self, tmp_path):
        """Test reading a report that was never written."""
        reporter = EpisodeReporter(tmp_path / "empty.jsonl")

        assert reporter.read_episodes() == []
        assert reporter.get_log_stats() == {"entries": 0, "size_bytes": 0}


class TestSummaries:
    """Test report aggregation and rotation."""

    def test_summarize_episodes(self):
        """Test aggregate statistics."""
        summary = summarize_episodes([
            make_stats(1, 1.0, passed=4),
            make_stats(2, -0.5, accident=True, passed=2),
        ])

        assert summary["episodes"] == 2
        assert summary["mean_reward"] == pytest.approx(0.25)
        assert summary["best_reward"] == pytest.approx(1.0)
        assert summary["accident_rate"] == pytest.approx(0.5)
        assert summary["mean_passed"] == pytest.approx(3.0)

    def test_summarize_empty(self):
        """Test summarizing nothing."""
        assert summarize_episodes([]) == {}

    def test_rotate_reports(self, tmp_path):
        """Test only the newest reports are kept."""
        for i in range(5):
            (tmp_path / f"episodes_{i}.jsonl").write_text("{}\n")

        rotate_reports(tmp_path, max_files=2)

        assert len(list(tmp_path.glob("*.jsonl"))) == 2


class TestCli:
    """Test the command line entry points."""

    def test_config_command(self, tmp_path):
        """Test writing an episode config file."""
        output = tmp_path / "episode.json"

        result = CliRunner().invoke(cli, [
            'config', '--total-max-car-spawn', '20', '--decision-interval', '0.5',
            '--output', str(output),
        ])

        assert result.exit_code == 0
        loaded = EpisodeConfig.load(output)
        assert loaded.total_max_car_spawn == 20
        assert loaded.timer_for_decision == 0.5

    def test_config_command_rejects_invalid(self, tmp_path):
        """Test invalid settings abort without writing."""
        output = tmp_path / "episode.json"

        result = CliRunner().invoke(cli, [
            'config', '--decision-interval', '9', '--output', str(output),
        ])

        assert result.exit_code != 0
        assert not output.exists()

    def test_run_and_report(self, tmp_path):
        """Test running episodes writes a report that can be summarized."""
        config_path = tmp_path / "episode.json"
        EpisodeConfig(
            total_max_car_spawn=4, tick_seconds=0.1, max_episode_seconds=60.0
        ).save(config_path)
        report_path = tmp_path / "reports" / "run.jsonl"

        runner = CliRunner()
        result = runner.invoke(cli, [
            'run', '--episodes', '2', '--config', str(config_path),
            '--policy', 'queue', '--seed', '0', '--arrival-rate', '0.5',
            '--report', str(report_path),
        ])

        assert result.exit_code == 0, result.output
        episodes = EpisodeReporter(report_path).read_episodes()
        assert [e.episode_index for e in episodes] == [1, 2]

        result = runner.invoke(cli, ['report', str(report_path)])

        assert result.exit_code == 0
        assert "2 episodes" in result.output

    def test_run_aborts_when_report_unwritable(self, tmp_path):
        """Test a report path that is a directory aborts cleanly."""
        config_path = tmp_path / "episode.json"
        EpisodeConfig(
            total_max_car_spawn=2, tick_seconds=0.1, max_episode_seconds=30.0
        ).save(config_path)
        report_dir = tmp_path / "reports"
        report_dir.mkdir()

        result = CliRunner().invoke(cli, [
            'run', '--episodes', '1', '--config', str(config_path),
            '--policy', 'queue', '--seed', '0', '--arrival-rate', '1.0',
            '--report', str(report_dir),
        ])

        assert result.exit_code != 0
        assert "❌" in result.output
        assert isinstance(result.exception, SystemExit)

    def test_run_aborts_on_unsupported_model(self, tmp_path):
        """Test an unknown model format aborts before any episode runs."""
        model_path = tmp_path / "policy.onnx"
        model_path.write_bytes(b"\x00")

        result = CliRunner().invoke(cli, [
            'run', '--episodes', '1', '--policy', 'model',
            '--model', str(model_path), '--device', 'cpu',
            '--report', str(tmp_path / "run.jsonl"),
        ])

        assert result.exit_code != 0
        assert "❌ Failed to load model" in result.output
        assert not (tmp_path / "run.jsonl").exists()
