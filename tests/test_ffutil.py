"""Unit tests for ffutil: command building and the extraction job runner."""

import io
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from clipshare.errors import ExtractionFailedError, InvalidInputError
from clipshare.ffutil import (
    ExtractionTimeoutError,
    MissingOutputError,
    ProcessExitError,
    ProcessStartError,
    build_extract_command,
    extract_clip,
    resolve_ffmpeg,
)


def _fake_proc(returncode=0, stdout="", stderr=""):
    proc = MagicMock()
    proc.stdout = io.StringIO(stdout)
    proc.stderr = io.StringIO(stderr)
    proc.wait.return_value = returncode
    return proc


# ---------------------------------------------------------------------------
# build_extract_command (pure)
# ---------------------------------------------------------------------------

class TestBuildExtractCommand:
    def test_stream_copy_arguments(self):
        cmd = build_extract_command("ffmpeg", Path("in.mp4"), 30, 45, Path("out.mp4"))
        assert cmd == [
            "ffmpeg", "-y",
            "-ss", "30.000",
            "-t", "15.000",
            "-i", "in.mp4",
            "-c", "copy",
            "-avoid_negative_ts", "make_zero",
            "out.mp4",
        ]

    def test_seek_precedes_input(self):
        cmd = build_extract_command("ffmpeg", Path("in.mp4"), 1.5, 2.25, Path("out.mp4"))
        assert cmd.index("-ss") < cmd.index("-i")
        assert cmd[cmd.index("-t") + 1] == "0.750"

    def test_paths_with_special_characters_stay_single_arguments(self):
        src = Path("/media/My Movie; rm -rf $HOME.mkv")
        cmd = build_extract_command("ffmpeg", src, 0, 1, Path("/tmp/o ut.mkv"))
        assert str(src) in cmd
        assert "/tmp/o ut.mkv" == cmd[-1]


# ---------------------------------------------------------------------------
# resolve_ffmpeg
# ---------------------------------------------------------------------------

class TestResolveFfmpeg:
    @patch("clipshare.ffutil.shutil.which")
    def test_prefers_first_available(self, mock_which):
        mock_which.side_effect = lambda c: None if c.startswith("/usr/lib") else "/usr/bin/ffmpeg"
        assert resolve_ffmpeg(["/usr/lib/jellyfin-ffmpeg/ffmpeg", "ffmpeg"]) == "/usr/bin/ffmpeg"

    @patch("clipshare.ffutil.shutil.which")
    def test_bundled_binary_wins(self, mock_which):
        mock_which.side_effect = lambda c: c
        assert resolve_ffmpeg(["/opt/ffmpeg", "ffmpeg"]) == "/opt/ffmpeg"

    @patch("clipshare.ffutil.shutil.which", return_value=None)
    def test_falls_back_to_last_candidate(self, mock_which):
        assert resolve_ffmpeg(["/nope/ffmpeg", "ffmpeg"]) == "ffmpeg"

    def test_empty_candidates_rejected(self):
        with pytest.raises(ValueError):
            resolve_ffmpeg([])


# ---------------------------------------------------------------------------
# extract_clip (mocked subprocess)
# ---------------------------------------------------------------------------

class TestExtractClip:
    @patch("clipshare.ffutil.subprocess.Popen")
    def test_success(self, mock_popen, tmp_path):
        out = tmp_path / "clip.mp4"
        out.write_bytes(b"clip")
        mock_popen.return_value = _fake_proc(0, stderr="frame=1\nframe=2\n")

        result = extract_clip(Path("in.mp4"), out, 1.0, 3.0, ffmpeg="/opt/ffmpeg")

        assert result == out
        cmd = mock_popen.call_args[0][0]
        assert cmd[0] == "/opt/ffmpeg"
        kwargs = mock_popen.call_args[1]
        assert kwargs["stdout"] is subprocess.PIPE
        assert kwargs["stderr"] is subprocess.PIPE
        assert "shell" not in kwargs

    @patch("clipshare.ffutil.subprocess.Popen")
    def test_creates_output_directory(self, mock_popen, tmp_path):
        out = tmp_path / "nested" / "dir" / "clip.mp4"

        def _spawn(cmd, **kwargs):
            Path(cmd[-1]).write_bytes(b"clip")
            return _fake_proc(0)

        mock_popen.side_effect = _spawn
        extract_clip(Path("in.mp4"), out, 0, 1)
        assert out.exists()

    @patch("clipshare.ffutil.subprocess.Popen")
    def test_nonzero_exit_reports_bounded_tail(self, mock_popen, tmp_path):
        out = tmp_path / "clip.mp4"
        out.write_bytes(b"partial")
        stderr = "".join(f"line {i}\n" for i in range(30))
        mock_popen.return_value = _fake_proc(1, stderr=stderr)

        with pytest.raises(ProcessExitError) as excinfo:
            extract_clip(Path("in.mp4"), out, 0, 5, tail_lines=10)

        err = excinfo.value
        assert err.returncode == 1
        assert err.stderr_tail == [f"line {i}" for i in range(20, 30)]
        assert "line 29" in str(err)
        assert not out.exists()

    @patch("clipshare.ffutil.subprocess.Popen")
    def test_zero_exit_without_output_is_failure(self, mock_popen, tmp_path):
        mock_popen.return_value = _fake_proc(0)
        with pytest.raises(MissingOutputError, match="not created"):
            extract_clip(Path("in.mp4"), tmp_path / "clip.mp4", 0, 5)

    @patch("clipshare.ffutil.subprocess.Popen", side_effect=FileNotFoundError("no such file"))
    def test_unstartable_process(self, mock_popen, tmp_path):
        with pytest.raises(ProcessStartError, match="could not start"):
            extract_clip(Path("in.mp4"), tmp_path / "clip.mp4", 0, 5, ffmpeg="missing-ffmpeg")

    @patch("clipshare.ffutil.subprocess.Popen")
    def test_timeout_kills_process(self, mock_popen, tmp_path):
        out = tmp_path / "clip.mp4"
        out.write_bytes(b"partial")
        proc = _fake_proc()
        proc.wait.side_effect = [subprocess.TimeoutExpired(cmd="ffmpeg", timeout=5), -9]
        mock_popen.return_value = proc

        with pytest.raises(ExtractionTimeoutError):
            extract_clip(Path("in.mp4"), out, 0, 5, timeout=5)

        proc.kill.assert_called_once()
        assert not out.exists()

    @patch("clipshare.ffutil.subprocess.Popen")
    def test_failures_share_a_base_class(self, mock_popen, tmp_path):
        mock_popen.return_value = _fake_proc(2, stderr="boom\n")
        with pytest.raises(ExtractionFailedError):
            extract_clip(Path("in.mp4"), tmp_path / "clip.mp4", 0, 5)

    @pytest.mark.parametrize("start,end", [(5, 5), (6, 5), (-1, 3)])
    @patch("clipshare.ffutil.subprocess.Popen")
    def test_invalid_range_spawns_nothing(self, mock_popen, start, end, tmp_path):
        with pytest.raises(InvalidInputError):
            extract_clip(Path("in.mp4"), tmp_path / "clip.mp4", start, end)
        mock_popen.assert_not_called()
