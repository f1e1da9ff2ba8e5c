#!/usr/bin/env python3

"""
Tests for the parachute command line wrapper.
"""

# Standard Library
import os
import sys

# PIP3 modules
import yaml

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

TESTS_DIR = os.path.abspath(os.path.dirname(__file__))
if TESTS_DIR not in sys.path:
	sys.path.insert(0, TESTS_DIR)
from fake_tools import FakeEncoder
from fake_tools import FakeProbe
from fake_tools import make_probe_payload

# local repo modules
import parachute_cli
from parachutelib.media import ffmpeg_hls
from parachutelib.media import ffprobe

#============================================

def test_dry_run_prints_plan(monkeypatch, tmp_path, capsys) -> None:
	"""
	Ensure --dry-run prints a yaml plan and does not create the cdn dir.
	"""
	payload = make_probe_payload(duration="21.0", video_codecs=['hevc'])
	monkeypatch.setattr(ffprobe.subprocess, "run", FakeProbe(payload))
	encoder = FakeEncoder()
	monkeypatch.setattr(ffmpeg_hls.subprocess, "Popen", encoder)
	cdn_dir = str(tmp_path / "cdn")
	status = parachute_cli.main(["-i", "/media/movie.mkv", "-j", "movie",
		"-o", cdn_dir, "-n"])
	assert status == 0
	plan = yaml.safe_load(capsys.readouterr().out)
	assert plan['job_id'] == "movie"
	assert plan['tracks']['video'] == 'transcode'
	assert plan['tracks']['subtitle'] == 'omitted'
	assert [entry['file'] for entry in plan['segments']] == [
		"movie_0.m4s", "movie_1.m4s", "movie_2.m4s",
	]
	assert not os.path.exists(cdn_dir)
	assert encoder.spawned == []

#============================================

def test_play_and_wait(monkeypatch, tmp_path, capsys) -> None:
	monkeypatch.setattr(ffprobe.subprocess, "run", FakeProbe())
	encoder = FakeEncoder()
	encoder.release()
	monkeypatch.setattr(ffmpeg_hls.subprocess, "Popen", encoder)
	cdn_dir = str(tmp_path / "cdn")
	status = parachute_cli.main(["-i", "/media/movie.mkv", "-j", "movie",
		"-o", cdn_dir, "-w"])
	assert status == 0
	lines = capsys.readouterr().out.splitlines()
	assert lines[-1] == "movie: done"
	assert os.path.isfile(os.path.join(cdn_dir, "movie_playlist.m3u8"))
	assert len(encoder.spawned) == 1

#============================================

def test_unreadable_media_exit_status(monkeypatch, tmp_path, capsys) -> None:
	monkeypatch.setattr(ffprobe.subprocess, "run", FakeProbe(returncode=1,
		stderr=b"Invalid data found when processing input"))
	status = parachute_cli.main(["-i", "/media/broken.mkv", "-j", "broken",
		"-o", str(tmp_path)])
	assert status == 1
	assert "Invalid data" in capsys.readouterr().err

#============================================

def test_returns_without_waiting_by_default(monkeypatch, tmp_path, capsys) -> None:
	monkeypatch.setattr(ffprobe.subprocess, "run", FakeProbe())
	encoder = FakeEncoder()
	monkeypatch.setattr(ffmpeg_hls.subprocess, "Popen", encoder)
	cdn_dir = str(tmp_path / "cdn")
	try:
		status = parachute_cli.main(["-i", "/media/movie.mkv", "-j", "movie",
			"-o", cdn_dir])
	finally:
		encoder.release()
	assert status == 0
	lines = capsys.readouterr().out.splitlines()
	assert lines == ["movie: in_progress"]
	assert len(encoder.spawned) == 1

#============================================

def test_uncreatable_cdn_dir_exit_status(tmp_path, capsys) -> None:
	blocker = tmp_path / "not_a_dir"
	blocker.write_text("x\n")
	status = parachute_cli.main(["-i", "/media/movie.mkv", "-j", "movie",
		"-o", str(blocker / "cdn")])
	assert status == 1
	assert "cannot create cdn dir" in capsys.readouterr().err

#============================================

def test_dry_run_rejects_unsafe_id(monkeypatch, tmp_path, capsys) -> None:
	fake_run = FakeProbe()
	monkeypatch.setattr(ffprobe.subprocess, "run", fake_run)
	status = parachute_cli.main(["-i", "/media/movie.mkv", "-j", "../movie",
		"-o", str(tmp_path), "-n"])
	assert status == 1
	assert "job id" in capsys.readouterr().err
	assert fake_run.calls == []
