#!/usr/bin/env python3

"""
Integration test that packages a generated clip with real ffmpeg.
"""

# Standard Library
import os
import shutil
import subprocess
import sys
import tempfile
import unittest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
	sys.path.insert(0, REPO_ROOT)

from parachutelib.core.orchestrator import Parachute
from parachutelib.core.registry import JobState

#============================================

REQUIRED_TOOLS = ("ffmpeg", "ffprobe")
MISSING_TOOLS = [tool for tool in REQUIRED_TOOLS if shutil.which(tool) is None]
HAVE_TOOLS = len(MISSING_TOOLS) == 0
SKIP_TOOLS_REASON = f"missing tools: {', '.join(MISSING_TOOLS)}"

#============================================

def _make_clip(path: str, seconds: int) -> None:
	cmd = [
		"ffmpeg", "-y", "-v", "error",
		"-f", "lavfi", "-i", f"testsrc=size=320x240:rate=25:duration={seconds}",
		"-f", "lavfi", "-i", f"sine=frequency=440:duration={seconds}",
		"-c:v", "libx264", "-pix_fmt", "yuv420p",
		"-c:a", "aac",
		"-shortest",
		path,
	]
	subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL,
		stderr=subprocess.DEVNULL)

#============================================

@unittest.skipUnless(HAVE_TOOLS, SKIP_TOOLS_REASON)
class HlsPackagingTest(unittest.TestCase):
	#============================================
	def test_package_h264_clip(self) -> None:
		"""Ensure an h264/aac clip is transmuxed into fmp4 segments."""
		with tempfile.TemporaryDirectory() as temp_dir:
			clip_path = os.path.join(temp_dir, "clip.mp4")
			cdn_dir = os.path.join(temp_dir, "cdn")
			os.makedirs(cdn_dir)
			try:
				_make_clip(clip_path, 12)
			except subprocess.CalledProcessError:
				self.skipTest("ffmpeg cannot generate an h264/aac test clip")
			parachute = Parachute("ffprobe", "ffmpeg", cdn_dir)
			state = parachute.play_video("clip", clip_path)
			self.assertIn(state, (JobState.IN_PROGRESS, JobState.DONE))
			self.assertTrue(parachute.wait("clip", timeout=120))
			self.assertEqual(parachute.play_video("clip", clip_path), JobState.DONE)
			for name in ("clip_manifest.m3u8", "clip_playlist.m3u8",
				"clip_init.mp4", "clip_0.m4s"):
				self.assertTrue(os.path.isfile(os.path.join(cdn_dir, name)), name)
			self.assertFalse(os.path.exists(
				os.path.join(cdn_dir, "clip_manifest_subs.m3u8")))
			with open(os.path.join(cdn_dir, "clip_manifest.m3u8"), "r") as handle:
				text = handle.read()
			self.assertIn("clip_1.m4s", text)

#============================================

def main() -> None:
	"""Run the unit tests."""
	unittest.main()

#============================================

if __name__ == "__main__":
	main()
