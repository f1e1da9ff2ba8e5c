#!/usr/bin/env python3

"""
Launch ffmpeg as an HLS (fmp4) packager and watch it in the background.
"""

# Standard Library
import logging
import os
import subprocess
import threading

# local repo modules
from parachutelib.core import utils
from parachutelib.core.errors import EncodeProcessError

logger = logging.getLogger(__name__)

#============================================

def format_seconds_arg(seconds: float) -> str:
	return f"{seconds:g}"

#============================================

def init_segment_name(job_id: str) -> str:
	return f"{job_id}_init.mp4"

#============================================

def build_encoder_args(ffmpeg_path: str, input_path: str, job_id: str,
	cdn_dir: str, video_args: list, audio_args: list, subtitle_args: list,
	target_duration: float = 10.0) -> list:
	"""
	Compose the complete ffmpeg argv for one job.

	Track arguments are appended in video, audio, subtitle order between
	the global input flags and the fixed hls muxer flags.
	"""
	hls_time = format_seconds_arg(target_duration)
	# the hls muxer expands the segment name printf-style
	segment_prefix = os.path.join(cdn_dir, job_id).replace('%', '%%')
	segment_file_path = f"{segment_prefix}_%d.m4s"
	output_file_path = os.path.join(cdn_dir, f"{job_id}.m3u8")
	argv = [
		ffmpeg_path,
		'-v', 'error',
		'-ss', '0',
		'-i', str(input_path),
		'-copyts',
		'-y',
	]
	argv.extend(video_args)
	argv.extend(audio_args)
	argv.extend(subtitle_args)
	argv.extend([
		'-start_at_zero',
		'-fps_mode', 'passthrough',
		'-avoid_negative_ts', 'disabled',
		'-max_muxing_queue_size', '2048',
		'-f', 'hls',
		'-start_number', '0',
		'-hls_flags', 'temp_file',
		'-max_delay', '5000000',
		'-hls_fmp4_init_filename', init_segment_name(job_id),
		'-hls_time', hls_time,
		'-force_key_frames', f"expr:gte(t,n_forced*{hls_time})",
		'-hls_segment_type', 'fmp4',
		'-hls_segment_filename', segment_file_path,
		output_file_path,
	])
	return argv

#============================================

class EncoderProcess():
	"""
	Handle for a running encoder and the thread that waits for it.
	"""
	def __init__(self, proc, job_id: str = None):
		self.proc = proc
		self.job_id = job_id
		self.stderr_text = ''
		self._watcher = None

	#============================
	@property
	def pid(self) -> int:
		return self.proc.pid

	#============================
	@property
	def returncode(self):
		return self.proc.returncode

	#============================
	def wait(self, timeout: float = None) -> bool:
		"""Block until the watcher thread has finished; True once it has."""
		if self._watcher is None:
			return True
		self._watcher.join(timeout)
		return not self._watcher.is_alive()

	#============================
	def _watch(self, on_exit) -> None:
		try:
			(_, stderr) = self.proc.communicate()
			if stderr:
				self.stderr_text = stderr.decode('utf-8', errors='replace').strip()
			returncode = self.proc.returncode
			if returncode != 0:
				logger.warning("encoder for %s exited with %s: %s", self.job_id,
					returncode, self.stderr_text)
			else:
				logger.info("encoder for %s finished", self.job_id)
		finally:
			if on_exit is not None:
				on_exit(self.proc.returncode)

	#============================
	def start_watcher(self, on_exit=None) -> None:
		name = f"encoder-watch-{self.job_id}"
		self._watcher = threading.Thread(target=self._watch, args=(on_exit,),
			name=name, daemon=True)
		self._watcher.start()

#============================================

def spawn_encoder(argv: list, on_exit=None, job_id: str = None) -> EncoderProcess:
	"""
	Start ffmpeg without waiting for it.

	on_exit(returncode) runs on a background thread once the process
	exits, whatever the exit code.

	Raises:
		EncodeProcessError: the process could not be spawned.
	"""
	utils.log_cmd(argv)
	try:
		proc = subprocess.Popen(argv, stdin=subprocess.DEVNULL,
			stdout=subprocess.DEVNULL, stderr=subprocess.PIPE)
	except (OSError, ValueError) as exc:
		raise EncodeProcessError(f"cannot start {argv[0]}: {exc}") from exc
	handle = EncoderProcess(proc, job_id=job_id)
	handle.start_watcher(on_exit)
	return handle
