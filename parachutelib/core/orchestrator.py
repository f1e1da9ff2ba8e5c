#!/usr/bin/env python3

import logging
import os
from parachutelib.core import manifest
from parachutelib.core import utils
from parachutelib.core.registry import JobRegistry
from parachutelib.core.registry import JobState
from parachutelib.media import ffmpeg_hls
from parachutelib.media import ffprobe
from parachutelib.media import profiles
from parachutelib.media.ffprobe import TrackKind

logger = logging.getLogger(__name__)

#============================================

class Parachute():
	"""
	Turns play requests into at most one HLS packaging job per id.
	"""
	def __init__(self, ffprobe_path: str, ffmpeg_path: str, cdn_dir: str,
		target_duration: float = manifest.DEFAULT_TARGET_DURATION,
		bandwidth: int = manifest.DEFAULT_BANDWIDTH,
		average_bandwidth: int = manifest.DEFAULT_AVERAGE_BANDWIDTH,
		registry: JobRegistry = None):
		self.ffprobe_path = ffprobe_path
		self.ffmpeg_path = ffmpeg_path
		self.cdn_dir = cdn_dir
		self.target_duration = target_duration
		self.bandwidth = bandwidth
		self.average_bandwidth = average_bandwidth
		self.registry = registry if registry is not None else JobRegistry()

	#============================
	@classmethod
	def from_config(cls, config) -> 'Parachute':
		return cls(config.ffprobe_path, config.ffmpeg_path, config.cdn_dir,
			target_duration=config.target_duration,
			bandwidth=config.bandwidth,
			average_bandwidth=config.average_bandwidth)

	#============================
	def validate_job_id(self, job_id: str) -> None:
		"""
		Reject ids that cannot safely name files in the cdn dir.

		ffmpeg expands '%' in segment name templates, so it is refused too.
		"""
		if not job_id:
			raise ValueError("job id must be a non-empty string")
		separators = [sep for sep in (os.sep, os.altsep) if sep]
		if any(sep in job_id for sep in separators) or job_id in (os.curdir, os.pardir):
			raise ValueError(f"job id must not contain path separators: {job_id!r}")
		if '%' in job_id:
			raise ValueError(f"job id must not contain '%': {job_id!r}")

	#============================
	def play_video(self, job_id: str, path: str) -> JobState:
		"""
		Start packaging path under job_id unless that id is already known.

		Returns the job state. Probe, manifest and spawn failures propagate
		to the caller and leave no job behind.
		"""
		self.validate_job_id(job_id)
		return self.registry.get_or_start(job_id,
			lambda: self._start_job(job_id, path))

	#============================
	def job_state(self, job_id: str):
		return self.registry.get_state(job_id)

	#============================
	def wait(self, job_id: str, timeout: float = None) -> bool:
		return self.registry.wait_until_done(job_id, timeout=timeout)

	#============================
	def plan_job(self, job_id: str, path: str) -> dict:
		"""
		Probe and decide without writing manifests or starting ffmpeg.
		"""
		self.validate_job_id(job_id)
		media_info = ffprobe.probe_media(path, self.ffprobe_path)
		track_args = profiles.select_profiles(media_info)
		argv = self._encoder_args(job_id, path, track_args)
		plan = manifest.build_segment_plan(job_id, media_info.duration,
			self.target_duration)
		return {
			'job_id': job_id,
			'input': str(path),
			'duration': media_info.duration,
			'tracks': {
				kind.value: profiles.describe_profile(args)
				for kind, args in track_args.items()
			},
			'segments': [
				{'duration': round(seconds, 6), 'file': name}
				for (seconds, name) in plan
			],
			'command': utils.format_cmd(argv),
		}

	#============================
	def _start_job(self, job_id: str, path: str) -> None:
		logger.info("starting job %s for %s", job_id, path)
		media_info = ffprobe.probe_media(path, self.ffprobe_path)
		track_args = profiles.select_profiles(media_info)
		has_subtitles = len(track_args[TrackKind.SUBTITLE]) > 0
		self._write_manifests(job_id, media_info.duration, has_subtitles)
		argv = self._encoder_args(job_id, path, track_args)
		ffmpeg_hls.spawn_encoder(argv,
			on_exit=lambda returncode: self.registry.mark_done(job_id),
			job_id=job_id)

	#============================
	def _encoder_args(self, job_id: str, path: str, track_args: dict) -> list:
		return ffmpeg_hls.build_encoder_args(self.ffmpeg_path, path, job_id,
			self.cdn_dir,
			track_args[TrackKind.VIDEO],
			track_args[TrackKind.AUDIO],
			track_args[TrackKind.SUBTITLE],
			target_duration=self.target_duration)

	#============================
	def _write_manifests(self, job_id: str, duration: float,
		has_subtitles: bool) -> dict:
		paths = manifest.manifest_paths(self.cdn_dir, job_id)
		target = self.target_duration
		media_plan = manifest.build_segment_plan(job_id, duration, target)
		init_segment = ffmpeg_hls.init_segment_name(job_id)
		manifest.write_playlist(paths['media'],
			manifest.render_media_playlist(job_id, media_plan, init_segment, target))
		if has_subtitles:
			subtitle_plan = manifest.build_segment_plan(job_id, duration, target,
				subtitles=True)
			manifest.write_playlist(paths['subtitles'],
				manifest.render_subtitle_playlist(job_id, subtitle_plan, target))
		manifest.write_playlist(paths['master'],
			manifest.render_master_playlist(paths['media'], paths['subtitles'],
				has_subtitles, bandwidth=self.bandwidth,
				average_bandwidth=self.average_bandwidth))
		logger.debug("wrote %d segment entries for %s", len(media_plan), job_id)
		return paths
