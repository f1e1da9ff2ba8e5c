#!/usr/bin/env python3

"""
HLS playlist synthesis.

The playlists are written before ffmpeg starts, so the segment names
here must match what the hls muxer will produce.
"""

import math
import os
from decimal import ROUND_CEILING
from decimal import Decimal
from parachutelib.core import utils
from parachutelib.core.errors import ManifestWriteError

#============================================

DEFAULT_TARGET_DURATION = 10.0
SUBTITLE_GROUP_ID = 'subs'
DEFAULT_BANDWIDTH = 5438980
DEFAULT_AVERAGE_BANDWIDTH = 2868620

#============================================

def plan_segments(duration: float, target: float = DEFAULT_TARGET_DURATION) -> list:
	"""
	Split a duration into segment lengths.

	All segments but the last are exactly target long. The last one is
	the remainder, or a full target when the duration divides evenly.
	"""
	if target <= 0:
		raise ValueError("target segment duration must be positive")
	if duration <= 0:
		raise ValueError("duration must be positive")
	# decimal text keeps 6.6 or 0.1 exact, so count and remainder agree
	exact_duration = Decimal(str(duration))
	exact_target = Decimal(str(target))
	count = int((exact_duration / exact_target).to_integral_value(
		rounding=ROUND_CEILING))
	remainder = exact_duration % exact_target
	if remainder == 0:
		remainder = exact_target
	segments = [float(exact_target)] * (count - 1)
	segments.append(float(remainder))
	return segments

#============================================

def media_segment_name(job_id: str, index: int, extension: str = 'm4s') -> str:
	return f"{job_id}_{index}.{extension}"

#============================================

def subtitle_segment_name(job_id: str, index: int) -> str:
	# ffmpeg names vtt segments after the playlist with no separator
	return f"{job_id}{index}.vtt"

#============================================

def build_segment_plan(job_id: str, duration: float,
	target: float = DEFAULT_TARGET_DURATION, subtitles: bool = False) -> list:
	plan = []
	for index, seconds in enumerate(plan_segments(duration, target)):
		if subtitles:
			name = subtitle_segment_name(job_id, index)
		else:
			name = media_segment_name(job_id, index)
		plan.append((seconds, name))
	return plan

#============================================

def _target_duration_tag(target: float) -> int:
	return int(math.ceil(target)) + 1

#============================================

def _playlist_lines(plan: list, target: float, init_segment: str = None) -> list:
	lines = []
	lines.append("#EXTM3U")
	lines.append("#EXT-X-VERSION:7")
	lines.append(f"#EXT-X-TARGETDURATION:{_target_duration_tag(target)}")
	lines.append("#EXT-X-MEDIA-SEQUENCE:0")
	if init_segment is not None:
		lines.append(f"#EXT-X-MAP:URI=\"{init_segment}\"")
	for (seconds, name) in plan:
		lines.append(f"#EXTINF: {seconds:.6f},")
		lines.append(name)
	lines.append("#EXT-X-ENDLIST")
	return lines

#============================================

def render_media_playlist(job_id: str, plan: list, init_segment: str,
	target: float = DEFAULT_TARGET_DURATION) -> str:
	if len(plan) == 0:
		raise ValueError(f"empty segment plan for {job_id}")
	return "\n".join(_playlist_lines(plan, target, init_segment)) + "\n"

#============================================

def render_subtitle_playlist(job_id: str, plan: list,
	target: float = DEFAULT_TARGET_DURATION) -> str:
	if len(plan) == 0:
		raise ValueError(f"empty subtitle plan for {job_id}")
	return "\n".join(_playlist_lines(plan, target)) + "\n"

#============================================

def render_master_playlist(media_playlist_path: str, subtitle_playlist_path: str,
	has_subtitles: bool, bandwidth: int = DEFAULT_BANDWIDTH,
	average_bandwidth: int = DEFAULT_AVERAGE_BANDWIDTH) -> str:
	"""
	Render the master playlist that points at the media playlist.

	Only basenames are referenced; all artifacts share one directory.
	"""
	lines = []
	lines.append("#EXTM3U")
	lines.append("#EXT-X-VERSION:4")
	stream_inf = f"#EXT-X-STREAM-INF:BANDWIDTH={bandwidth},AVERAGE-BANDWIDTH={average_bandwidth}"
	if has_subtitles:
		subs_uri = utils.basename(subtitle_playlist_path)
		media = "#EXT-X-MEDIA:TYPE=SUBTITLES"
		media += f",GROUP-ID=\"{SUBTITLE_GROUP_ID}\",NAME=\"English\""
		media += ",DEFAULT=YES,AUTOSELECT=YES,FORCED=NO,LANGUAGE=\"en\""
		media += f",URI=\"{subs_uri}\""
		lines.append(media)
		stream_inf += f",SUBTITLES=\"{SUBTITLE_GROUP_ID}\""
	lines.append(stream_inf)
	lines.append(utils.basename(media_playlist_path))
	return "\n".join(lines) + "\n"

#============================================

def manifest_paths(cdn_dir: str, job_id: str) -> dict:
	return {
		'media': os.path.join(cdn_dir, f"{job_id}_manifest.m3u8"),
		'subtitles': os.path.join(cdn_dir, f"{job_id}_manifest_subs.m3u8"),
		'master': os.path.join(cdn_dir, f"{job_id}_playlist.m3u8"),
	}

#============================================

def write_playlist(filepath: str, text: str) -> str:
	try:
		with open(filepath, 'w', encoding='utf-8') as playlist_file:
			playlist_file.write(text)
	except OSError as exc:
		raise ManifestWriteError(f"cannot write playlist {filepath}: {exc}") from exc
	return filepath
