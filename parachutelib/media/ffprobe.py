#!/usr/bin/env python3

"""
ffprobe wrapper that turns probe JSON into a track inventory.
"""

# Standard Library
import enum
import json
import logging
import subprocess
from dataclasses import dataclass, field
from typing import Optional

# local repo modules
from parachutelib.core import utils
from parachutelib.core.errors import MalformedStreamError
from parachutelib.core.errors import ProbeError

logger = logging.getLogger(__name__)

#============================================

class TrackKind(enum.Enum):
	VIDEO = 'video'
	AUDIO = 'audio'
	SUBTITLE = 'subtitle'

	#============================
	@property
	def letter(self) -> str:
		"""ffmpeg stream specifier letter, as in -map 0:v:0 or -c:v."""
		return self.value[0]

#============================================

@dataclass(frozen=True)
class StreamDescriptor:
	codec_name: str
	kind: TrackKind
	index: int
	duration: Optional[float] = None
	width: Optional[int] = None
	height: Optional[int] = None
	bit_rate: Optional[str] = None
	frame_rate: Optional[str] = None

#============================================

@dataclass(frozen=True)
class FormatDescriptor:
	duration: float
	filename: Optional[str] = None
	format_name: Optional[str] = None
	format_long_name: Optional[str] = None
	nb_streams: Optional[int] = None
	start_time: Optional[str] = None
	size: Optional[str] = None
	bit_rate: Optional[str] = None

#============================================

@dataclass
class MediaInfo:
	format: FormatDescriptor
	video: list = field(default_factory=list)
	audio: list = field(default_factory=list)
	subtitle: list = field(default_factory=list)

	#============================
	@property
	def duration(self) -> float:
		return self.format.duration

	#============================
	def streams_of(self, kind: TrackKind) -> list:
		if kind is TrackKind.VIDEO:
			return self.video
		if kind is TrackKind.AUDIO:
			return self.audio
		if kind is TrackKind.SUBTITLE:
			return self.subtitle
		raise ValueError(f"unknown track kind: {kind!r}")

	#============================
	def summary(self) -> str:
		parts = []
		for kind in TrackKind:
			codecs = [stream.codec_name for stream in self.streams_of(kind)]
			parts.append(f"{kind.value}={','.join(codecs) or '-'}")
		parts.append(f"duration={self.duration:.3f}s")
		return " ".join(parts)

#============================================

def build_probe_cmd(path: str, ffprobe_path: str = 'ffprobe') -> list:
	return [
		ffprobe_path,
		'-v', 'error',
		'-of', 'json',
		'-show_format',
		'-show_streams',
		str(path),
	]

#============================================

def run_ffprobe(path: str, ffprobe_path: str = 'ffprobe') -> dict:
	"""
	Run ffprobe on a media file and return the decoded JSON payload.

	Raises:
		ProbeError: the tool could not be started, exited non-zero,
			or printed something that is not a JSON object.
	"""
	cmd = build_probe_cmd(path, ffprobe_path)
	utils.log_cmd(cmd, logging.DEBUG)
	try:
		proc = subprocess.run(cmd, stdout=subprocess.PIPE,
			stderr=subprocess.PIPE, check=False)
	except OSError as exc:
		raise ProbeError(f"cannot execute {ffprobe_path}: {exc}") from exc
	if proc.returncode != 0:
		stderr = proc.stderr.decode('utf-8', errors='replace').strip()
		raise ProbeError(
			f"{ffprobe_path} exited with {proc.returncode} for {path}: {stderr}"
		)
	try:
		payload = json.loads(proc.stdout.decode('utf-8', errors='replace'))
	except json.JSONDecodeError as exc:
		raise ProbeError(f"{ffprobe_path} printed invalid json for {path}: {exc}") from exc
	if not isinstance(payload, dict):
		raise ProbeError(f"{ffprobe_path} output for {path} is not a json object")
	return payload

#============================================

def _optional_str(value) -> Optional[str]:
	if value is None:
		return None
	return str(value)

#============================================

def _parse_format(raw_format) -> FormatDescriptor:
	if not isinstance(raw_format, dict):
		raise ProbeError("probe output has no format section")
	try:
		duration = utils.parse_seconds(raw_format.get('duration'))
	except ValueError as exc:
		raise ProbeError(f"probe output has no usable format.duration: {exc}") from exc
	if duration <= 0:
		raise ProbeError("probe output reports a zero duration")
	nb_streams = raw_format.get('nb_streams')
	if nb_streams is not None:
		try:
			nb_streams = int(nb_streams)
		except (TypeError, ValueError) as exc:
			raise ProbeError(f"format.nb_streams is not an integer: {nb_streams!r}") from exc
	return FormatDescriptor(
		duration=duration,
		filename=_optional_str(raw_format.get('filename')),
		format_name=_optional_str(raw_format.get('format_name')),
		format_long_name=_optional_str(raw_format.get('format_long_name')),
		nb_streams=nb_streams,
		start_time=_optional_str(raw_format.get('start_time')),
		size=_optional_str(raw_format.get('size')),
		bit_rate=_optional_str(raw_format.get('bit_rate')),
	)

#============================================

def _parse_dimension(raw_stream: dict, key: str, position: int) -> int:
	value = raw_stream.get(key)
	if value is None:
		raise MalformedStreamError(f"video stream {position} has no {key}")
	if isinstance(value, bool):
		raise MalformedStreamError(f"video stream {position} has invalid {key}: {value!r}")
	try:
		value = int(value)
	except (TypeError, ValueError) as exc:
		raise MalformedStreamError(
			f"video stream {position} has invalid {key}: {value!r}"
		) from exc
	if value <= 0:
		raise MalformedStreamError(f"video stream {position} has invalid {key}: {value}")
	return value

#============================================

def _parse_stream(raw_stream: dict, kind: TrackKind, index: int,
	container_duration: float) -> StreamDescriptor:
	codec_name = raw_stream.get('codec_name')
	if not isinstance(codec_name, str) or not codec_name:
		raise MalformedStreamError(f"{kind.value} stream {index} has no codec_name")
	raw_duration = raw_stream.get('duration')
	if raw_duration is None:
		duration = container_duration
	else:
		try:
			duration = utils.parse_seconds(raw_duration)
		except ValueError as exc:
			raise MalformedStreamError(
				f"{kind.value} stream {index} has invalid duration: {raw_duration!r}"
			) from exc
	width = None
	height = None
	frame_rate = None
	if kind is TrackKind.VIDEO:
		width = _parse_dimension(raw_stream, 'width', index)
		height = _parse_dimension(raw_stream, 'height', index)
		frame_rate = _optional_str(raw_stream.get('r_frame_rate'))
	return StreamDescriptor(
		codec_name=codec_name,
		kind=kind,
		index=index,
		duration=duration,
		width=width,
		height=height,
		bit_rate=_optional_str(raw_stream.get('bit_rate')),
		frame_rate=frame_rate,
	)

#============================================

def parse_media_info(payload: dict) -> MediaInfo:
	"""
	Normalize ffprobe JSON into a MediaInfo.

	Streams whose codec_type is not video, audio or subtitle are dropped.
	Streams without their own duration inherit the container duration.
	"""
	if not isinstance(payload, dict):
		raise ProbeError("probe output is not a json object")
	format_info = _parse_format(payload.get('format'))
	raw_streams = payload.get('streams')
	if not isinstance(raw_streams, list):
		raise ProbeError("probe output has no streams list")
	media_info = MediaInfo(format=format_info)
	kinds_by_type = {kind.value: kind for kind in TrackKind}
	for raw_stream in raw_streams:
		if not isinstance(raw_stream, dict):
			raise ProbeError(f"probe stream entry is not a mapping: {raw_stream!r}")
		kind = kinds_by_type.get(raw_stream.get('codec_type'))
		if kind is None:
			continue
		bucket = media_info.streams_of(kind)
		stream = _parse_stream(raw_stream, kind, len(bucket), format_info.duration)
		bucket.append(stream)
	return media_info

#============================================

def probe_media(path: str, ffprobe_path: str = 'ffprobe') -> MediaInfo:
	payload = run_ffprobe(path, ffprobe_path)
	media_info = parse_media_info(payload)
	logger.info("probed %s: %s", path, media_info.summary())
	return media_info
