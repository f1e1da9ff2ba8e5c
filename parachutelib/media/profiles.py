#!/usr/bin/env python3

import logging
from parachutelib.media.ffprobe import MediaInfo
from parachutelib.media.ffprobe import TrackKind

logger = logging.getLogger(__name__)

#============================================

# codec that HLS fmp4 can carry unmodified, and the codec to encode to otherwise
COMPATIBLE_CODECS = {
	TrackKind.VIDEO: 'h264',
	TrackKind.AUDIO: 'aac',
	TrackKind.SUBTITLE: 'webvtt',
}

DEFAULT_CODECS = {
	TrackKind.VIDEO: 'libx264',
	TrackKind.AUDIO: 'aac',
	TrackKind.SUBTITLE: 'webvtt',
}

PASSTHROUGH = 'passthrough'
TRANSCODE = 'transcode'
OMITTED = 'omitted'

#============================================

def transmux_args(kind: TrackKind, stream_index: int) -> list:
	letter = kind.letter
	return ['-map', f"0:{letter}:{stream_index}", f"-c:{letter}", 'copy']

#============================================

def transcode_args(kind: TrackKind) -> list:
	letter = kind.letter
	return ['-map', f"0:{letter}:0", f"-c:{letter}", DEFAULT_CODECS[kind]]

#============================================

def select_profile(kind: TrackKind, streams: list) -> list:
	"""
	Pick the encoder arguments for one track kind.

	The first stream already in the compatible codec is copied as is.
	Otherwise the first stream of the kind is transcoded. No subtitle
	streams at all returns an empty list, which drops the track.
	"""
	if kind is TrackKind.SUBTITLE and len(streams) == 0:
		return []
	compatible = COMPATIBLE_CODECS[kind]
	for position, stream in enumerate(streams):
		if stream.codec_name == compatible:
			return transmux_args(kind, position)
	if len(streams) == 0:
		logger.warning("no %s streams found; mapping 0:%s:0 anyway",
			kind.value, kind.letter)
	return transcode_args(kind)

#============================================

def select_profiles(media_info: MediaInfo) -> dict:
	profiles = {}
	for kind in TrackKind:
		args = select_profile(kind, media_info.streams_of(kind))
		logger.info("%s: %s %s", kind.value, describe_profile(args), " ".join(args))
		profiles[kind] = args
	return profiles

#============================================

def describe_profile(args: list) -> str:
	if len(args) == 0:
		return OMITTED
	if args[-1] == 'copy':
		return PASSTHROUGH
	return TRANSCODE
