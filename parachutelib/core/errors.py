#!/usr/bin/env python3

"""
Error types raised by parachute.

Every error is a RuntimeError so callers that only care about
"the job could not be started" can catch that one type.
"""

#============================================

class ParachuteError(RuntimeError):
	pass

#============================================

class ConfigError(ParachuteError):
	pass

#============================================

class ProbeError(ParachuteError):
	"""ffprobe could not run, failed, or printed something unusable."""

#============================================

class MalformedStreamError(ProbeError):
	"""A classified stream is missing a field that cannot be defaulted."""

#============================================

class ManifestWriteError(ParachuteError):
	pass

#============================================

class EncodeProcessError(ParachuteError):
	"""The encoder process could not be spawned."""
