#!/usr/bin/env python3

import logging
import math
import os
import shlex

logger = logging.getLogger(__name__)

#============================================

def format_cmd(argv: list) -> str:
	return shlex.join([str(arg) for arg in argv])

#============================================

def log_cmd(argv: list, level: int = logging.INFO) -> None:
	logger.log(level, "CMD: '%s'", format_cmd(argv))
	return

#============================================

def parse_seconds(raw_value) -> float:
	"""
	Parse a duration in seconds from int, float, or decimal string.

	ffprobe reports durations as strings ("25.025000"); config files
	carry plain numbers. Negative, infinite and NaN values are rejected.
	"""
	if raw_value is None:
		raise ValueError("duration value is required")
	if isinstance(raw_value, bool):
		raise ValueError("duration must be a number, not a boolean")
	if isinstance(raw_value, (int, float)):
		value = float(raw_value)
	elif isinstance(raw_value, str):
		value = float(raw_value.strip())
	else:
		raise ValueError(f"unsupported duration value: {raw_value!r}")
	if math.isnan(value) or math.isinf(value):
		raise ValueError(f"duration must be finite: {raw_value!r}")
	if value < 0:
		raise ValueError(f"duration must not be negative: {raw_value!r}")
	return value

#============================================

def ensure_dir(dirpath: str) -> str:
	if not os.path.isdir(dirpath):
		os.makedirs(dirpath, exist_ok=True)
	return dirpath

#============================================

def basename(filepath: str) -> str:
	return os.path.basename(os.fspath(filepath))
