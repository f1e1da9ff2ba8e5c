#!/usr/bin/env python3

import os
import yaml
from parachutelib.core import manifest
from parachutelib.core import utils
from parachutelib.core.errors import ConfigError

#============================================

CONFIG_VERSION = 1
DEFAULT_TARGET_DURATION = manifest.DEFAULT_TARGET_DURATION
DEFAULT_BANDWIDTH = manifest.DEFAULT_BANDWIDTH
DEFAULT_AVERAGE_BANDWIDTH = manifest.DEFAULT_AVERAGE_BANDWIDTH

#============================================

class ParachuteConfig():
	def __init__(self):
		self.config_file = None
		self.ffprobe_path = 'ffprobe'
		self.ffmpeg_path = 'ffmpeg'
		self.cdn_dir = os.path.join(os.getcwd(), 'cdn')
		self.target_duration = DEFAULT_TARGET_DURATION
		self.bandwidth = DEFAULT_BANDWIDTH
		self.average_bandwidth = DEFAULT_AVERAGE_BANDWIDTH

	#============================
	def as_dict(self) -> dict:
		return {
			'tools': {
				'ffprobe': self.ffprobe_path,
				'ffmpeg': self.ffmpeg_path,
			},
			'output': {'cdn_dir': self.cdn_dir},
			'segments': {'target_duration': self.target_duration},
			'master': {
				'bandwidth': self.bandwidth,
				'average_bandwidth': self.average_bandwidth,
			},
		}

#============================================

class ConfigLoader():
	def __init__(self, yaml_file: str = None, cdn_dir_override: str = None,
		create_dirs: bool = True):
		self.yaml_file = yaml_file
		self.cdn_dir_override = cdn_dir_override
		self.create_dirs = create_dirs

	#============================
	def load(self) -> ParachuteConfig:
		config = ParachuteConfig()
		config.config_file = self.yaml_file
		data = {}
		if self.yaml_file is not None:
			data = self._load_yaml()
			self._validate_version(data)
		(config.ffprobe_path, config.ffmpeg_path) = self._parse_tools(
			data.get('tools', {}))
		config.cdn_dir = self._parse_output(data.get('output', {}), config.cdn_dir)
		config.target_duration = self._parse_segments(data.get('segments', {}))
		(config.bandwidth, config.average_bandwidth) = self._parse_master(
			data.get('master', {}))
		if self.create_dirs:
			try:
				utils.ensure_dir(config.cdn_dir)
			except OSError as exc:
				raise ConfigError(f"cannot create cdn dir {config.cdn_dir}: {exc}") from exc
		return config

	#============================
	def _load_yaml(self) -> dict:
		if not os.path.isfile(self.yaml_file):
			raise ConfigError(f"config file not found: {self.yaml_file}")
		file_size = os.path.getsize(self.yaml_file)
		if file_size > 10 ** 6:
			raise ConfigError("config file is larger than 1MB")
		with open(self.yaml_file, 'r') as data_file:
			try:
				data = yaml.safe_load(data_file)
			except yaml.YAMLError as exc:
				raise ConfigError(f"config file is not valid yaml: {exc}") from exc
		if data is None:
			data = {}
		if not isinstance(data, dict):
			raise ConfigError("config must be a mapping at the top level")
		return data

	#============================
	def _validate_version(self, data: dict) -> None:
		version = data.get('parachute', CONFIG_VERSION)
		if version != CONFIG_VERSION:
			raise ConfigError(f"parachute must be set to {CONFIG_VERSION}")
		known_keys = ('parachute', 'tools', 'output', 'segments', 'master')
		for key in data:
			if key not in known_keys:
				raise ConfigError(f"unknown config key: {key}")

	#============================
	def _parse_tools(self, tools: dict) -> tuple:
		if not isinstance(tools, dict):
			raise ConfigError("tools must be a mapping")
		ffprobe_path = tools.get('ffprobe', 'ffprobe')
		ffmpeg_path = tools.get('ffmpeg', 'ffmpeg')
		for name, value in (('ffprobe', ffprobe_path), ('ffmpeg', ffmpeg_path)):
			if not isinstance(value, str) or not value.strip():
				raise ConfigError(f"tools.{name} must be a non-empty string")
		return (ffprobe_path, ffmpeg_path)

	#============================
	def _parse_output(self, output: dict, default_dir: str) -> str:
		if not isinstance(output, dict):
			raise ConfigError("output must be a mapping")
		cdn_dir = output.get('cdn_dir', default_dir)
		if self.cdn_dir_override is not None:
			cdn_dir = self.cdn_dir_override
		if not isinstance(cdn_dir, str) or not cdn_dir.strip():
			raise ConfigError("output.cdn_dir must be a non-empty string")
		cdn_dir = os.path.expanduser(cdn_dir)
		# relative paths resolve against the config file, not the cwd
		if not os.path.isabs(cdn_dir) and self.yaml_file is not None:
			config_dir = os.path.dirname(os.path.abspath(self.yaml_file))
			cdn_dir = os.path.join(config_dir, cdn_dir)
		return os.path.abspath(cdn_dir)

	#============================
	def _parse_segments(self, segments: dict) -> float:
		if not isinstance(segments, dict):
			raise ConfigError("segments must be a mapping")
		raw_target = segments.get('target_duration', DEFAULT_TARGET_DURATION)
		try:
			target = utils.parse_seconds(raw_target)
		except ValueError as exc:
			raise ConfigError(f"segments.target_duration: {exc}") from exc
		if target <= 0:
			raise ConfigError("segments.target_duration must be positive")
		return target

	#============================
	def _parse_master(self, master: dict) -> tuple:
		if not isinstance(master, dict):
			raise ConfigError("master must be a mapping")
		values = []
		for key, default in (('bandwidth', DEFAULT_BANDWIDTH),
			('average_bandwidth', DEFAULT_AVERAGE_BANDWIDTH)):
			value = master.get(key, default)
			if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
				raise ConfigError(f"master.{key} must be a positive integer")
			values.append(value)
		if values[1] > values[0]:
			raise ConfigError("master.average_bandwidth must not exceed master.bandwidth")
		return tuple(values)

#============================================

def load_config(yaml_file: str = None, cdn_dir_override: str = None,
	create_dirs: bool = True) -> ParachuteConfig:
	loader = ConfigLoader(yaml_file, cdn_dir_override=cdn_dir_override,
		create_dirs=create_dirs)
	return loader.load()
