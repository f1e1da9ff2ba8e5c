#!/usr/bin/env python3

import argparse
import logging
import sys
import yaml
from parachutelib.core.config import load_config
from parachutelib.core.errors import ParachuteError
from parachutelib.core.orchestrator import Parachute

#============================================

def parse_args(argv: list = None):
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="On-demand HLS packager")
	parser.add_argument('-c', '--config', dest='config_file',
		help='yaml config with tool paths and the cdn directory')
	parser.add_argument('-i', '--input', dest='input_file', required=True,
		help='media file to package')
	parser.add_argument('-j', '--id', dest='job_id', required=True,
		help='job id; names every output artifact')
	parser.add_argument('-o', '--cdn-dir', dest='cdn_dir',
		help='override output.cdn_dir from the config')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='probe and print the plan, do not write or encode')
	parser.add_argument('-w', '--wait', dest='wait', action='store_true',
		help='block until the encoder exits')
	parser.add_argument('-W', '--no-wait', dest='wait', action='store_false',
		help='return as soon as the encoder is started')
	parser.add_argument('-v', '--verbose', dest='verbose', action='store_true',
		help='debug logging')
	parser.set_defaults(wait=False)
	args = parser.parse_args(argv)
	return args

#============================================

def main(argv: list = None) -> int:
	args = parse_args(argv)
	level = logging.DEBUG if args.verbose else logging.INFO
	logging.basicConfig(level=level,
		format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	try:
		config = load_config(args.config_file, cdn_dir_override=args.cdn_dir,
			create_dirs=not args.dry_run)
		parachute = Parachute.from_config(config)
		if args.dry_run:
			plan = parachute.plan_job(args.job_id, args.input_file)
			print(yaml.safe_dump(plan, sort_keys=False))
			return 0
		state = parachute.play_video(args.job_id, args.input_file)
		print(f"{args.job_id}: {state.value}")
		if args.wait:
			parachute.wait(args.job_id)
			print(f"{args.job_id}: {parachute.job_state(args.job_id).value}")
	except (ParachuteError, ValueError) as exc:
		print(f"error: {exc}", file=sys.stderr)
		return 1
	return 0


if __name__ == '__main__':
	sys.exit(main())
