#!/usr/bin/env python3

"""
In-memory job table that makes sure each job id is started once.
"""

import enum
import logging
import threading

logger = logging.getLogger(__name__)

#============================================

class JobState(enum.Enum):
	IN_PROGRESS = 'in_progress'
	DONE = 'done'

#============================================

class Job():
	def __init__(self, job_id: str):
		self.job_id = job_id
		# None while the start function is still running
		self.state = None
		self.error = None
		self.ready = threading.Event()

	#============================
	def __repr__(self) -> str:
		return f"Job({self.job_id!r}, {self.state})"

#============================================

class JobRegistry():
	"""
	Map of job id to job state.

	get_or_start() decides "new or existing" under the lock and installs a
	pending entry for new ids. The start function then runs outside the
	lock; callers racing on the same id wait for it instead of starting
	their own. Entries are never evicted.
	"""
	def __init__(self):
		self._lock = threading.Lock()
		self._done = threading.Condition(self._lock)
		self._jobs = {}

	#============================
	def __len__(self) -> int:
		with self._lock:
			return len(self._jobs)

	#============================
	def __contains__(self, job_id: str) -> bool:
		return self.get_state(job_id) is not None

	#============================
	def job_ids(self) -> list:
		with self._lock:
			return list(self._jobs.keys())

	#============================
	def get_state(self, job_id: str):
		with self._lock:
			job = self._jobs.get(job_id)
			if job is None:
				return None
			return job.state

	#============================
	def get_or_start(self, job_id: str, start_fn) -> JobState:
		with self._lock:
			job = self._jobs.get(job_id)
			winner = job is None
			if winner:
				job = Job(job_id)
				self._jobs[job_id] = job
		if not winner:
			return self._wait_ready(job)
		try:
			start_fn()
		except BaseException as exc:
			with self._lock:
				# forget the attempt so a later request can start over
				if self._jobs.get(job_id) is job:
					del self._jobs[job_id]
				job.error = exc
				self._done.notify_all()
			job.ready.set()
			raise
		with self._lock:
			if job.state is None:
				job.state = JobState.IN_PROGRESS
			state = job.state
		job.ready.set()
		logger.debug("job %s started", job_id)
		return state

	#============================
	def _wait_ready(self, job: Job) -> JobState:
		job.ready.wait()
		if job.error is not None:
			raise job.error
		with self._lock:
			return job.state

	#============================
	def mark_done(self, job_id: str) -> None:
		with self._lock:
			job = self._jobs.get(job_id)
			if job is None:
				logger.warning("mark_done for unknown job %s", job_id)
				return
			job.state = JobState.DONE
			self._done.notify_all()
		logger.info("job %s done", job_id)

	#============================
	def wait_until_done(self, job_id: str, timeout: float = None) -> bool:
		with self._lock:
			if job_id not in self._jobs:
				raise KeyError(job_id)
			self._done.wait_for(lambda: self._is_settled(job_id), timeout=timeout)
			job = self._jobs.get(job_id)
			return job is not None and job.state is JobState.DONE

	#============================
	def _is_settled(self, job_id: str) -> bool:
		job = self._jobs.get(job_id)
		# a failed start removes the entry
		return job is None or job.state is JobState.DONE
