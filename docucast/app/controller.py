"""
Conversion Job Controller
=========================
Owns the lifecycle of one remote conversion job: submit, poll, map status
to progress, complete, fail or cancel.

State only changes through the controller and is published on an ordered
state stream, so any front end (CLI, TUI, tests) can observe it without
sharing mutable fields.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

from docucast.app.config import AppConfig
from docucast.app.events import (
    Cancelled,
    Completed,
    Failed,
    Idle,
    InProgress,
    JobPhase,
    JobState,
    Submitting,
    SynthesisStyle,
    is_active,
    is_terminal,
)
from docucast.app.progress import PhaseUpdate, ProgressMapper
from docucast.concurrency import CancellationToken, RetryPolicy, StateStream, Subscription
from docucast.errors import (
    AlreadyRunningError,
    JobErrorKind,
    MalformedResponseError,
    MissingCredentialsError,
    RemoteRejectedError,
    RemoteServiceError,
)
from docucast.ingestion.source import ResolvedSource, resolve_source
from docucast.remote.base import RemoteConversionClient, StatusReport
from docucast.voices import DEFAULT_VOICE_1, DEFAULT_VOICE_2

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionRequest:
    """
    What to convert and how to narrate it.

    Attributes:
        source: http(s) URL or local path of a PDF
        voice_1: First host voice id
        voice_2: Second host voice id
        style: Narration style
    """
    source: Union[str, Path]
    voice_1: str = DEFAULT_VOICE_1
    voice_2: str = DEFAULT_VOICE_2
    style: SynthesisStyle = SynthesisStyle.PODCAST

    def __post_init__(self):
        if not isinstance(self.style, SynthesisStyle):
            object.__setattr__(self, "style", SynthesisStyle(self.style))
        if not self.voice_1 or not self.voice_2:
            raise ValueError("Both voices are required")


class ProgressTracker:
    """
    Keeps the progress of one job monotonically non-decreasing.

    The mapper is re-evaluated for every status; any result below the
    last emitted value is replaced by that value.
    """

    def __init__(self, mapper: Optional[ProgressMapper] = None):
        self.mapper = mapper or ProgressMapper()
        self.last: Optional[PhaseUpdate] = None

    @property
    def progress(self) -> float:
        return self.last.progress if self.last is not None else 0.0

    def update(self, raw_status: Optional[str]) -> PhaseUpdate:
        mapped = self.mapper.map(raw_status, self.last)
        if self.last is not None and mapped.progress < self.last.progress:
            logger.debug(
                f"Ignoring progress regression {self.last.progress:.2f} -> {mapped.progress:.2f} "
                f"for status {raw_status!r}"
            )
            mapped = self.last
        self.last = mapped
        return mapped


@dataclass
class ConversionJob:
    """
    Controller-owned record of the live job.

    Never handed to callers; they get a JobHandle instead.
    """
    local_id: str
    request: ConversionRequest
    source: ResolvedSource
    stream: StateStream[JobState]
    tracker: ProgressTracker
    token: CancellationToken = field(default_factory=CancellationToken)
    job_id: Optional[str] = None
    raw_status: Optional[str] = None
    updated_at: float = field(default_factory=time.time)
    task: Optional[asyncio.Task] = field(default=None, repr=False)

    @property
    def state(self) -> JobState:
        return self.stream.value


class JobHandle:
    """
    Read-only handle for a submitted job.

    Provides status checking, waiting and cancellation.
    """

    def __init__(self, job: ConversionJob, controller: "ConversionJobController"):
        self._job = job
        self._controller = controller

    @property
    def local_id(self) -> str:
        return self._job.local_id

    @property
    def job_id(self) -> Optional[str]:
        """Remote job id, None until the service assigns one."""
        return self._job.job_id

    @property
    def request(self) -> ConversionRequest:
        return self._job.request

    @property
    def state(self) -> JobState:
        return self._job.state

    @property
    def raw_status(self) -> Optional[str]:
        return self._job.raw_status

    @property
    def updated_at(self) -> float:
        return self._job.updated_at

    def is_active(self) -> bool:
        """Check if job is still submitting or in progress."""
        return is_active(self._job.state)

    def observe(self) -> Subscription[JobState]:
        return self._job.stream.subscribe()

    def cancel(self) -> bool:
        """Cancel this job if it is still the controller's live job."""
        if self._controller._job is not self._job:
            return False
        return self._controller.cancel()

    async def wait(self, timeout: Optional[float] = None) -> JobState:
        """
        Wait for the job to reach a terminal state.

        Args:
            timeout: Maximum time to wait (None = forever)

        Returns:
            The terminal state

        Raises:
            asyncio.TimeoutError: If the job is still running after `timeout`
        """
        sub = self._job.stream.subscribe()

        async def drain() -> JobState:
            last = self._job.state
            async for state in sub:
                last = state
            return last

        try:
            return await asyncio.wait_for(drain(), timeout=timeout)
        finally:
            sub.close()


class ConversionJobController:
    """
    Drives one remote conversion job at a time.

    Example:
        controller = ConversionJobController(client, config)
        handle = controller.submit(ConversionRequest(source="https://example.com/paper.pdf"))

        async for state in controller.observe_state():
            render(state)

        # From a cancel button:
        controller.cancel()
    """

    def __init__(
        self,
        client: RemoteConversionClient,
        config: Optional[AppConfig] = None,
        mapper: Optional[ProgressMapper] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        """
        Initialize the controller.

        Args:
            client: Remote conversion service
            config: Polling settings (defaults if None)
            mapper: Status classifier shared by all jobs
            retry_policy: Overrides the policy derived from config
        """
        self.client = client
        self.config = config or AppConfig()
        self.mapper = mapper or ProgressMapper()
        self.retry_policy = retry_policy or self.config.retry_policy
        self.poll_interval = self.config.poll_interval
        self.poll_timeout = self.config.poll_timeout

        self._stream: StateStream[JobState] = StateStream(Idle(), is_terminal)
        self._job: Optional[ConversionJob] = None
        self._background: set[asyncio.Task] = set()

    # ==================== Observation ====================

    @property
    def state(self) -> JobState:
        return self._stream.value

    def observe_state(self) -> Subscription[JobState]:
        """
        Subscribe to job states.

        The subscription yields the current state, then every transition
        in order, and ends after the next terminal state.
        """
        return self._stream.subscribe()

    def get_active_job(self) -> Optional[JobHandle]:
        if self._job is None or not is_active(self._job.state):
            return None
        return JobHandle(self._job, self)

    # ==================== Operations ====================

    def submit(self, request: ConversionRequest) -> JobHandle:
        """
        Start a new conversion job. Must be called from the event loop.

        Args:
            request: What to convert

        Returns:
            JobHandle for the new job

        Raises:
            AlreadyRunningError: If a job is submitting or in progress
            MissingCredentialsError: If the client has no credentials
            InvalidSourceError: If the source cannot be resolved
        """
        if self._job is not None and is_active(self._job.state):
            raise AlreadyRunningError(self._job.job_id or self._job.local_id)

        if not self.client.is_configured:
            raise MissingCredentialsError(", ".join(self.client.missing_credentials) or None)

        source = resolve_source(request.source)
        loop = asyncio.get_running_loop()

        if self._stream.completed:
            self._stream = StateStream(Idle(), is_terminal)

        job = ConversionJob(
            local_id=f"conv_{uuid.uuid4().hex[:12]}",
            request=request,
            source=source,
            stream=self._stream,
            tracker=ProgressTracker(self.mapper),
        )
        self._job = job
        logger.info(f"Submitting {job.local_id} source={source.describe()} style={request.style.value}")
        self._emit(job, Submitting())
        job.task = loop.create_task(self._run(job))
        return JobHandle(job, self)

    def cancel(self) -> bool:
        """
        Cancel the live job.

        The Cancelled state is published immediately; the remote cancel
        runs in the background and its failure is only logged.

        Returns:
            True if a job was cancelled, False if nothing was in flight
        """
        job = self._job
        if job is None or not is_active(job.state):
            return False

        self._emit(job, Cancelled())
        job.token.cancel()
        if job.job_id is not None:
            self._schedule_remote_cancel(job.job_id)
        return True

    async def shutdown(self, timeout: float = 5.0) -> None:
        """Cancel the live job and wait for background work to settle."""
        self.cancel()
        tasks = [t for t in self._background if not t.done()]
        if self._job is not None and self._job.task is not None and not self._job.task.done():
            tasks.append(self._job.task)
        if not tasks:
            return
        done, pending = await asyncio.wait(tasks, timeout=timeout)
        for task in pending:
            task.cancel()

    # ==================== Internal update path ====================

    def _is_live(self, job: ConversionJob) -> bool:
        return (
            job is self._job
            and not job.token.is_cancelled()
            and not is_terminal(job.state)
        )

    def _emit(self, job: ConversionJob, state: JobState) -> bool:
        if job is not self._job or is_terminal(job.state):
            logger.debug(f"Dropping late state for {job.local_id}: {state!r}")
            return False
        job.updated_at = time.time()
        logger.info(f"Job {job.local_id} -> {state!r}")
        return job.stream.publish(state)

    async def _run(self, job: ConversionJob) -> None:
        try:
            if await self._create(job):
                await self._poll(job)
        except Exception as e:
            logger.exception(f"Conversion {job.local_id} crashed")
            self._emit(job, Failed(JobErrorKind.REMOTE, f"Unexpected error: {e}"))

    async def _create(self, job: ConversionJob) -> bool:
        try:
            job_id = await self.client.create(job.request, job.source)
        except RemoteServiceError as e:
            self._emit(job, Failed(JobErrorKind.UNREACHABLE, e.message))
            return False
        except RemoteRejectedError as e:
            self._emit(job, Failed(JobErrorKind.REMOTE, e.message))
            return False
        except MalformedResponseError as e:
            self._emit(job, Failed(JobErrorKind.MALFORMED_RESPONSE, e.message))
            return False

        job.job_id = job_id
        if job.token.is_cancelled():
            # Cancelled while submitting; the remote job exists now
            self._schedule_remote_cancel(job_id)
            return False
        if not self._is_live(job):
            return False
        logger.info(f"Job {job.local_id} assigned remote id {job_id}")
        return True

    async def _poll(self, job: ConversionJob) -> None:
        failures = 0
        while self._is_live(job):
            try:
                report = await asyncio.wait_for(
                    self.client.status(job.job_id), timeout=self.poll_timeout
                )
            except (RemoteServiceError, asyncio.TimeoutError) as e:
                if not self._is_live(job):
                    return
                failures += 1
                reason = str(e) or "timed out"
                if self.retry_policy.exhausted(failures):
                    self._emit(job, Failed(
                        JobErrorKind.UNREACHABLE,
                        f"Status unavailable after {failures} attempts: {reason}",
                    ))
                    return
                delay = self.retry_policy.delay_for(failures)
                logger.warning(
                    f"Status fetch {failures}/{self.retry_policy.max_failures} failed for "
                    f"{job.job_id}: {reason}; retrying in {delay:.1f}s"
                )
                if not await job.token.sleep(delay):
                    return
                continue
            except RemoteRejectedError as e:
                self._emit(job, Failed(JobErrorKind.REMOTE, e.message))
                return
            except MalformedResponseError as e:
                self._emit(job, Failed(JobErrorKind.MALFORMED_RESPONSE, e.message))
                return

            if not self._is_live(job):
                logger.debug(f"Discarding late status for {job.local_id}: {report.raw_status!r}")
                return

            failures = 0
            self._apply(job, report)
            if is_terminal(job.state):
                return
            if not await job.token.sleep(self.poll_interval):
                return

    def _apply(self, job: ConversionJob, report: StatusReport) -> None:
        job.raw_status = report.raw_status

        if report.error:
            self._emit(job, Failed(JobErrorKind.REMOTE, report.error))
            return

        update = job.tracker.update(report.raw_status)
        if update.phase is JobPhase.COMPLETE:
            if report.audio_url:
                self._emit(job, Completed(report.audio_url))
            else:
                self._emit(job, Failed(
                    JobErrorKind.MALFORMED_RESPONSE,
                    "Remote reported completion without an audio URL",
                ))
            return

        state = InProgress(update.phase, update.progress, update.eta_seconds)
        if state != job.state:
            self._emit(job, state)

    def _schedule_remote_cancel(self, job_id: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning(f"No event loop; remote job {job_id} was not cancelled")
            return
        task = loop.create_task(self._remote_cancel(job_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _remote_cancel(self, job_id: str) -> None:
        try:
            await asyncio.wait_for(self.client.cancel(job_id), timeout=self.poll_timeout)
            logger.info(f"Remote job {job_id} cancelled")
        except Exception as e:
            logger.warning(f"Remote cancel failed for {job_id}: {e}")
