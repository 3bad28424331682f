"""Sequence uploads, submissions, polling, and persistence across a batch.

Jobs run strictly one after another: job N+1 is not submitted until job N's
results have been handed to the sink. The first unrecoverable failure aborts
the rest of the batch.
"""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import TYPE_CHECKING, Any

from genmedia.classify import raise_sanitized
from genmedia.cleanup import managed_asset
from genmedia.models import GenerationParams, JobResult, RequestKind
from genmedia.operations import OperationPoller, OperationSubmitter, default_model
from genmedia.polling import OPERATION_POLL_POLICY
from genmedia.results import extract_all
from genmedia.uploads import AssetUploader

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from pathlib import Path

    from genmedia.classify import RuntimeMode
    from genmedia.models import ClipRange, OperationHandle
    from genmedia.polling import PollPolicy
    from genmedia.providers.base import MediaBackend

    Sink = Callable[[JobResult], Awaitable[Any]]
    ProgressCallback = Callable[[OperationHandle, float], Any]


class BatchOrchestrator:
    """Runs batches of prompts against one backend."""

    def __init__(
        self,
        backend: MediaBackend,
        *,
        mode: RuntimeMode = "default",
        uploader: AssetUploader | None = None,
        submitter: OperationSubmitter | None = None,
        poller: OperationPoller | None = None,
        operation_policy: PollPolicy = OPERATION_POLL_POLICY,
        logger: logging.Logger | None = None,
    ) -> None:
        self.backend = backend
        self.mode = mode
        self._log = logger or logging.getLogger(__name__)
        self.uploader = uploader or AssetUploader(backend, mode=mode, logger=logger)
        self.submitter = submitter or OperationSubmitter(
            backend, mode=mode, logger=logger
        )
        self.poller = poller or OperationPoller(backend, mode=mode, logger=logger)
        self.operation_policy = operation_policy

    async def run_job(
        self,
        kind: RequestKind,
        params: GenerationParams,
        *,
        on_progress: ProgressCallback | None = None,
    ) -> JobResult:
        """Submit, wait for, and extract one job."""
        handle = await self.submitter.submit(kind, params)
        handle = await self.poller.wait(
            handle, self.operation_policy, on_progress=on_progress
        )
        try:
            refs = tuple(extract_all(handle))
        except Exception as e:
            raise_sanitized(e, self.mode)
        return JobResult(
            prompt=params.prompt,
            kind=kind,
            model=params.model or default_model(kind),
            params=params,
            handle=handle,
            refs=refs,
        )

    async def run_batch(
        self,
        kind: RequestKind,
        prompts: Iterable[str],
        params: GenerationParams,
        *,
        sink: Sink | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> list[JobResult]:
        """Run one generation job per prompt, each built from *params*."""
        prompts = list(prompts)
        results: list[JobResult] = []
        for i, prompt in enumerate(prompts, start=1):
            self._log.info("Job %d/%d (%s)", i, len(prompts), kind.value)
            result = await self.run_job(
                kind, replace(params, prompt=prompt), on_progress=on_progress
            )
            if sink is not None:
                await sink(result)
            results.append(result)
        return results

    async def run_analysis_batch(
        self,
        path: str | Path,
        prompts: Iterable[str],
        *,
        model: str | None = None,
        clip: ClipRange | None = None,
        sink: Sink | None = None,
    ) -> list[JobResult]:
        """Upload *path* once, analyze it with every prompt, then delete it.

        The uploaded file is released exactly once, whether the batch
        finishes or stops at the first failure.
        """
        prompts = list(prompts)
        results: list[JobResult] = []
        async with managed_asset(self.uploader, path) as asset:
            base = GenerationParams(
                model=model,
                file_uri=asset.uri,
                mime_type=asset.mime_type,
                clip=clip,
            )
            for i, prompt in enumerate(prompts, start=1):
                self._log.info("Analysis %d/%d", i, len(prompts))
                result = await self.run_job(
                    RequestKind.VIDEO_ANALYSIS, replace(base, prompt=prompt)
                )
                if sink is not None:
                    await sink(result)
                results.append(result)
        return results
