"""
Filesystem Job Store

Stores specs and results as JSON files under a root directory:

- specs/{specHash}.json                         content-addressed spec
- jobs/{jobId}/spec.json                        per-job spec record
- results/{jobId}/{provider}/{timestamp_ms}.json one file per submission

Each provider has one result slot per job: list_results returns the
latest file per provider, ordered by provider. Files whose name is not a
millisecond timestamp are ignored.
"""

import asyncio
import logging
import re
import time
from pathlib import Path
from typing import List, Optional

from duckmesh.core.errors import SerializationError, SpecLookupError
from duckmesh.core.models import InferenceResult, JobSpec
from duckmesh.storage.base import JobStore
from duckmesh.transport.serialization import (
    decode_job_spec,
    decode_result,
    encode_json,
)

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def safe_name(value: str) -> str:
    """Make a provider address usable as a directory name."""
    cleaned = _UNSAFE_CHARS.sub("_", value)
    if not cleaned or cleaned in (".", ".."):
        raise ValueError(f"Unusable storage name: {value!r}")
    return cleaned


class FilesystemJobStore(JobStore):
    """JobStore persisted as JSON files."""

    def __init__(self, root: Path):
        self.root = Path(root)

    def _spec_path(self, spec_hash: str) -> Path:
        return self.root / "specs" / f"{safe_name(spec_hash)}.json"

    def _job_spec_path(self, job_id: int) -> Path:
        return self.root / "jobs" / str(int(job_id)) / "spec.json"

    def _results_dir(self, job_id: int) -> Path:
        return self.root / "results" / str(int(job_id))

    # Blocking file I/O runs in a worker thread via asyncio.to_thread.

    def _write_spec(self, job_id: int, spec: JobSpec, spec_hash: str) -> None:
        spec_path = self._spec_path(spec_hash)
        spec_path.parent.mkdir(parents=True, exist_ok=True)
        spec_path.write_text(encode_json(spec.to_dict()))

        record = dict(spec.to_dict(), specHash=spec_hash)
        job_path = self._job_spec_path(job_id)
        job_path.parent.mkdir(parents=True, exist_ok=True)
        job_path.write_text(encode_json(record))

    def _read_job_spec(self, job_id: int) -> Optional[str]:
        path = self._job_spec_path(job_id)
        if not path.exists():
            return None
        return path.read_text()

    def _write_result(self, job_id: int, provider: str, payload: dict) -> None:
        provider_dir = self._results_dir(job_id) / safe_name(provider)
        provider_dir.mkdir(parents=True, exist_ok=True)
        path = provider_dir / f"{time.time_ns() // 1_000_000}.json"
        path.write_text(encode_json(payload))

    def _read_latest_results(self, job_id: int) -> List[str]:
        results_dir = self._results_dir(job_id)
        if not results_dir.exists():
            return []

        texts = []
        for provider_dir in sorted(p for p in results_dir.iterdir() if p.is_dir()):
            files = []
            for path in provider_dir.glob("*.json"):
                if path.stem.isdigit():
                    files.append(path)
                else:
                    logger.warning(f"Skipping unexpected file in result store: {path}")
            if not files:
                continue
            latest = max(files, key=lambda p: int(p.stem))
            texts.append(latest.read_text())
        return texts

    async def store_job_spec(self, job_id: int, spec: JobSpec) -> str:
        spec_hash = spec.content_hash()
        await asyncio.to_thread(self._write_spec, job_id, spec, spec_hash)
        logger.debug(f"Stored spec {spec_hash[:16]} for job {job_id}")
        return spec_hash

    async def get_spec_by_hash(self, spec_hash: str) -> JobSpec:
        try:
            path = self._spec_path(spec_hash)
            text = await asyncio.to_thread(path.read_text)
            return decode_job_spec(text)
        except (OSError, ValueError, SerializationError) as e:
            raise SpecLookupError(
                f"Failed to retrieve job spec for hash: {spec_hash}"
            ) from e

    async def get_spec_by_job_id(self, job_id: int) -> Optional[JobSpec]:
        try:
            text = await asyncio.to_thread(self._read_job_spec, job_id)
            if text is None:
                return None
            return decode_job_spec(text)
        except (OSError, SerializationError) as e:
            logger.error(f"Error reading spec record for job {job_id}: {e}")
            return None

    async def store_result(
        self,
        job_id: int,
        provider: str,
        result: InferenceResult,
    ) -> None:
        payload = result.to_dict()
        payload["provider"] = provider
        await asyncio.to_thread(self._write_result, job_id, provider, payload)

        logger.info(f"Stored result for job {job_id} from {provider}")

    async def list_results(self, job_id: int) -> List[InferenceResult]:
        texts = await asyncio.to_thread(self._read_latest_results, job_id)
        return [decode_result(text) for text in texts]
