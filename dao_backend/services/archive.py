"""
Proposal cold storage.

Proposals are mirrored as JSON objects into an S3-compatible bucket. Writes
are detached background tasks: the request that triggered them never waits
for, nor fails because of, the upload. Delivery is best effort.
"""
import io
import json
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlparse

from minio import Minio
from minio.error import S3Error

from dao_backend.config.settings import ArchiveSettings
from dao_backend.exceptions import ArchiveError
from dao_backend.utils.logger import logger


def proposal_object_name(proposal_id: str) -> str:
    return f"proposal::{proposal_id}.json"


class ProposalArchive:
    """Fire-and-forget writer for proposal snapshots."""

    def __init__(self, settings: ArchiveSettings, client: Optional[Minio] = None,
                 executor: Optional[ThreadPoolExecutor] = None):
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._bucket = settings.bucket
        if client is None:
            parsed = urlparse(self._base_url)
            client = Minio(
                parsed.netloc or parsed.path,
                access_key=settings.access_key,
                secret_key=settings.secret_key,
                secure=parsed.scheme == "https",
                region=settings.region,
            )
        self._client = client
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="proposal-archive")

    def ensure_bucket(self) -> None:
        """Create the bucket when missing. Failures are logged, not raised."""
        try:
            if self._client.bucket_exists(self._bucket):
                logger.info("Bucket '%s' already exists", self._bucket)
            else:
                self._client.make_bucket(self._bucket)
                logger.info("Bucket '%s' created successfully", self._bucket)
        except S3Error as e:
            logger.warning("Proposal archive initialization failed, storage operations may fail: %s", e)

    def asset_url(self, proposal_id: str) -> str:
        return f"{self._base_url}/{self._bucket}/{proposal_object_name(proposal_id)}"

    def _put(self, proposal_id: str, payload: Dict[str, Any], metadata: Optional[Dict[str, str]] = None) -> None:
        body = json.dumps(payload, indent=2, default=str).encode("utf-8")
        headers = {"x-amz-acl": "public-read"}
        if metadata:
            headers.update(metadata)
        try:
            self._client.put_object(
                self._bucket,
                proposal_object_name(proposal_id),
                io.BytesIO(body),
                length=len(body),
                content_type="application/json",
                metadata=headers,
            )
        except S3Error as e:
            raise ArchiveError(f"Failed to store proposal {proposal_id}: {e}") from e

    def _submit(self, proposal_id: str, payload: Dict[str, Any], metadata: Optional[Dict[str, str]] = None) -> Future:
        future = self._executor.submit(self._put, proposal_id, payload, metadata)

        def _report(done: Future) -> None:
            error = done.exception()
            if error is not None:
                logger.error("Failed to archive proposal %s: %s", proposal_id, error)
            else:
                logger.info("Proposal %s archived at %s", proposal_id, self.asset_url(proposal_id))

        future.add_done_callback(_report)
        return future

    def store_proposal(self, proposal_id: str, proposal: Dict[str, Any]) -> str:
        """Queue the initial snapshot and return where it will live."""
        self._submit(proposal_id, proposal)
        return self.asset_url(proposal_id)

    def update_proposal(self, proposal_id: str, proposal: Dict[str, Any]) -> str:
        """Queue a rewrite of the snapshot after a conclusion."""
        now = datetime.now(timezone.utc).isoformat()
        enriched = {
            **proposal,
            "_metadata": {
                "last_updated": now,
                "version": "concluded",
                "akave_storage": True,
            },
        }
        self._submit(proposal_id, enriched, {"update-type": "conclusion", "updated-at": now})
        return self.asset_url(proposal_id)

    def close(self) -> None:
        self._executor.shutdown(wait=True)
