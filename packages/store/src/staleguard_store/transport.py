"""Upload and download of GitHub Actions artifacts.

Listing runs and artifacts goes through the public REST API (PyGithub), but
uploading does not: artifacts are created through the Actions results service
that `actions/upload-artifact` talks to, authenticated with the job's
ACTIONS_RUNTIME_TOKEN. The upload is three calls:

  1. CreateArtifact   → returns a signed blob URL
  2. PUT the zip      → the whole archive in one request
  3. FinalizeArtifact → with size and sha256; only now is the artifact visible

If any step fails the artifact is never finalized, so a half-written state
can never be found by a later run.
"""

from __future__ import annotations

import base64
import hashlib
import io
import json
import logging
import os
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path

import requests

from staleguard_store.errors import ArtifactError

logger = logging.getLogger(__name__)

_TWIRP_SERVICE = "twirp/github.actions.results.api.v1.ArtifactService"
_RESULTS_SCOPE_PREFIX = "Actions.Results:"
_ARTIFACT_VERSION = 4
_TIMEOUT = 30


class ArtifactTransport(ABC):
    """Moves a single named file in and out of the artifact blob store."""

    @abstractmethod
    def upload(self, name: str, path: Path) -> int:
        """Upload `path` as a new artifact called `name`; return the artifact id."""

    @abstractmethod
    def download(self, artifact, filename: str) -> str:
        """Return the text content of `filename` inside a listed artifact."""

    def ensure_can_upload(self) -> None:
        """Raise ArtifactError if upload() is bound to fail for lack of credentials.

        Default is a no-op for transports that need nothing beyond their
        constructor arguments.
        """


def _backend_ids(runtime_token: str) -> tuple[str, str]:
    """Extract the workflow run and job backend ids from the runtime token.

    The token is a JWT whose `scp` claim contains a scope of the form
    `Actions.Results:<workflow_run_backend_id>:<workflow_job_run_backend_id>`.
    """
    try:
        payload = runtime_token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (IndexError, ValueError) as e:
        raise ArtifactError(f"ACTIONS_RUNTIME_TOKEN is not a valid JWT: {e}")

    for scope in str(claims.get("scp", "")).split():
        if scope.startswith(_RESULTS_SCOPE_PREFIX):
            parts = scope.split(":")
            if len(parts) == 3:
                return parts[1], parts[2]
    raise ArtifactError("ACTIONS_RUNTIME_TOKEN carries no Actions.Results scope")


def _zip_single_file(path: Path) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        zf.write(path, arcname=path.name)
    return buf.getvalue()


class ActionsArtifactTransport(ArtifactTransport):
    """Artifact transport for jobs running inside GitHub Actions."""

    def __init__(
        self,
        token: str,
        runtime_token: str | None = None,
        results_url: str | None = None,
        session: requests.Session | None = None,
    ):
        self._token = token
        self._runtime_token = runtime_token if runtime_token is not None else os.environ.get("ACTIONS_RUNTIME_TOKEN")
        self._results_url = results_url if results_url is not None else os.environ.get("ACTIONS_RESULTS_URL")
        self._session = session or requests.Session()

    def _twirp(self, method: str, body: dict) -> dict:
        url = f"{self._results_url.rstrip('/')}/{_TWIRP_SERVICE}/{method}"
        response = self._session.post(
            url,
            json=body,
            headers={"Authorization": f"Bearer {self._runtime_token}"},
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        data = response.json()
        if not data.get("ok"):
            raise ArtifactError(f"{method} was rejected by the results service: {data}")
        return data

    def ensure_can_upload(self) -> None:
        if not self._runtime_token or not self._results_url:
            raise ArtifactError(
                "Uploading artifacts requires ACTIONS_RUNTIME_TOKEN and ACTIONS_RESULTS_URL "
                "(only available inside a GitHub Actions job)."
            )
        _backend_ids(self._runtime_token)

    def upload(self, name: str, path: Path) -> int:
        self.ensure_can_upload()
        run_backend_id, job_backend_id = _backend_ids(self._runtime_token)
        ids = {
            "workflow_run_backend_id": run_backend_id,
            "workflow_job_run_backend_id": job_backend_id,
        }

        created = self._twirp("CreateArtifact", {**ids, "name": name, "version": _ARTIFACT_VERSION})

        archive = _zip_single_file(path)
        put = self._session.put(
            created["signed_upload_url"],
            data=archive,
            headers={"x-ms-blob-type": "BlockBlob", "Content-Type": "application/zip"},
            timeout=_TIMEOUT,
        )
        put.raise_for_status()

        finalized = self._twirp(
            "FinalizeArtifact",
            {
                **ids,
                "name": name,
                "size": str(len(archive)),
                "hash": f"sha256:{hashlib.sha256(archive).hexdigest()}",
            },
        )
        artifact_id = int(finalized.get("artifact_id", 0))
        logger.debug("Uploaded artifact %s (%d bytes) as id %d", name, len(archive), artifact_id)
        return artifact_id

    def download(self, artifact, filename: str) -> str:
        response = self._session.get(
            artifact.archive_download_url,
            headers={
                "Authorization": f"Bearer {self._token}",
                "Accept": "application/vnd.github+json",
            },
            timeout=_TIMEOUT,
        )
        response.raise_for_status()
        try:
            with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
                return zf.read(filename).decode("utf-8")
        except KeyError:
            raise ArtifactError(f"Artifact {artifact.id} does not contain {filename}")
        except zipfile.BadZipFile as e:
            raise ArtifactError(f"Artifact {artifact.id} is not a valid zip archive: {e}")
