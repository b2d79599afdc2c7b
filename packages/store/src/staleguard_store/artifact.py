"""ArtifactStore: revision state carried between CI runs as Actions artifacts.

Each successful run attaches one small artifact holding the head and base SHA
it evaluated. The next run on the same branch looks back through recent
successful runs of the same workflow to find it.

Why scan several runs instead of only the latest one:
- The workflow may contain jobs that are conditionally skipped, so the most
  recent successful run can finish without ever reaching the save step.
- Differently-triggered runs (push, manual dispatch) on the same branch
  succeed without producing state.
The first artifact found, newest run first, is the one used.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path

from rich.console import Console

from staleguard_store.base import BaseStateStore
from staleguard_store.errors import ArtifactError, StateFormatError, WorkflowNotFoundError
from staleguard_store.models import RunState, StateRecord
from staleguard_store.transport import ArtifactTransport

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_ARTIFACT_NAME = "staleguard-state"
DEFAULT_SEARCH_DEPTH = 10
STATE_FILENAME = "shas.txt"


class ArtifactStore(BaseStateStore):
    """Stores one state artifact per workflow run; reads back the newest one.

    `repo` is a PyGithub Repository. `current_run_id` is excluded from the
    search so a re-run never finds its own earlier attempt.
    """

    def __init__(
        self,
        repo,
        workflow_name: str,
        transport: ArtifactTransport,
        current_run_id: int | None = None,
        artifact_name: str = DEFAULT_ARTIFACT_NAME,
        search_depth: int = DEFAULT_SEARCH_DEPTH,
        staging_dir: str | None = None,
    ):
        self._repo = repo
        self._workflow_name = workflow_name
        self._transport = transport
        self._current_run_id = current_run_id
        self._artifact_name = artifact_name
        self._search_depth = search_depth
        self._owns_staging = staging_dir is None
        self._staging_dir = Path(staging_dir or tempfile.mkdtemp(prefix="staleguard-"))
        self._workflow = None

    def _get_workflow(self):
        if self._workflow is None:
            console.print(f"Searching for workflow {self._workflow_name!r}")
            workflows = list(self._repo.get_workflows())
            logger.debug("%d workflows found", len(workflows))
            self._workflow = next((w for w in workflows if w.name == self._workflow_name), None)
            if self._workflow is None:
                raise WorkflowNotFoundError(f'Workflow "{self._workflow_name}" not found.')
        return self._workflow

    def _recent_runs(self, branch: str, limit: int) -> list:
        """Newest successful runs on the branch, excluding the current one.

        Iterates lazily and stops after `limit` runs so PyGithub never fetches
        pages we will not look at.
        """
        runs = []
        for run in self._get_workflow().get_runs(branch=branch, status="success"):
            if self._current_run_id is not None and run.id == self._current_run_id:
                continue
            runs.append(run)
            if len(runs) >= limit:
                break
        return runs

    def _find_artifact(self, run):
        for artifact in run.get_artifacts():
            if artifact.name == self._artifact_name and not artifact.expired:
                return artifact
        return None

    def load_previous(self, branch: str) -> StateRecord | None:
        runs = self._recent_runs(branch, self._search_depth)
        if not runs:
            console.print(f"No successful workflow run found for branch {branch!r}.")
            return None

        for run in runs:
            console.print(f"Searching for state artifact in workflow run {run.id}...")
            artifact = self._find_artifact(run)
            if artifact is None:
                continue
            console.print(f"Downloading artifact {artifact.id} of workflow run {run.id}")
            return StateRecord.from_text(self._transport.download(artifact, STATE_FILENAME))

        console.print(f"No state artifact in the last {len(runs)} successful run(s). Skipping check.")
        return None

    def check_writable(self) -> None:
        self._transport.ensure_can_upload()

    def save(self, record: StateRecord) -> None:
        path = self._staging_dir / STATE_FILENAME
        path.write_text(record.to_text(), encoding="utf-8")
        artifact_id = self._transport.upload(self._artifact_name, path)
        console.print(f"Saved state {record.head_sha[:7]}/{record.base_sha[:7]} as artifact {artifact_id}")

    def list_states(self, branch: str, limit: int) -> list[RunState]:
        """Unlike load_previous, an unreadable artifact is reported on its row."""
        states = []
        for run in self._recent_runs(branch, limit):
            artifact = self._find_artifact(run)
            state = RunState(run_id=run.id, created_at=run.created_at)
            if artifact is not None:
                state.artifact_id = artifact.id
                try:
                    state.record = StateRecord.from_text(self._transport.download(artifact, STATE_FILENAME))
                except (StateFormatError, ArtifactError) as e:
                    logger.warning("Artifact %s of run %s is unreadable: %s", artifact.id, run.id, e)
                    state.error = str(e)
            states.append(state)
        return states

    def close(self) -> None:
        if self._owns_staging:
            shutil.rmtree(self._staging_dir, ignore_errors=True)
