"""Git plumbing: ref resolution and isolated working trees per revision."""

import os
from typing import Optional

from k8sdiff.constants import DEFAULT_BRANCH_FALLBACK, REMOTE_NAME
from k8sdiff.errors import K8sDiffError
from k8sdiff.errors_catalog import actionable_error
from k8sdiff.models import ResolvedRevision


class GitService:
    """Resolves refs and materializes a clean checkout for a given commit."""

    def __init__(self, command_runner, filesystem_service, logger, console, repo_dir: Optional[str] = None):
        self.command_runner = command_runner
        self.filesystem_service = filesystem_service
        self.logger = logger
        self.console = console
        self.repo_dir = repo_dir or os.getcwd()

    def _git(self, *args: str, cwd: Optional[str] = None) -> str:
        result = self.command_runner.run(
            ["git", *args],
            check=True,
            capture_output=True,
            cwd=cwd or self.repo_dir,
        )
        return (result.stdout or "").strip()

    def default_branch(self) -> str:
        try:
            symbolic_ref = self._git("symbolic-ref", f"refs/remotes/{REMOTE_NAME}/HEAD")
        except K8sDiffError as exc:
            self.logger.debug("Could not determine default branch: %s", exc)
            return DEFAULT_BRANCH_FALLBACK

        branch = symbolic_ref.replace(f"refs/remotes/{REMOTE_NAME}/", "")
        return branch or DEFAULT_BRANCH_FALLBACK

    def current_commit(self) -> Optional[str]:
        try:
            return self._git("rev-parse", "HEAD") or None
        except K8sDiffError as exc:
            self.logger.debug("Could not determine current commit: %s", exc)
            return None

    def resolve_ref(self, ref: str) -> str:
        try:
            return self._git("rev-parse", ref)
        except K8sDiffError:
            self.logger.info("Failed to resolve %s, trying %s/%s...", ref, REMOTE_NAME, ref)

        try:
            return self._git("rev-parse", f"{REMOTE_NAME}/{ref}")
        except K8sDiffError as exc:
            raise K8sDiffError(actionable_error("ref_not_found", ref=ref, remote=REMOTE_NAME)) from exc

    def materialize(
        self,
        ref: str,
        target_dir: str,
        current_commit: Optional[str] = None,
    ) -> ResolvedRevision:
        """Checks out ``ref`` into ``target_dir``.

        When the resolved commit equals ``current_commit`` the invoking working tree
        is returned as-is and no clone happens.
        """
        self.filesystem_service.cleanup_dir(target_dir)
        commit_id = self.resolve_ref(ref)

        if current_commit and commit_id == current_commit:
            self.console.print(f"[blue]Ref {ref} is the current checkout, reusing working tree.[/blue]")
            self.logger.info("Reusing current working tree for %s (%s)", ref, commit_id)
            return ResolvedRevision(ref=ref, commit_id=commit_id, tree_path=self.repo_dir, reused_worktree=True)

        self.console.print(f"[blue]Cloning ref {ref}...[/blue]")
        self.logger.info("Cloning %s (%s) into %s", ref, commit_id, target_dir)
        self._git("clone", ".", target_dir)
        self._git("checkout", commit_id, cwd=target_dir)
        return ResolvedRevision(ref=ref, commit_id=commit_id, tree_path=target_dir)
