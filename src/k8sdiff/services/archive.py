"""Archive extraction helpers for k8s-diff."""

import os
import shutil
import tarfile
from pathlib import Path

from k8sdiff.errors import K8sDiffError
from k8sdiff.errors_catalog import actionable_error


class ArchiveService:
    """Encapsulates safe tarball extraction logic."""

    def is_within_dir(self, base_dir: Path, candidate: Path) -> bool:
        try:
            return os.path.commonpath([str(base_dir), str(candidate)]) == str(base_dir)
        except ValueError:
            return False

    def safe_extract_tar(self, tar_path: str, destination_dir: str):
        base = Path(destination_dir).resolve()
        base.mkdir(parents=True, exist_ok=True)

        try:
            with tarfile.open(tar_path, "r:*") as tar_ref:
                members = tar_ref.getmembers()
                for member in members:
                    target_path = (base / member.name).resolve()

                    if not self.is_within_dir(base, target_path):
                        raise K8sDiffError(actionable_error("unsafe_archive", member=member.name))

                    if member.issym() or member.islnk():
                        raise K8sDiffError(actionable_error("unsafe_archive", member=member.name))

                    if member.isdev():
                        raise K8sDiffError(actionable_error("unsafe_archive", member=member.name))

                for member in members:
                    target_path = (base / member.name).resolve()

                    if member.isdir():
                        target_path.mkdir(parents=True, exist_ok=True)
                        continue

                    target_path.parent.mkdir(parents=True, exist_ok=True)
                    source = tar_ref.extractfile(member)
                    if source is None:
                        continue
                    with source, open(target_path, "wb") as dst:
                        shutil.copyfileobj(source, dst)
                    os.chmod(target_path, member.mode & 0o755)
        except tarfile.TarError as exc:
            raise K8sDiffError(f"Invalid tar archive: {tar_path}") from exc
