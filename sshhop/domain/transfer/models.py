"""
Transfer data models
"""
from dataclasses import dataclass, field
from pathlib import Path, PurePath
from typing import List, Sequence, Union


def normalize_remote_path(path: Union[str, PurePath]) -> str:
    """Convert a remote path to forward-slash form"""
    return str(path).replace("\\", "/")


@dataclass
class TransferManifest:
    """Local files to upload into one remote directory"""
    local_paths: List[Path]
    remote_dir: str

    @classmethod
    def build(
        cls,
        local_paths: Sequence[Union[str, Path]],
        remote_dir: Union[str, PurePath],
    ) -> "TransferManifest":
        return cls(
            local_paths=[Path(p) for p in local_paths],
            remote_dir=normalize_remote_path(remote_dir),
        )

    @property
    def segments(self) -> List[str]:
        """Non-empty directory names below the remote root, in order"""
        return [s for s in self.remote_dir.split("/") if s]


@dataclass
class TransferReport:
    """Per-batch upload summary"""
    requested: int
    uploaded: List[Path] = field(default_factory=list)
    failed: List[Path] = field(default_factory=list)

    @property
    def all_succeeded(self) -> bool:
        return len(self.uploaded) == self.requested
