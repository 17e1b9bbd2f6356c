"""
File transfer domain
"""
from .models import TransferManifest, TransferReport, normalize_remote_path
from .transferer import FileTransferer, ProgressCallback

__all__ = [
    "FileTransferer",
    "ProgressCallback",
    "TransferManifest",
    "TransferReport",
    "normalize_remote_path",
]
