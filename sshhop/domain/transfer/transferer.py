"""
SFTP upload of a file batch into a remote directory
"""
import socket
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Union

import paramiko

from ...core.constants import REMOTE_ROOT
from ...core.exceptions import TransferError
from ...core.logging import get_logger
from ...core.session import SessionHandle
from .models import TransferManifest, TransferReport

logger = get_logger(__name__)

# (file name, bytes sent, total bytes)
ProgressCallback = Callable[[str, int, int], None]


class FileTransferer:
    """Uploads files over one sftp channel per batch"""

    def __init__(self, progress_callback: Optional[ProgressCallback] = None):
        self.progress_callback = progress_callback

    def copy_files(
        self,
        session: SessionHandle,
        local_paths: Sequence[Union[str, Path]],
        remote_dir: Union[str, Path],
    ) -> bool:
        """Upload `local_paths` into `remote_dir`; True iff every file made it"""
        manifest = TransferManifest.build(local_paths, remote_dir)
        return self.upload(session, manifest).all_succeeded

    def upload(self, session: SessionHandle, manifest: TransferManifest) -> TransferReport:
        """
        Upload a manifest.

        Missing remote directories are created one segment at a time.
        A file that can not be read or sent is logged and skipped.

        Raises:
            NotConnectedError: If the session is gone
            TransferError: If the sftp channel or the remote directory
                can not be set up, or the channel drops mid-batch
        """
        report = TransferReport(requested=len(manifest.local_paths))

        try:
            sftp = session.open_sftp()
        except (paramiko.SSHException, socket.error, EOFError) as e:
            raise TransferError(f"Failed to open sftp channel on {session.address}: {e}") from e

        try:
            logger.debug(f"Trying to access remote directory: {manifest.remote_dir}")
            try:
                sftp.chdir(REMOTE_ROOT)
                self._enter_directories(sftp, manifest.segments)
            except (IOError, paramiko.SFTPError, paramiko.SSHException, EOFError) as e:
                raise TransferError(
                    f"Failed to prepare remote directory {manifest.remote_dir}: {e}"
                ) from e

            logger.debug("Start uploading")
            for path in manifest.local_paths:
                if self._upload_one(sftp, path):
                    report.uploaded.append(path)
                else:
                    report.failed.append(path)
        finally:
            sftp.close()

        logger.info(
            f"Uploaded {len(report.uploaded)}/{report.requested} files to "
            f"{session.address}:{manifest.remote_dir}"
        )
        return report

    def _enter_directories(self, sftp: paramiko.SFTPClient, segments: List[str]) -> None:
        """cd into each segment, creating it first when it is missing"""
        for folder in segments:
            try:
                logger.debug(f"cd {folder}")
                sftp.chdir(folder)
            except IOError:
                logger.debug(f"mkdir {folder}; cd {folder}")
                sftp.mkdir(folder)
                sftp.chdir(folder)

    def _upload_one(self, sftp: paramiko.SFTPClient, path: Path) -> bool:
        callback = None
        if self.progress_callback is not None:
            name = path.name
            callback = lambda sent, total: self.progress_callback(name, sent, total)

        try:
            with open(path, "rb") as local_f:
                logger.debug(f"Uploading file: {path.name}")
                sftp.putfo(local_f, path.name, callback=callback, confirm=True)
        except EOFError as e:
            # sftp channel is gone
            raise TransferError(f"SFTP channel closed while uploading {path}: {e}") from e
        except (OSError, paramiko.SFTPError, paramiko.SSHException) as e:
            logger.error(f"Failed to upload {path}: {e}")
            return False
        return True
