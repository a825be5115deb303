"""Self-signed TLS certificates for the local database container.

The bundle (CA key, server key, server certificate) is always regenerated
as a whole. Files are produced in a staging directory next to the target
and moved into place only after every step succeeded.
"""

import logging
import os
import secrets
import shutil
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

from . import process
from .errors import CertificateError, ToolFailedError

logger = logging.getLogger(__name__)

OPENSSL = "openssl"
PASSPHRASE_ENV = "DEVENV_CERT_PASSPHRASE"
SUBJECT = "/CN=localhost"
VALID_DAYS = 3650

# uid/gid of the postgres user inside the official image
POSTGRES_UID = 999

CA_KEY = "ca.key"
SERVER_KEY = "server.key"
SERVER_CERT = "server.crt"
SIGNING_REQUEST = "server.req"

KEY_MODE = 0o600
CERT_MODE = 0o644


@dataclass(frozen=True)
class CertificateBundle:
    """Paths of a provisioned certificate bundle."""

    directory: Path

    @property
    def ca_key(self) -> Path:
        return self.directory / CA_KEY

    @property
    def server_key(self) -> Path:
        return self.directory / SERVER_KEY

    @property
    def server_cert(self) -> Path:
        return self.directory / SERVER_CERT

    def files(self) -> list[Path]:
        return [self.ca_key, self.server_key, self.server_cert]


def _openssl(args: list[str], passphrase: str) -> None:
    result = process.run([OPENSSL, *args], capture=True, env={PASSPHRASE_ENV: passphrase})
    if result.returncode != 0:
        raise CertificateError(f"openssl {args[0]} failed: {result.stderr.strip()}")


def _generate(staging: Path) -> None:
    passphrase = secrets.token_urlsafe(24)
    request = str(staging / SIGNING_REQUEST)
    ca_key = str(staging / CA_KEY)
    server_key = str(staging / SERVER_KEY)
    server_cert = str(staging / SERVER_CERT)

    # Signing request and CA key in one go
    _openssl(
        ["req", "-new", "-text", "-passout", f"env:{PASSPHRASE_ENV}",
         "-subj", SUBJECT, "-out", request, "-keyout", ca_key],
        passphrase,
    )
    _openssl(
        ["rsa", "-in", ca_key, "-passin", f"env:{PASSPHRASE_ENV}", "-out", server_key],
        passphrase,
    )
    _openssl(
        ["req", "-x509", "-in", request, "-text", "-key", server_key,
         "-out", server_cert, "-days", str(VALID_DAYS)],
        passphrase,
    )
    (staging / SIGNING_REQUEST).unlink()


def _change_owner(files: list[Path], uid: int) -> None:
    """Hand the files to the container's database user."""
    if os.geteuid() == 0:
        for path in files:
            os.chown(path, uid, uid)
        return
    process.check(["sudo", "chown", f"{uid}:{uid}", *map(str, files)])


def provision(
    out_dir: Path,
    *,
    owner_uid: int = POSTGRES_UID,
    platform: str | None = None,
) -> CertificateBundle:
    """Generate a fresh self-signed certificate bundle in ``out_dir``.

    Args:
        out_dir: Directory receiving ca.key, server.key and server.crt.
        owner_uid: Owner applied to the files on Linux hosts.
        platform: Overrides ``sys.platform`` for the ownership decision.

    Returns:
        The provisioned bundle.

    Raises:
        CertificateError: If any step fails. Nothing is moved into
            ``out_dir`` in that case.
    """
    if process.which(OPENSSL) is None:
        raise CertificateError(f"{OPENSSL} is not installed or not on PATH")

    out_dir.mkdir(parents=True, exist_ok=True)
    bundle = CertificateBundle(out_dir)
    staging = Path(tempfile.mkdtemp(prefix=".certs-", dir=out_dir.parent))
    staged = CertificateBundle(staging)
    try:
        _generate(staging)

        staged.ca_key.chmod(KEY_MODE)
        staged.server_key.chmod(KEY_MODE)
        staged.server_cert.chmod(CERT_MODE)

        if (platform or sys.platform).startswith("linux"):
            try:
                _change_owner(staged.files(), owner_uid)
            except (OSError, ToolFailedError) as e:
                raise CertificateError(
                    f"Could not change certificate ownership to uid {owner_uid}: {e}"
                ) from e
        else:
            logger.debug("Skipping ownership change on %s", platform or sys.platform)

        for src, dst in zip(staged.files(), bundle.files()):
            os.replace(src, dst)
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    logger.debug("Certificates written to %s", out_dir)
    return bundle
