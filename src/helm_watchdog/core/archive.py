"""Download chart archives and pull the default values file out of them."""

from __future__ import annotations

import io
import logging
import tarfile
import zlib

import httpx

from helm_watchdog.core.image_collector import ValuesParseError

logger = logging.getLogger(__name__)

_READ_CHUNK = 64 * 1024


class ArchiveDownloadError(RuntimeError):
    """Raised when a chart archive cannot be downloaded."""


class ValuesNotFoundError(RuntimeError):
    """Raised when a chart archive does not contain the values file."""


def download_chart_archive(client: httpx.Client, url: str) -> bytes:
    """Fetch a compressed chart archive into memory.

    Chart archives are small, so the compressed blob is buffered whole;
    decompression and member scanning stay streaming.
    """
    try:
        response = client.get(url)
    except httpx.HTTPError as e:
        raise ArchiveDownloadError(f"Failed to download chart archive {url}: {e}") from e

    if not response.is_success:
        raise ArchiveDownloadError(
            f"Failed to download chart archive {url}: "
            f"{response.status_code} {response.reason_phrase}"
        )
    return response.content


def extract_values_yaml(archive: bytes, filename: str = "values.yaml") -> str:
    """Stream through a .tgz and return the first member ending in ``filename``.

    Other members are skipped without being read into memory.
    """
    try:
        with tarfile.open(fileobj=io.BytesIO(archive), mode="r|gz") as tar:
            for member in tar:
                name = member.name
                if name.startswith("./"):
                    name = name[2:]
                if not member.isfile() or not name.endswith(filename):
                    continue
                fh = tar.extractfile(member)
                if fh is None:
                    continue
                buf = bytearray()
                while True:
                    chunk = fh.read(_READ_CHUNK)
                    if not chunk:
                        break
                    buf.extend(chunk)
                logger.debug("Found %s in chart archive at %s", filename, member.name)
                try:
                    return buf.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise ValuesParseError(f"{member.name} is not valid UTF-8: {e}") from e
    except (tarfile.TarError, zlib.error, EOFError, OSError) as e:
        raise ArchiveDownloadError(f"Chart archive is not a readable gzip tarball: {e}") from e

    raise ValuesNotFoundError(f"{filename} not found in chart archive")


def fetch_values_yaml(client: httpx.Client, url: str, filename: str = "values.yaml") -> str:
    """Download one chart archive and return its values document as text."""
    return extract_values_yaml(download_chart_archive(client, url), filename)
