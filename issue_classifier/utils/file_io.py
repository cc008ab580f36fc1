"""File input/output helper functions."""

import gzip
import json
import logging
import os
import tempfile
from pathlib import Path

import pandas as pd

LOG = logging.getLogger(__name__)


def _is_gzip(path):
    return Path(path).suffix == ".gz"


def read_json(path):
    """Read a JSON (or gzip-compressed JSON) file and return the loaded object."""
    path = Path(path)
    opener = gzip.open if _is_gzip(path) else open
    try:
        with opener(path, "rt", encoding="utf-8") as f:
            return json.load(f)
    except Exception as exc:
        LOG.error("Failed to read JSON file %s: %s", path, exc)
        raise


def _current_umask():
    umask = os.umask(0)
    os.umask(umask)
    return umask


def write_json_atomic(data, path, indent=None):
    """Write a Python object to a JSON file without exposing partial writes.

    The document is written to a temporary file in the destination
    directory, flushed to disk and renamed over `path`, so readers see
    either the previous file or the complete new one.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as raw:
            if _is_gzip(path):
                with gzip.GzipFile(fileobj=raw, mode="wb", mtime=0) as gz:
                    gz.write(json.dumps(data, ensure_ascii=False, indent=indent).encode("utf-8"))
            else:
                raw.write(json.dumps(data, ensure_ascii=False, indent=indent).encode("utf-8"))
            raw.flush()
            os.fsync(raw.fileno())
        # mkstemp creates the file 0600; give it the mode open() would
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, path)
    except Exception as exc:
        LOG.error("Failed to write JSON file %s: %s", path, exc)
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def write_csv(df, path):
    """Write a DataFrame to a CSV file."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(path, index=False)
    except Exception as exc:
        LOG.error("Failed to write CSV file %s: %s", path, exc)
        raise


def write_records_json(df: pd.DataFrame, path):
    """Write a DataFrame to a JSON file as a list of row objects."""
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        df.to_json(path, orient="records", force_ascii=False)
    except Exception as exc:
        LOG.error("Failed to write JSON file %s: %s", path, exc)
        raise
