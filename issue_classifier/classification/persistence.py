"""
Saving and loading fitted models.

An artifact is a single JSON document (gzip-compressed when the file
name ends in ``.gz``)::

    {
      "format": "issue-classifier-model",
      "format_version": 1,
      "checksum": "<sha256 of the canonical payload>",
      "payload": {
        "config": {...},            # featurizer + trainer settings
        "vocabularies": {"title": {...}, "description": {...}},
        "labels": [...],            # index order
        "link": "softmax",
        "weights": [[...], ...],    # K x D
        "bias": [...]
      }
    }

JSON floats round-trip exactly, so a reloaded model reproduces the
original predictions bit for bit.
"""

from __future__ import annotations

import gzip
import hashlib
import json
import logging
import zlib
from pathlib import Path
from typing import Any, Dict

import numpy as np

from ..config import PipelineConfig
from ..errors import CorruptArtifactError, NotFoundError
from ..utils.file_io import read_json, write_json_atomic
from .featurizer import TEXT_FIELDS, IssueFeaturizer, Vocabulary
from .label_encoder import IssueLabelEncoder
from .pipeline import IssueClassifierModel
from .trainers import LinearModel

LOG = logging.getLogger(__name__)

ARTIFACT_FORMAT = "issue-classifier-model"
FORMAT_VERSION = 1


def payload_checksum(payload: Dict[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def model_to_payload(model: IssueClassifierModel) -> Dict[str, Any]:
    return {
        "config": model.config.to_dict(),
        "vocabularies": {name: vocab.to_dict() for name, vocab in model.featurizer.vocabularies.items()},
        "labels": model.classes,
        "link": model.linear_model.link,
        "weights": model.linear_model.weights.tolist(),
        "bias": model.linear_model.bias.tolist(),
    }


def model_from_payload(payload: Dict[str, Any]) -> IssueClassifierModel:
    config = PipelineConfig.from_dict(payload["config"])
    vocabularies = {
        name: Vocabulary.from_dict(payload["vocabularies"][name]) for name in TEXT_FIELDS
    }
    featurizer = IssueFeaturizer.from_vocabularies(config.featurizer, vocabularies)
    label_encoder = IssueLabelEncoder(payload["labels"])
    linear_model = LinearModel(
        weights=np.array(payload["weights"], dtype=np.float64),
        bias=np.array(payload["bias"], dtype=np.float64),
        link=payload["link"],
    )
    return IssueClassifierModel(config, featurizer, label_encoder, linear_model)


def save_model(model: IssueClassifierModel, path) -> Path:
    """Write `model` to `path` atomically, creating parent directories."""
    path = Path(path)
    payload = model_to_payload(model)
    document = {
        "format": ARTIFACT_FORMAT,
        "format_version": FORMAT_VERSION,
        "checksum": payload_checksum(payload),
        "payload": payload,
    }
    write_json_atomic(document, path)
    LOG.info("Saved model (%d classes, %d features) to %s", len(model.classes), model.featurizer.dimension, path)
    return path


def load_model(path) -> IssueClassifierModel:
    """Read a model written by `save_model`.

    Raises
    ------
    NotFoundError
        If `path` does not exist.
    CorruptArtifactError
        If the file cannot be decoded or fails format, version, checksum
        or shape validation.
    """
    path = Path(path)
    if not path.is_file():
        raise NotFoundError(f"model artifact not found: {path}")
    try:
        document = read_json(path)
    except (OSError, EOFError, zlib.error, gzip.BadGzipFile, UnicodeDecodeError, ValueError) as exc:
        raise CorruptArtifactError(f"cannot decode model artifact {path}: {exc}") from exc

    if not isinstance(document, dict) or document.get("format") != ARTIFACT_FORMAT:
        raise CorruptArtifactError(f"{path} is not an issue classifier model")
    version = document.get("format_version")
    if version != FORMAT_VERSION:
        raise CorruptArtifactError(f"unsupported model format version {version!r} in {path}")
    payload = document.get("payload")
    if not isinstance(payload, dict) or document.get("checksum") != payload_checksum(payload):
        raise CorruptArtifactError(f"checksum mismatch in {path}")

    try:
        model = model_from_payload(payload)
    except (KeyError, TypeError, ValueError) as exc:
        raise CorruptArtifactError(f"invalid model payload in {path}: {exc}") from exc
    LOG.info("Loaded model %r from %s", model, path)
    return model
