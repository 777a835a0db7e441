"""Decode command bodies into typed manifests."""

from typing import Any, Union

import yaml
from pydantic import ValidationError

from kubelink.errors import ManifestFormatError, UnsupportedKindError

from .models import MANIFEST_KINDS, Manifest, manifest_adapter


def decode_manifest(data: Union[str, bytes]) -> Manifest:
    """
    Decode a YAML or JSON document into a manifest.

    Args:
        data: Manifest text, or UTF-8 bytes (JSON is accepted as a YAML subset)

    Returns:
        The manifest model matching the document's kind

    Raises:
        ManifestFormatError: Data is not UTF-8 or not a well-formed manifest
        UnsupportedKindError: Document is a manifest of an unsupported kind
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ManifestFormatError(f"manifest is not UTF-8: {e}") from e

    try:
        document: Any = yaml.safe_load(data)
    except yaml.YAMLError as e:
        raise ManifestFormatError(f"not a YAML/JSON document: {e}") from e

    if not isinstance(document, dict):
        raise ManifestFormatError("manifest must be a mapping")

    kind = document.get("kind")
    api_version = document.get("apiVersion")
    if not isinstance(kind, str) or not kind or not isinstance(api_version, str) or not api_version:
        raise ManifestFormatError("manifest must declare apiVersion and kind")

    if kind not in MANIFEST_KINDS:
        raise UnsupportedKindError(kind)

    try:
        return manifest_adapter.validate_python(document)
    except ValidationError as e:
        raise ManifestFormatError(f"invalid {kind} manifest: {e}") from e
