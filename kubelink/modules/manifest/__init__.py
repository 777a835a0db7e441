"""
Manifest Module - Black Box Interface

Purpose: Typed resource manifests carried by command messages
Interface: decode_manifest(), Manifest models, ResourceKind
Hidden: YAML/JSON parsing, schema validation, merge rules per kind
"""

from .decoder import decode_manifest
from .models import (
    MANIFEST_KINDS,
    ConfigMapManifest,
    DeploymentManifest,
    Manifest,
    ResourceKind,
    SecretManifest,
    ServiceManifest,
)

__all__ = [
    "MANIFEST_KINDS",
    "ConfigMapManifest",
    "DeploymentManifest",
    "Manifest",
    "ResourceKind",
    "SecretManifest",
    "ServiceManifest",
    "decode_manifest",
]
