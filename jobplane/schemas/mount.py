"""
Mount info - descriptor attached to jobs that use a filesystem.

Combines the encoded filesystem record (passed through untouched) with
the decoded filesystem-cache configuration.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any

from jobplane.errors import ValidationError


@dataclass(frozen=True)
class FSCacheConfig:
    """Filesystem cache settings used by the mount process."""
    fs_id: str = ""
    cache_dir: str = ""
    meta_driver: str = ""
    block_size: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FSCacheConfig":
        # Records are produced by other services; accept both key styles
        return cls(
            fs_id=data.get("fs_id", data.get("fsID", "")),
            cache_dir=data.get("cache_dir", data.get("cacheDir", "")),
            meta_driver=data.get("meta_driver", data.get("metaDriver", "")),
            block_size=int(data.get("block_size", data.get("blockSize", 0)) or 0),
        )


@dataclass(frozen=True)
class MountInfo:
    fs_id: str
    server: str
    fs_base64_str: str
    fs_cache_config: FSCacheConfig
    read_only: bool = False

    @property
    def mount_mode(self) -> str:
        return "ro" if self.read_only else "rw"


def _decode_json(encoded: str, what: str) -> dict[str, Any]:
    try:
        raw = base64.b64decode(encoded, validate=True)
        data = json.loads(raw)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"invalid base64-encoded {what}: {e}")
    if not isinstance(data, dict):
        raise ValidationError(f"{what} must decode to a JSON object")
    return data


def process_mount_info(
    fs_id: str,
    server: str,
    fs_base64: str,
    fs_cache_base64: str,
    read_only: bool,
) -> MountInfo:
    """
    Build the mount descriptor for a filesystem.

    Args:
        fs_id: Filesystem ID (fs-<user>-<name>)
        server: Identity of the consuming pod/server
        fs_base64: Base64 JSON filesystem record, kept as-is
        fs_cache_base64: Base64 JSON cache config; empty means defaults
        read_only: Mount read-only

    Returns:
        MountInfo with the decoded cache config

    Raises:
        ValidationError: If either payload is not valid base64 JSON
    """
    # Validate the filesystem record even though it is passed through
    _decode_json(fs_base64, "filesystem record")

    cache_config = FSCacheConfig(fs_id=fs_id)
    if fs_cache_base64:
        cache_data = _decode_json(fs_cache_base64, "filesystem cache config")
        try:
            cache_config = FSCacheConfig.from_dict(cache_data)
        except (TypeError, ValueError) as e:
            raise ValidationError(f"invalid filesystem cache config: {e}")

    return MountInfo(
        fs_id=fs_id,
        server=server,
        fs_base64_str=fs_base64,
        fs_cache_config=cache_config,
        read_only=read_only,
    )
